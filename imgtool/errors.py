from __future__ import annotations


class ImageToolError(Exception):
    """Base class for errors reported to the user as a one-line message."""


class ConfigurationError(ImageToolError):
    """Bad user input: invalid format/quality, or an output filename for a directory."""


class InputNotFound(ImageToolError):
    pass


class TransformFailure(ImageToolError):
    """Reading, decoding, resizing, encoding or writing one file failed."""

    def __init__(self, message: str, input_path=None) -> None:
        super().__init__(message)
        self.input_path = input_path


class MetadataUnavailable(TransformFailure):
    pass

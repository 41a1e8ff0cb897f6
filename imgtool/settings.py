from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from .errors import ConfigurationError


VERSION = "0.1.2"
APP_NAME = "img-tool"

# Output formats we can encode to.
OutputFormat = Literal["jpeg", "png", "webp", "avif"]

SUPPORTED_FORMATS: tuple[str, ...] = ("jpeg", "png", "webp", "avif")

# Input extensions picked up when scanning a directory.
SUPPORTED_INPUT_EXTS: tuple[str, ...] = (".jpg", ".jpeg", ".png", ".webp", ".avif")

DEFAULT_OUTPUT = "./output"
DEFAULT_FORMAT: OutputFormat = "webp"
DEFAULT_QUALITY = 50


@dataclass(frozen=True)
class Dimensions:
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class ProcessOptions:
    """
    Everything that controls how each file of a batch is transformed.

    Built once from validated CLI input and shared read-only by every file.
    """

    format: OutputFormat = DEFAULT_FORMAT
    quality: int = DEFAULT_QUALITY

    # "N" or "WxH"; parsed per file so a bad value only warns.
    dimension: Optional[str] = None

    # Abort the whole batch on the first failing file.
    fail_fast: bool = False


def is_valid_format(fmt: str) -> bool:
    return fmt.lower() in SUPPORTED_FORMATS


def is_valid_quality(quality: int) -> bool:
    return 1 <= quality <= 100


def build_options(
    fmt: str,
    quality: str | int,
    dimension: Optional[str] = None,
    fail_fast: bool = False,
) -> ProcessOptions:
    """Validate raw user values and turn them into ProcessOptions."""
    if not is_valid_format(fmt):
        raise ConfigurationError(f"Invalid format. Supported formats: {', '.join(SUPPORTED_FORMATS)}")

    try:
        q = int(str(quality).strip())
    except ValueError:
        raise ConfigurationError("Quality must be a number between 1 and 100") from None
    if not is_valid_quality(q):
        raise ConfigurationError("Quality must be a number between 1 and 100")

    return ProcessOptions(
        format=fmt.lower(),  # type: ignore[arg-type]
        quality=q,
        dimension=dimension or None,
        fail_fast=fail_fast,
    )

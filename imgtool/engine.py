from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Any, Optional, Protocol

from PIL import Image, ImageOps

from .errors import ImageToolError, MetadataUnavailable, TransformFailure
from .paths import unique_path
from .report import Reporter
from .results import ProcessResult
from .settings import Dimensions, ProcessOptions


logger = logging.getLogger(__name__)

# Maps our format names to Pillow's encoder names.
PIL_FORMATS = {
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
    "avif": "AVIF",
}

JPEG_BACKGROUND = (255, 255, 255)

_DIMENSION_RE = re.compile(r"^\s*(\d+)\s*(?:x\s*(\d+)\s*)?$", re.IGNORECASE)


class ImageEngine(Protocol):
    """The pixel work the pipeline needs. Pillow in production, a fake in tests."""

    def decode(self, data: bytes) -> Any: ...

    def read_metadata(self, image: Any) -> Dimensions: ...

    def resize(self, image: Any, box: Dimensions) -> Any: ...

    def encode(self, image: Any, fmt: str, quality: int) -> bytes: ...


class PillowEngine:
    def decode(self, data: bytes) -> Image.Image:
        im = Image.open(io.BytesIO(data))
        im.load()
        # Bake EXIF orientation into the pixels; metadata is not carried over.
        return ImageOps.exif_transpose(im)

    def read_metadata(self, image: Image.Image) -> Dimensions:
        w, h = image.size
        if not w or not h:
            raise MetadataUnavailable("Unable to read image metadata")
        return Dimensions(width=w, height=h)

    def resize(self, image: Image.Image, box: Dimensions) -> Image.Image:
        """
        Contain fit: keep the aspect ratio, fit inside `box`, never enlarge.
        """
        w, h = image.size
        if w <= box.width and h <= box.height:
            return image

        scale = min(box.width / w, box.height / h)
        new_w = max(1, min(box.width, round(w * scale)))
        new_h = max(1, min(box.height, round(h * scale)))

        if (new_w, new_h) == (w, h):
            return image

        return image.resize((new_w, new_h), Image.Resampling.LANCZOS)

    def encode(self, image: Image.Image, fmt: str, quality: int) -> bytes:
        pil_format = PIL_FORMATS[fmt]

        Image.init()
        if pil_format not in Image.SAVE:
            raise OSError(f"{fmt} encoding is not available in this Pillow build")

        im = _prepare_mode(image, fmt)

        buf = io.BytesIO()
        im.save(buf, format=pil_format, **_build_save_kwargs(fmt, quality))
        return buf.getvalue()


def _build_save_kwargs(fmt: str, quality: int) -> dict:
    kwargs: dict = {}

    if fmt == "jpeg":
        kwargs["quality"] = int(quality)
        kwargs["optimize"] = True

    elif fmt == "png":
        # Lossless; quality has no meaning here.
        kwargs["optimize"] = True

    elif fmt in ("webp", "avif"):
        kwargs["quality"] = int(quality)

    return kwargs


def _prepare_mode(im: Image.Image, fmt: str) -> Image.Image:
    if fmt == "jpeg":
        if _has_alpha(im):
            return _flatten_alpha(im, JPEG_BACKGROUND)
        if im.mode not in ("RGB", "L"):
            return im.convert("RGB")
        return im

    if im.mode == "P":
        return im.convert("RGBA" if _has_alpha(im) else "RGB")
    if im.mode in ("CMYK", "YCbCr", "LAB", "HSV"):
        return im.convert("RGB")
    return im


def _flatten_alpha(im: Image.Image, background_rgb: tuple[int, int, int]) -> Image.Image:
    rgba = im.convert("RGBA")
    bg = Image.new("RGBA", rgba.size, background_rgb + (255,))
    comp = Image.alpha_composite(bg, rgba)
    return comp.convert("RGB")


def _has_alpha(im: Image.Image) -> bool:
    if im.mode in ("RGBA", "LA", "PA"):
        return True
    if im.mode == "P" and "transparency" in im.info:
        return True
    return False


def parse_dimension(text: str) -> Optional[Dimensions]:
    """
    "75" -> 75x75, "40x50" -> 40x50. Returns None for anything else,
    including zero sizes.
    """
    m = _DIMENSION_RE.match(text)
    if not m:
        return None

    width = int(m.group(1))
    height = int(m.group(2)) if m.group(2) is not None else width
    if width <= 0 or height <= 0:
        return None
    return Dimensions(width=width, height=height)


def process_image(
    input_path: Path,
    output_path: Path,
    options: ProcessOptions,
    engine: Optional[ImageEngine] = None,
    reporter: Optional[Reporter] = None,
) -> ProcessResult:
    """
    Convert one file and write it next to (never over) anything already at
    `output_path`.

    Raises TransformFailure (or MetadataUnavailable) naming the file.
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    engine = engine or PillowEngine()
    reporter = reporter or Reporter()

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        final_path = unique_path(output_path)
        logger.debug("converting %s -> %s", input_path, final_path)

        data = input_path.read_bytes()
        input_size = len(data)

        im = engine.decode(data)
        original = engine.read_metadata(im)
        new = original

        if options.dimension:
            box = parse_dimension(options.dimension)
            if box is None:
                reporter.warn(f"Invalid dimension format. Using original dimensions: {original}")
            else:
                im = engine.resize(im, box)
                new = engine.read_metadata(im)

        encoded = engine.encode(im, options.format, options.quality)

        # "x" refuses to clobber a file that appeared after unique_path().
        with final_path.open("xb") as f:
            f.write(encoded)

        output_size = final_path.stat().st_size

    except MetadataUnavailable as e:
        raise MetadataUnavailable(f"Failed to process {input_path.name}: {e}", input_path) from e
    except ImageToolError:
        raise
    except Exception as e:
        raise TransformFailure(f"Failed to process {input_path.name}: {e}", input_path) from e

    result = ProcessResult(
        input_path=input_path,
        output_path=final_path,
        input_size=input_size,
        output_size=output_size,
        original_dimensions=original,
        new_dimensions=new,
    )
    reporter.file_done(result)
    return result

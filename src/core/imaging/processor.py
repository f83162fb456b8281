"""
Pillow-based image probing and resize/re-encode.

Transformations are deterministic: the same source bytes and parameters
always produce the same output bytes. No timestamps or encoder-chosen
metadata are written.
"""

import io
import math
from typing import Any

from aws_lambda_powertools import Logger
from PIL import Image, UnidentifiedImageError

from core.models.errors import TransformError
from core.utils.constants import MAX_IMAGE_QUALITY, MIN_IMAGE_QUALITY

logger = Logger(UTC=True)

# MIME type -> Pillow encoder name. Formats not listed (e.g. SVG) are not raster.
PILLOW_FORMATS: dict[str, str] = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/gif": "GIF",
    "image/webp": "WEBP",
}

LOSSY_FORMATS = frozenset({"JPEG", "WEBP"})

RESAMPLING = Image.Resampling.LANCZOS


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def probe_dimensions(file_data: bytes, mime_type: str) -> tuple[int | None, int | None]:
    """Return intrinsic (width, height), or (None, None) when unknown.

    Non-raster formats and undecodable payloads are not errors: ingestion
    records the dimensions as absent and carries on.
    """
    if mime_type not in PILLOW_FORMATS:
        return None, None

    try:
        with Image.open(io.BytesIO(file_data)) as img:
            width, height = img.size
    except Exception as exc:
        logger.warning(
            "Unable to read image dimensions",
            extra={"mime_type": mime_type, "error": str(exc), "error_type": type(exc).__name__},
        )
        return None, None

    return int(width), int(height)


def compute_target_size(
    original_width: int,
    original_height: int,
    width: int | None,
    height: int | None,
) -> tuple[int, int]:
    """Work out output dimensions for a resize request.

    A single requested dimension gets its partner from the original aspect
    ratio. The result fits inside the requested box and never exceeds the
    original in either dimension.

    Raises:
        ValueError: If the original is degenerate or nothing was requested
    """
    if original_width < 1 or original_height < 1:
        raise ValueError("Original dimensions must be positive")

    if width is None and height is None:
        raise ValueError("At least one target dimension is required")

    if width is not None and width < 1 or height is not None and height < 1:
        raise ValueError("Target dimensions must be positive")

    if height is None:
        box_width = int(width or 0)
        box_height = max(1, _round_half_up(box_width * original_height / original_width))
    elif width is None:
        box_height = height
        box_width = max(1, _round_half_up(box_height * original_width / original_height))
    else:
        box_width, box_height = width, height

    scale = min(box_width / original_width, box_height / original_height, 1.0)
    if scale >= 1.0:
        return original_width, original_height

    target_width = min(box_width, max(1, _round_half_up(original_width * scale)))
    target_height = min(box_height, max(1, _round_half_up(original_height * scale)))
    return target_width, target_height


def _prepare_mode(img: Image.Image, image_format: str) -> Image.Image:
    if img.mode == "P" or img.mode == "PA":
        img = img.convert("RGBA")

    if image_format == "JPEG" and img.mode not in ("RGB", "L", "CMYK"):
        img = img.convert("RGB")
    elif image_format == "WEBP" and img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if "A" in img.getbands() else "RGB")

    return img


def _save_kwargs(image_format: str, quality: int) -> dict[str, Any]:
    if image_format == "JPEG":
        return {"quality": quality, "optimize": False, "progressive": False}
    if image_format == "WEBP":
        return {"quality": quality, "method": 4}
    if image_format == "PNG":
        return {"optimize": False, "compress_level": 6}
    return {}


def transform_image(
    file_data: bytes,
    mime_type: str,
    *,
    width: int | None,
    height: int | None,
    quality: int,
) -> bytes:
    """Resize (fit inside, never enlarge) and re-encode with the source format.

    JPEG and WebP honour ``quality``; PNG and GIF are re-encoded losslessly.

    Raises:
        TransformError: If the source cannot be decoded or re-encoded
    """
    image_format = PILLOW_FORMATS.get(mime_type)
    if image_format is None:
        raise TransformError(
            message="Format does not support resizing",
            details={"mime_type": mime_type},
        )

    if not MIN_IMAGE_QUALITY <= quality <= MAX_IMAGE_QUALITY:
        raise TransformError(
            message="Quality out of range",
            details={"quality": quality},
        )

    try:
        with Image.open(io.BytesIO(file_data)) as source:
            source.load()
            target = compute_target_size(source.width, source.height, width, height)

            img = _prepare_mode(source, image_format)
            if target != img.size:
                img = img.resize(target, RESAMPLING)

            output = io.BytesIO()
            img.save(output, format=image_format, **_save_kwargs(image_format, quality))
    except (UnidentifiedImageError, Image.DecompressionBombError) as exc:
        raise TransformError(
            message="Unable to decode image",
            details={"mime_type": mime_type, "reason": type(exc).__name__},
        ) from exc
    except Exception as exc:
        raise TransformError(
            message="Unable to transform image",
            details={"mime_type": mime_type, "reason": type(exc).__name__},
        ) from exc

    logger.debug(
        "Image transformed",
        extra={
            "mime_type": mime_type,
            "requested": [width, height],
            "output": list(target),
            "quality": quality if image_format in LOSSY_FORMATS else None,
        },
    )
    return output.getvalue()

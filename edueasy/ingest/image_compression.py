"""Re-encode large document photos before upload."""

from __future__ import annotations

import io
from pathlib import PurePath

from PIL import Image, UnidentifiedImageError

from ..common.dtos import LocalFile
from ..common.errors import CompressionError

MAX_EDGE_PIXELS = 1920
JPEG_QUALITY = 80


def compress_image(
    file: LocalFile,
    *,
    max_edge: int = MAX_EDGE_PIXELS,
    quality: int = JPEG_QUALITY,
) -> LocalFile:
    """Downscale to `max_edge` and re-encode as JPEG.

    Raises CompressionError when the payload cannot be decoded or encoded.
    """

    if not file.is_image:
        raise CompressionError(f"{file.content_type} is not an image")
    try:
        with Image.open(io.BytesIO(file.data)) as image:
            image.load()
            converted = image.convert("RGB")
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
    ) as exc:
        raise CompressionError(f"Could not read image {file.name}: {exc}") from exc

    converted.thumbnail((max_edge, max_edge))
    buffer = io.BytesIO()
    try:
        converted.save(buffer, format="JPEG", quality=quality, optimize=True)
    except (OSError, ValueError) as exc:
        raise CompressionError(f"Could not encode image {file.name}: {exc}") from exc

    return LocalFile(
        name=str(PurePath(file.name or "document").with_suffix(".jpg")),
        content_type="image/jpeg",
        data=buffer.getvalue(),
    )

"""Product image conversion to inline data URLs."""

from __future__ import annotations

import base64
import io
from pathlib import Path

from atelier.config import IMAGE_JPEG_QUALITY, IMAGE_MAX_PX


def image_to_data_url(path: str | Path, max_px: int = IMAGE_MAX_PX, quality: int = IMAGE_JPEG_QUALITY) -> str:
    """Load an image, shrink it to fit ``max_px`` and return it as a JPEG data URL."""
    try:
        from PIL import Image
    except Exception as exc:
        raise RuntimeError(f"Image dependencies unavailable: {exc}") from exc

    source = Path(path)
    if not source.is_file():
        raise ValueError(f"Image not found: {source}")

    with Image.open(source) as img:
        img = img.convert("RGB")
        img.thumbnail((max_px, max_px))
        buffer = io.BytesIO()
        img.save(buffer, format="JPEG", quality=quality)

    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"

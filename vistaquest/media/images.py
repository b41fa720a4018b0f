"""Pillow helpers for generated scene images."""

import base64
import io

from PIL import Image, UnidentifiedImageError


def to_data_url(data: bytes, mime_type: str = "image/png") -> str:
    """Encode image bytes as a ``data:`` URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def downsample_image(data: bytes, max_dimension: int) -> tuple[bytes, str]:
    """Shrink an image so neither side exceeds *max_dimension*.

    Aspect ratio is preserved and images already within bounds are never
    upscaled.  The result is always re-encoded as PNG.

    Args:
        data: Encoded image bytes (any format Pillow can open)
        max_dimension: Bound for both width and height, in pixels

    Returns:
        ``(png_bytes, "image/png")``

    Raises:
        ValueError: If the bytes cannot be opened as an image.
    """
    if max_dimension < 1:
        raise ValueError(f"max_dimension must be positive, got {max_dimension}")

    try:
        src = Image.open(io.BytesIO(data))
        src.load()
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError("Image bytes could not be decoded") from exc

    if src.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        src = src.convert("RGBA" if "A" in src.getbands() else "RGB")

    if max(src.size) > max_dimension:
        src.thumbnail((max_dimension, max_dimension), Image.LANCZOS)

    out = io.BytesIO()
    src.save(out, format="PNG")
    return out.getvalue(), "image/png"

"""Poster/logo image ingestion: resize and embed as data URLs."""
import base64
import io
import mimetypes
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from posterbuddy.core.errors import ValidationFailure

MAX_POSTER_WIDTH = 1200
MAX_POSTER_HEIGHT = 1500

# Formats Pillow can write back out as-is; anything else is re-encoded as PNG
_WRITABLE_FORMATS = {"PNG", "JPEG", "WEBP", "GIF"}


def guess_content_type(filename: str, content_type: Optional[str] = None) -> str:
    if content_type and content_type != "application/octet-stream":
        return content_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


def to_data_url(data: bytes, content_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


def fit_poster_size(
    width: int,
    height: int,
    max_width: int = MAX_POSTER_WIDTH,
    max_height: int = MAX_POSTER_HEIGHT,
) -> Tuple[int, int]:
    """Landscape images are bounded by width, portrait and square ones by height."""
    if width > height:
        if width > max_width:
            return max_width, max(1, round(height * max_width / width))
    elif height > max_height:
        return max(1, round(width * max_height / height)), max_height
    return width, height


def resize_poster(data: bytes, filename: str = "", content_type: Optional[str] = None) -> str:
    """Shrink a poster image to the display bounds and return it as a data URL."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValidationFailure(f"{filename or 'poster'}: not a readable image") from e

    size = fit_poster_size(image.width, image.height)
    fmt = image.format if image.format in _WRITABLE_FORMATS else "PNG"
    if size == (image.width, image.height) and fmt == image.format:
        return to_data_url(data, Image.MIME.get(fmt) or guess_content_type(filename, content_type))

    resized = image.resize(size, Image.Resampling.LANCZOS)
    if fmt == "JPEG" and resized.mode not in ("RGB", "L"):
        resized = resized.convert("RGB")
    buffer = io.BytesIO()
    resized.save(buffer, format=fmt)
    return to_data_url(buffer.getvalue(), Image.MIME[fmt])

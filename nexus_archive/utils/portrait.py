"""
Portrait image helpers.

Downscales stored portraits so large card art does not bloat the library.
"""
import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def downscale_portrait(image_data: bytes, max_width: int = 1200) -> bytes:
    """Shrink an image to ``max_width`` (keeping aspect ratio) and re-encode as PNG.

    Images already within the limit are returned unchanged. Data Pillow cannot
    read, or refuses as a decompression bomb, is returned unchanged as well, so
    a placeholder or exotic portrait never blocks saving a character.

    Args:
        image_data: Encoded image bytes
        max_width: Maximum width in pixels

    Returns:
        PNG bytes (or the original bytes)
    """
    try:
        with Image.open(io.BytesIO(image_data)) as img:
            width, height = img.size
            if width <= max_width:
                return image_data

            new_height = max(1, round(height * max_width / width))
            resized = img.resize((max_width, new_height), Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        logger.warning(f"Could not read portrait for downscaling, storing as-is: {e}")
        return image_data

    output = io.BytesIO()
    resized.save(output, format="PNG")
    logger.debug(f"Downscaled portrait from {width}x{height} to {max_width}x{new_height}")
    return output.getvalue()

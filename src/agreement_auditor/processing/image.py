import io
import logging
from typing import NamedTuple

from PIL import Image, UnidentifiedImageError

from agreement_auditor.core.errors import ExtractionFailure

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}
MAX_SIZE = (2048, 2048)


class ImagePayload(NamedTuple):
    data: bytes
    media_type: str


def prepare_image(file_object) -> ImagePayload:
    """Shrinks a receipt photo to fit the vision model and keeps its format when the model accepts it.

    Anything else (AVIF, TIFF, GIF, BMP) is re-encoded as JPEG.
    """
    try:
        image = Image.open(file_object)
        original_format = image.format
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        logger.error("Image processing failed: %s", e)
        raise ExtractionFailure("Could not read the uploaded image. File might be corrupted or unsupported.") from e

    output_format = original_format if original_format in SUPPORTED_FORMATS else "JPEG"
    if output_format == "JPEG" and image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    image.thumbnail(MAX_SIZE)

    buffer = io.BytesIO()
    image.save(buffer, format=output_format, quality=85)
    logger.debug("Prepared %s receipt image (%dx%d) from %s", output_format, image.width, image.height, original_format)
    return ImagePayload(buffer.getvalue(), SUPPORTED_FORMATS[output_format])

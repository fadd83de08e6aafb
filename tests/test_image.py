import io

import pytest
from PIL import Image

from agreement_auditor.core.errors import ExtractionFailure
from agreement_auditor.processing.image import MAX_SIZE, prepare_image


def _image_file(fmt, mode="RGB", size=(64, 32)):
    buffer = io.BytesIO()
    Image.new(mode, size, color="white").save(buffer, format=fmt)
    buffer.seek(0)
    return buffer


class TestPrepareImage:
    def test_supported_format_is_kept(self, png_file):
        payload = prepare_image(png_file)
        assert payload.media_type == "image/png"
        assert Image.open(io.BytesIO(payload.data)).format == "PNG"

    @pytest.mark.parametrize("fmt, mode", [("BMP", "RGB"), ("GIF", "P"), ("TIFF", "RGBA")])
    def test_other_formats_become_jpeg(self, fmt, mode):
        payload = prepare_image(_image_file(fmt, mode))
        assert payload.media_type == "image/jpeg"
        assert Image.open(io.BytesIO(payload.data)).format == "JPEG"

    def test_large_photo_is_downsized(self):
        payload = prepare_image(_image_file("JPEG", size=(4096, 1024)))
        width, height = Image.open(io.BytesIO(payload.data)).size
        assert width <= MAX_SIZE[0] and height <= MAX_SIZE[1]
        assert (width, height) == (2048, 512)

    def test_payload_is_just_bytes_and_media_type(self, png_file):
        payload = prepare_image(png_file)
        assert payload._fields == ("data", "media_type")
        assert isinstance(payload.data, bytes)

    def test_garbage_fails(self):
        with pytest.raises(ExtractionFailure, match="Could not read"):
            prepare_image(io.BytesIO(b"\x00not an image"))

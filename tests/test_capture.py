import base64
import io

from PIL import Image

from photobooth.client.capture import apply_overlay, build_payload, crop_to_aspect, load_overlay, make_thumbnail
from photobooth.services.sniffer import ImageFormat
from photobooth.services.validator import UploadValidator


def decode_data_uri(value):
    header, data = value.split(",", 1)
    return header, base64.b64decode(data)


class TestCropToAspect:
    def test_wide_frame_cropped_to_portrait(self):
        cropped = crop_to_aspect(Image.new("RGB", (1920, 1080)), 9 / 16)
        assert cropped.size == (608, 1080)

    def test_tall_frame_cropped_to_landscape(self):
        cropped = crop_to_aspect(Image.new("RGB", (900, 1600)), 16 / 9)
        assert cropped.size == (900, 506)

    def test_matching_frame_untouched(self):
        assert crop_to_aspect(Image.new("RGB", (1920, 1080)), 16 / 9).size == (1920, 1080)


class TestOverlay:
    def test_overlay_stretched_and_composited(self):
        frame = Image.new("RGB", (100, 50), (0, 0, 255))
        overlay = Image.new("RGBA", (10, 10), (0, 0, 0, 0))
        overlay.paste((255, 0, 0, 255), (0, 0, 5, 10))

        result = apply_overlay(frame, overlay)

        assert result.size == (100, 50)
        assert result.getpixel((0, 0))[:3] == (255, 0, 0)
        assert result.getpixel((99, 49))[:3] == (0, 0, 255)

    def test_unreadable_overlay_is_ignored(self):
        assert load_overlay(b"not an image") is None

    def test_overlay_loaded_from_bytes(self, png_bytes):
        assert load_overlay(png_bytes).size == (10, 10)


class TestThumbnail:
    def test_jpeg_scaled_to_width(self):
        header, data = decode_data_uri(make_thumbnail(Image.new("RGBA", (1920, 1080)), width=320, quality=60))

        assert header == "data:image/jpeg;base64"
        thumb = Image.open(io.BytesIO(data))
        assert thumb.format == "JPEG"
        assert thumb.size == (320, 180)


class TestBuildPayload:
    def test_payload_passes_server_validation(self):
        frame = Image.new("RGB", (1280, 720), (10, 20, 30))
        overlay = Image.new("RGBA", (64, 36), (255, 255, 255, 128))

        payload = build_payload(frame, landscape=False, overlay=overlay, image_format="PNG")

        validator = UploadValidator(["png", "jpeg", "gif", "webp"], 50 * 1024 * 1024)
        image_bytes, image_format = validator.validate(payload.image)
        _, thumb_format = validator.validate(payload.thumbnail)

        assert payload.image.startswith("data:image/png;base64,")
        assert image_format == ImageFormat.png
        assert thumb_format == ImageFormat.jpeg
        assert (payload.width, payload.height) == (405, 720)
        assert Image.open(io.BytesIO(image_bytes)).size == (405, 720)

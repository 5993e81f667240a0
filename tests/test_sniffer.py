import pytest

from photobooth.services.sniffer import ImageFormat, read_png_dimensions, sniff_format


class TestSniffFormat:
    @pytest.mark.parametrize(
        "header, expected",
        [
            (b"\x89PNG\r\n\x1a\n", ImageFormat.png),
            (b"\xff\xd8\xff\xe0", ImageFormat.jpeg),
            (b"\xff\xd8\xff\xe1", ImageFormat.jpeg),
            (b"\xff\xd8\xff\xe2", ImageFormat.jpeg),
            (b"\xff\xd8\xff\xe3", ImageFormat.jpeg),
            (b"\xff\xd8\xff\xe8", ImageFormat.jpeg),
            (b"GIF89a", ImageFormat.gif),
            (b"GIF87a", ImageFormat.gif),
            (b"RIFF\x24\x00\x00\x00WEBPVP8 ", ImageFormat.webp),
        ],
    )
    def test_known_signatures(self, header, expected):
        assert sniff_format(header + b"\x00" * 32) == expected

    def test_real_images(self, png_bytes, jpeg_bytes, gif_bytes):
        assert sniff_format(png_bytes) == ImageFormat.png
        assert sniff_format(jpeg_bytes) == ImageFormat.jpeg
        assert sniff_format(gif_bytes) == ImageFormat.gif

    @pytest.mark.parametrize(
        "buffer",
        [
            b"",
            b"\x89PN",
            b"hello world",
            b"\xff\xd8\xff\xdb" + b"\x00" * 8,
            b"RIFF\x24\x00\x00\x00WAVEfmt ",
            b"RIFF\x00\x00",
            b"<svg xmlns='http://www.w3.org/2000/svg'/>",
            b"%PDF-1.7",
        ],
    )
    def test_unknown(self, buffer):
        assert sniff_format(buffer) == ImageFormat.unknown


class TestImageFormat:
    def test_extensions(self):
        assert ImageFormat.jpeg.extension == "jpg"
        assert ImageFormat.png.extension == "png"
        assert ImageFormat.gif.extension == "gif"
        assert ImageFormat.webp.extension == "webp"

    def test_mime_types(self):
        assert ImageFormat.jpeg.mime_type == "image/jpeg"
        assert ImageFormat.unknown.mime_type == "unknown"


class TestPngDimensions:
    def test_reads_ihdr(self, png_bytes):
        assert read_png_dimensions(png_bytes) == (10, 10)

    def test_non_png(self, jpeg_bytes):
        assert read_png_dimensions(jpeg_bytes) is None

    def test_truncated_png(self):
        assert read_png_dimensions(b"\x89PNG\r\n\x1a\n" + b"\x00" * 4) is None

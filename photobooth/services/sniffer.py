import struct
from enum import Enum
from typing import Optional, Tuple


class ImageFormat(str, Enum):
    png = "png"
    jpeg = "jpeg"
    gif = "gif"
    webp = "webp"
    unknown = "unknown"

    @property
    def mime_type(self) -> str:
        if self is ImageFormat.unknown:
            return "unknown"
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        if self is ImageFormat.jpeg:
            return "jpg"
        return self.value


PNG_MAGIC = b"\x89PNG\r\n\x1a\n"

# Keyed on the first four bytes of the buffer
SIGNATURES = {
    PNG_MAGIC[:4]: ImageFormat.png,
    b"\xff\xd8\xff\xe0": ImageFormat.jpeg,
    b"\xff\xd8\xff\xe1": ImageFormat.jpeg,
    b"\xff\xd8\xff\xe2": ImageFormat.jpeg,
    b"\xff\xd8\xff\xe3": ImageFormat.jpeg,
    b"\xff\xd8\xff\xe8": ImageFormat.jpeg,
    b"GIF8": ImageFormat.gif,
}


def sniff_format(buffer: bytes) -> ImageFormat:
    """Detect the image format from leading magic bytes, ignoring any declared type."""
    if not buffer or len(buffer) < 4:
        return ImageFormat.unknown

    header = bytes(buffer[:4])
    if header == b"RIFF":
        if len(buffer) >= 12 and buffer[8:12] == b"WEBP":
            return ImageFormat.webp
        return ImageFormat.unknown

    return SIGNATURES.get(header, ImageFormat.unknown)


def read_png_dimensions(buffer: bytes) -> Optional[Tuple[int, int]]:
    if len(buffer) > 24 and buffer[:8] == PNG_MAGIC:
        return struct.unpack(">II", buffer[16:24])
    return None

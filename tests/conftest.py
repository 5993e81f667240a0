import base64
import io
import os
import tempfile

# Keep the module-level app from creating directories in the working tree
_default_root = tempfile.mkdtemp(prefix="photobooth-tests-")
os.environ.setdefault("PHOTOBOOTH_UPLOADS_DIR", os.path.join(_default_root, "uploads"))
os.environ.setdefault("PHOTOBOOTH_THUMBNAILS_DIR", os.path.join(_default_root, "uploads", "thumbnails"))
os.environ.setdefault("PHOTOBOOTH_OVERLAYS_DIR", os.path.join(_default_root, "overlays"))

import pytest
from PIL import Image

from photobooth.services.storage import ImageStore


def encode_image(image: Image.Image, image_format: str) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


def data_uri(data: bytes, subtype: str = "png") -> str:
    return f"data:image/{subtype};base64,{base64.b64encode(data).decode('ascii')}"


@pytest.fixture
def png_bytes():
    """A valid 10x10 PNG."""
    return encode_image(Image.new("RGB", (10, 10), (255, 0, 0)), "PNG")


@pytest.fixture
def jpeg_bytes():
    return encode_image(Image.new("RGB", (10, 10), (0, 0, 255)), "JPEG")


@pytest.fixture
def gif_bytes():
    return encode_image(Image.new("P", (10, 10)), "GIF")


@pytest.fixture
def store(tmp_path):
    image_store = ImageStore(tmp_path / "uploads", tmp_path / "uploads" / "thumbnails", tmp_path / "overlays")
    image_store.ensure_directories()
    return image_store

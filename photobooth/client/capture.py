import base64
import io
from typing import Optional

from PIL import Image

from photobooth.client.uploader import CapturePayload
from photobooth.config import settings
from photobooth.logging import get_logger

logger = get_logger(__name__)


def crop_to_aspect(image: Image.Image, ratio: float) -> Image.Image:
    """Center-crop ``image`` to width/height ``ratio``."""
    width, height = image.size
    if width / height > ratio:
        target_width, target_height = int(round(height * ratio)), height
    else:
        target_width, target_height = width, int(round(width / ratio))

    left = (width - target_width) // 2
    top = (height - target_height) // 2
    return image.crop((left, top, left + target_width, top + target_height))


def apply_overlay(image: Image.Image, overlay: Image.Image) -> Image.Image:
    # The overlay is stretched over the whole frame
    overlay = overlay.convert("RGBA").resize(image.size, Image.Resampling.LANCZOS)
    return Image.alpha_composite(image.convert("RGBA"), overlay)


def load_overlay(data: bytes) -> Optional[Image.Image]:
    try:
        overlay = Image.open(io.BytesIO(data))
        overlay.load()
    except (OSError, ValueError) as e:
        logger.warning("overlay_unreadable", error=str(e))
        return None
    return overlay


def encode_image(image: Image.Image, image_format: str, **save_options) -> bytes:
    if image_format.upper() == "JPEG" and image.mode != "RGB":
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format=image_format, **save_options)
    return buffer.getvalue()


def to_data_uri(data: bytes, image_format: str) -> str:
    mime_type = Image.MIME.get(image_format.upper(), f"image/{image_format.lower()}")
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def make_thumbnail(image: Image.Image, width: int = None, quality: int = None) -> str:
    width = width or settings.thumbnail_width
    quality = quality or settings.thumbnail_quality

    height = max(1, round(image.height * width / image.width))
    thumb = image.resize((width, height), Image.Resampling.LANCZOS)
    return to_data_uri(encode_image(thumb, "JPEG", quality=quality), "JPEG")


def build_payload(
        frame: Image.Image,
        landscape: bool = True,
        overlay: Optional[Image.Image] = None,
        image_format: str = None
) -> CapturePayload:
    """Turn a raw camera frame into an upload-ready capture.

    The frame is cropped to the booth's aspect ratio, the overlay (if any) is
    composited on top, and a small JPEG thumbnail is generated alongside the
    full image.
    """
    image_format = image_format or settings.image_format
    ratio = settings.aspect_ratio_landscape if landscape else settings.aspect_ratio_portrait

    image = crop_to_aspect(frame, ratio)
    if overlay is not None:
        image = apply_overlay(image, overlay)

    thumbnail = make_thumbnail(image) if settings.thumbnail_enabled else None
    return CapturePayload(
        image=to_data_uri(encode_image(image, image_format), image_format),
        thumbnail=thumbnail,
        width=image.width,
        height=image.height,
    )

import asyncio
import re
from typing import Any, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from photobooth.api.dependencies import enforce_upload_limit, get_image_store, get_upload_validator
from photobooth.config import settings
from photobooth.exceptions import ServerError, UploadError, UploadTimeout
from photobooth.logging import get_logger
from photobooth.models.upload import MessageResponse, UploadRequest, UploadResponse
from photobooth.services.rate_limit import client_ip
from photobooth.services.sniffer import ImageFormat, read_png_dimensions
from photobooth.services.storage import ImageStore
from photobooth.services.validator import UploadValidator

logger = get_logger(__name__)

router = APIRouter(tags=["upload"])

OS_PATTERNS = [
    (re.compile(r"Windows"), "Windows"),
    (re.compile(r"Android"), "Android"),
    (re.compile(r"iPhone|iPad|iPod"), "iOS"),
    (re.compile(r"Mac OS"), "macOS"),
    (re.compile(r"Linux"), "Linux"),
]


def describe_os(user_agent: Optional[str]) -> str:
    if not user_agent:
        return "Unknown"
    for pattern, name in OS_PATTERNS:
        if pattern.search(user_agent):
            return name
    return "Unknown OS"


async def _validate_image(image: str, validator: UploadValidator, log) -> Tuple[bytes, ImageFormat]:
    try:
        return await run_in_threadpool(validator.validate, image)
    except UploadError as e:
        log.warning("upload_rejected", reason=type(e).__name__, message=e.message)
        raise


async def _store_thumbnail(thumbnail: Any, filename: str, store: ImageStore, validator: UploadValidator, log) -> None:
    try:
        buffer, _ = await asyncio.wait_for(
            run_in_threadpool(validator.validate, thumbnail), timeout=settings.upload_timeout_seconds
        )
        thumb_filename = await store.save_thumbnail(buffer, filename)
    except UploadError as e:
        log.warning("thumbnail_skipped", filename=filename, reason=type(e).__name__, message=e.message)
        return
    except asyncio.TimeoutError:
        log.warning("thumbnail_skipped", filename=filename, reason="timeout")
        return
    except Exception:
        log.exception("thumbnail_exception", filename=filename)
        return

    log.info("thumbnail_saved", filename=thumb_filename, size_kb=round(len(buffer) / 1024, 2))


ERROR_RESPONSES = {code: {"model": MessageResponse} for code in (400, 429, 500, 503)}


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(enforce_upload_limit)]
)
async def upload_capture(
        payload: UploadRequest,
        request: Request,
        store: ImageStore = Depends(get_image_store),
        validator: UploadValidator = Depends(get_upload_validator)
):
    log = logger.bind(client_ip=client_ip(request), os=describe_os(request.headers.get("user-agent")))
    log.info("upload_attempt")

    # Only validation is bounded; a started write always runs to completion
    try:
        buffer, detected = await asyncio.wait_for(
            _validate_image(payload.image, validator, log), timeout=settings.upload_timeout_seconds
        )
    except UploadError:
        raise
    except asyncio.TimeoutError:
        log.error("upload_timed_out", timeout_seconds=settings.upload_timeout_seconds)
        raise UploadTimeout()
    except Exception:
        log.exception("upload_exception")
        raise ServerError()

    try:
        filename = await store.save(buffer, detected.extension)
    except UploadError:
        raise
    except Exception:
        log.exception("upload_exception")
        raise ServerError()

    dimensions = read_png_dimensions(buffer)
    log.info(
        "upload_saved",
        filename=filename,
        mime_type=detected.mime_type,
        size_kb=round(len(buffer) / 1024, 2),
        resolution=f"{dimensions[0]}x{dimensions[1]}" if dimensions else "N/A",
    )

    if payload.thumbnail is not None:
        await _store_thumbnail(payload.thumbnail, filename, store, validator, log)

    return UploadResponse(message="Saved successfully", filename=filename)

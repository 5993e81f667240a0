from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from photobooth.api.middleware import BodySizeLimitMiddleware
from photobooth.api.routes import diagnostics, gallery, upload
from photobooth.config import request_body_limit, settings
from photobooth.exceptions import RateLimitExceeded, UploadError
from photobooth.logging import get_logger, setup_logging
from photobooth.services.rate_limit import SlidingWindowLimiter, client_ip
from photobooth.services.storage import ImageStore
from photobooth.services.validator import UploadValidator

logger = get_logger(__name__)


def _message_response(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


def create_app(
        store: Optional[ImageStore] = None,
        validator: Optional[UploadValidator] = None,
        request_limiter: Optional[SlidingWindowLimiter] = None,
        upload_limiter: Optional[SlidingWindowLimiter] = None,
        max_body_bytes: Optional[int] = None
) -> FastAPI:
    store = store or ImageStore(settings.uploads_dir, settings.thumbnails_dir, settings.overlays_dir)
    # Static mounts need the directories to exist before the app is built
    store.ensure_directories()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.ensure_directories()
        logger.info(
            "server_starting",
            uploads_dir=str(store.images_dir),
            thumbnails_dir=str(store.thumbnails_dir),
            overlays_dir=str(store.overlays_dir),
            max_file_size_mb=settings.max_file_size_mb,
        )
        yield
        logger.info("server_stopping")

    app = FastAPI(
        title=settings.app_name,
        description=settings.app_description,
        debug=settings.debug,
        lifespan=lifespan
    )

    app.state.image_store = store
    app.state.upload_validator = validator or UploadValidator(settings.allowed_formats, settings.max_upload_bytes)
    app.state.request_limiter = request_limiter or SlidingWindowLimiter(
        settings.rate_limit_max_requests, settings.rate_limit_window_seconds
    )
    app.state.upload_limiter = upload_limiter or SlidingWindowLimiter(
        settings.upload_rate_limit_max_requests, settings.upload_rate_limit_window_seconds
    )

    if max_body_bytes is None:
        max_body_bytes = request_body_limit(
            app.state.upload_validator.max_bytes, settings.request_body_overhead_bytes
        )
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_requests(request: Request, call_next):
        allowed, retry_after = request.app.state.request_limiter.consume(client_ip(request))
        if not allowed:
            logger.warning("request_rate_limited", client_ip=client_ip(request), path=request.url.path)
            return _message_response(
                429, RateLimitExceeded.default_message, headers={"Retry-After": str(retry_after)}
            )
        return await call_next(request)

    @app.exception_handler(UploadError)
    async def upload_error_handler(request: Request, exc: UploadError):
        headers = None
        if isinstance(exc, RateLimitExceeded):
            logger.warning("upload_rate_limited", client_ip=client_ip(request))
            headers = {"Retry-After": str(exc.retry_after)}
        return _message_response(exc.status_code, exc.message, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning("invalid_request_body", path=request.url.path, errors=len(exc.errors()))
        return _message_response(400, "Invalid input data.")

    app.include_router(upload.router)
    app.include_router(gallery.router)
    app.include_router(diagnostics.router)
    app.mount("/uploads", StaticFiles(directory=store.images_dir), name="uploads")
    app.mount("/overlays", StaticFiles(directory=store.overlays_dir), name="overlays")

    return app


setup_logging(settings.log_level, settings.json_logs)
app = create_app()

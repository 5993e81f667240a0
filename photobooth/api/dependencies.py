from fastapi import Request

from photobooth.exceptions import RateLimitExceeded
from photobooth.services.rate_limit import client_ip


def get_image_store(request: Request):
    return request.app.state.image_store


def get_upload_validator(request: Request):
    return request.app.state.upload_validator


def enforce_upload_limit(request: Request) -> None:
    allowed, retry_after = request.app.state.upload_limiter.consume(client_ip(request))
    if not allowed:
        raise RateLimitExceeded("Too many uploads, please try again later.", retry_after=retry_after)

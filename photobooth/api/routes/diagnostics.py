from fastapi import APIRouter, Depends, Request

from photobooth.api.dependencies import get_image_store
from photobooth.models.upload import HealthResponse, IpResponse
from photobooth.services.rate_limit import client_ip
from photobooth.services.storage import ImageStore

router = APIRouter(tags=["diagnostics"])


@router.get("/my-ip", response_model=IpResponse)
async def my_ip(request: Request):
    return IpResponse(ip=client_ip(request))


@router.get("/health", response_model=HealthResponse)
async def health_check(store: ImageStore = Depends(get_image_store)):
    return HealthResponse(status="healthy", images=len(await store.list_images()))

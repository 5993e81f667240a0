from typing import List

from fastapi import APIRouter, Depends

from photobooth.api.dependencies import get_image_store
from photobooth.services.storage import ImageStore

router = APIRouter(tags=["gallery"])


@router.get("/gallery-data", response_model=List[str])
async def gallery_data(store: ImageStore = Depends(get_image_store)):
    return await store.list_images()


@router.get("/overlays-list", response_model=List[str])
async def overlays_list(store: ImageStore = Depends(get_image_store)):
    return await store.list_overlays()

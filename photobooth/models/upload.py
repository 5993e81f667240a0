from pydantic import BaseModel, StrictStr
from typing import Any, Optional


class UploadRequest(BaseModel):
    image: StrictStr
    thumbnail: Optional[Any] = None
    width: Optional[Any] = None
    height: Optional[Any] = None


class UploadResponse(BaseModel):
    message: str
    filename: str


class MessageResponse(BaseModel):
    message: str


class IpResponse(BaseModel):
    ip: str


class HealthResponse(BaseModel):
    status: str
    images: int

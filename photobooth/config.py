from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


def request_body_limit(max_upload_bytes: int, overhead_bytes: int) -> int:
    """Largest JSON body that can carry an image of ``max_upload_bytes`` as base64."""
    return -(-max_upload_bytes // 3) * 4 + overhead_bytes


class Settings(BaseSettings):
    app_name: str = "Photobooth Upload Server"
    app_description: str = "Receives photobooth captures, validates them and serves the gallery"
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = False

    host: str = "0.0.0.0"
    port: int = 3000
    trust_proxy: bool = True

    uploads_dir: Path = Path("uploads")
    thumbnails_dir: Path = Path("uploads/thumbnails")
    overlays_dir: Path = Path("overlays")

    allowed_formats: List[str] = ["png", "jpeg", "gif", "webp"]
    max_file_size_mb: int = 50
    # Room for the JSON wrapper and thumbnail on top of the base64-encoded image
    request_body_overhead_bytes: int = 1024 * 1024
    upload_timeout_seconds: float = 60.0

    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 1000
    upload_rate_limit_window_seconds: int = 60
    upload_rate_limit_max_requests: int = 20

    # Capture client
    server_url: str = "http://localhost:3000"
    camera_index: int = 0
    camera_width: int = 1920
    camera_height: int = 1080
    mirror_camera: bool = True
    aspect_ratio_landscape: float = 16 / 9
    aspect_ratio_portrait: float = 9 / 16
    image_format: str = "PNG"
    thumbnail_enabled: bool = True
    thumbnail_width: int = 320
    thumbnail_quality: int = 60

    retry_delay_seconds: float = 2.0
    network_retry_delay_seconds: float = 3.0
    synced_display_seconds: float = 2.0

    model_config = SettingsConfigDict(env_file=".env", env_prefix="PHOTOBOOTH_", extra="ignore")

    @property
    def max_upload_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


settings = Settings()

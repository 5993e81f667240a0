import uvicorn

from photobooth.config import settings
from photobooth.logging import get_logger, setup_logging

logger = get_logger("photobooth.run")

if __name__ == "__main__":
    setup_logging(settings.log_level, settings.json_logs)
    logger.info(
        "starting_upload_server",
        url=f"http://{settings.host}:{settings.port}",
        uploads_dir=str(settings.uploads_dir),
        overlays_dir=str(settings.overlays_dir),
    )

    uvicorn.run(
        "photobooth.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,
    )

"""Filesystem persistence for captures, thumbnails and overlays.

Every write lands in a dot-prefixed temporary file next to its destination and
is then moved into place with an atomic replace, so readers (the static file
mount and the gallery listing) never see a partially written image.
"""

import asyncio
import os
import re
import time
import uuid
from pathlib import Path
from typing import List

import aiofiles
import aiofiles.os

from photobooth.exceptions import PersistenceFailure
from photobooth.logging import get_logger

logger = get_logger(__name__)

IMAGE_NAME_PATTERN = re.compile(r"\.(png|jpe?g|gif|webp)$", re.IGNORECASE)


def list_image_files(directory: Path) -> List[str]:
    try:
        entries = list(os.scandir(directory))
    except OSError:
        return []

    names = []
    for entry in entries:
        if entry.name.startswith("."):
            continue
        if not IMAGE_NAME_PATTERN.search(entry.name):
            continue
        try:
            if not entry.is_file(follow_symlinks=False):
                continue
        except OSError:
            continue
        names.append(entry.name)
    return names


class ImageStore:
    def __init__(self, images_dir: Path, thumbnails_dir: Path, overlays_dir: Path):
        self.images_dir = Path(images_dir)
        self.thumbnails_dir = Path(thumbnails_dir)
        self.overlays_dir = Path(overlays_dir)
        self._stamp_lock = asyncio.Lock()
        self._last_stamp = 0

    def ensure_directories(self) -> None:
        for directory in (self.images_dir, self.thumbnails_dir, self.overlays_dir):
            directory.mkdir(parents=True, exist_ok=True)

    async def _next_stamp(self) -> int:
        # Strictly increasing per process, and never reusing a stamp already on disk in any
        # extension since thumbnails are named after the stamp alone
        async with self._stamp_lock:
            taken = {name.split(".", 1)[0] for name in await aiofiles.os.listdir(self.images_dir)}
            stamp = max(int(time.time() * 1000), self._last_stamp + 1)
            while f"capture_{stamp}" in taken:
                stamp += 1
            self._last_stamp = stamp
            return stamp

    async def _write_atomic(self, destination: Path, buffer: bytes) -> None:
        temp_path = destination.with_name(f".{destination.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            async with aiofiles.open(temp_path, "wb") as f:
                await f.write(buffer)
            await aiofiles.os.replace(temp_path, destination)
        except BaseException:
            try:
                os.unlink(temp_path)
            except FileNotFoundError:
                pass
            raise

    async def save(self, buffer: bytes, extension: str) -> str:
        try:
            filename = f"capture_{await self._next_stamp()}.{extension}"
            await self._write_atomic(self.images_dir / filename, buffer)
        except OSError as e:
            logger.error("image_write_failed", directory=str(self.images_dir), error=str(e))
            raise PersistenceFailure()
        return filename

    async def save_thumbnail(self, buffer: bytes, base_filename: str) -> str:
        thumb_filename = f"{Path(base_filename).stem}_thumb.jpg"
        try:
            await self._write_atomic(self.thumbnails_dir / thumb_filename, buffer)
        except OSError as e:
            logger.error("thumbnail_write_failed", filename=thumb_filename, error=str(e))
            raise PersistenceFailure()
        return thumb_filename

    async def list_images(self) -> List[str]:
        return await asyncio.to_thread(list_image_files, self.images_dir)

    async def list_overlays(self) -> List[str]:
        return await asyncio.to_thread(list_image_files, self.overlays_dir)

"""In-memory, single-flight upload queue for the capture client.

Captures are delivered strictly in order. The head of the queue is only removed
once the server acknowledges it; transient failures keep it in place and retry
after a delay, permanent client errors move it to ``failed`` so it cannot block
the captures queued behind it.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Deque, List, Optional

from photobooth.client.uploader import CapturePayload, CaptureUploader, DeliveryResult, DeliveryStatus
from photobooth.config import settings
from photobooth.logging import get_logger

logger = get_logger(__name__)


class QueueState(str, Enum):
    uploading = "uploading"
    pending = "pending"
    synced = "synced"
    cleared = "cleared"


@dataclass(frozen=True)
class QueueStatus:
    state: QueueState
    pending: int
    failed: int = 0

    @property
    def text(self) -> str:
        if self.state == QueueState.uploading:
            text = f"Uploading ({self.pending})"
        elif self.state == QueueState.pending:
            text = f"Pending {self.pending}"
        elif self.state == QueueState.synced:
            text = "Synced"
        else:
            text = ""
        if self.failed:
            text = f"{text} | Failed {self.failed}".lstrip(" |")
        return text


@dataclass(frozen=True)
class FailedUpload:
    payload: CapturePayload
    status_code: Optional[int]
    message: Optional[str]


class UploadQueue:
    def __init__(
            self,
            uploader: CaptureUploader,
            retry_delay: float = None,
            network_retry_delay: float = None,
            synced_display_seconds: float = None,
            on_status: Optional[Callable[[QueueStatus], None]] = None,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.uploader = uploader
        self.retry_delay = settings.retry_delay_seconds if retry_delay is None else retry_delay
        self.network_retry_delay = (
            settings.network_retry_delay_seconds if network_retry_delay is None else network_retry_delay
        )
        self.synced_display_seconds = (
            settings.synced_display_seconds if synced_display_seconds is None else synced_display_seconds
        )
        self.on_status = on_status
        self._sleep = sleep

        self._items: Deque[CapturePayload] = deque()
        self.failed: List[FailedUpload] = []
        self.is_uploading = False
        self._task: Optional[asyncio.Task] = None
        self._clear_task: Optional[asyncio.Task] = None
        self._idle = asyncio.Event()
        self._idle.set()

    def __len__(self) -> int:
        return len(self._items)

    @property
    def pending(self) -> List[CapturePayload]:
        return list(self._items)

    def enqueue(self, payload: CapturePayload) -> None:
        """Append a capture and start sending if nothing is in flight. Needs a running loop."""
        self._items.append(payload)
        self._idle.clear()
        self._report()
        self._begin_send()

    def _begin_send(self) -> None:
        if self.is_uploading or not self._items:
            return
        loop = asyncio.get_running_loop()
        # Set before the task exists so a concurrent enqueue cannot start a second send
        self.is_uploading = True
        self._report()
        self._task = loop.create_task(self._send_head())

    async def _send_head(self) -> None:
        payload = self._items[0]
        cancelled = False
        try:
            try:
                result = await self.uploader.deliver(payload)
            except Exception as e:
                logger.exception("upload_attempt_crashed")
                result = DeliveryResult(DeliveryStatus.network_failure, message=str(e))
            await self._settle(payload, result)
        except asyncio.CancelledError:
            cancelled = True
            raise
        finally:
            self.is_uploading = False
            if not cancelled:
                self._report()
                if self._items:
                    self._begin_send()
                else:
                    self._idle.set()

    async def _settle(self, payload: CapturePayload, result: DeliveryResult) -> None:
        if result.status == DeliveryStatus.accepted:
            self._items.popleft()
            logger.info("upload_succeeded", filename=result.filename, remaining=len(self._items))
        elif not result.retryable:
            self._items.popleft()
            self.failed.append(FailedUpload(payload, result.status_code, result.message))
            logger.error(
                "upload_dropped", status_code=result.status_code, message=result.message, remaining=len(self._items)
            )
        elif result.status == DeliveryStatus.network_failure:
            logger.warning("upload_network_failure", error=result.message, retry_in=self.network_retry_delay)
            await self._sleep(self.network_retry_delay)
        else:
            logger.warning(
                "upload_rejected", status_code=result.status_code, message=result.message, retry_in=self.retry_delay
            )
            await self._sleep(self.retry_delay)

    def status(self) -> QueueStatus:
        if self.is_uploading:
            state = QueueState.uploading
        elif self._items:
            state = QueueState.pending
        else:
            state = QueueState.synced
        return QueueStatus(state, len(self._items), len(self.failed))

    def _report(self) -> None:
        status = self.status()
        if self.on_status is not None:
            self.on_status(status)
        if status.state == QueueState.synced and self.on_status is not None:
            if self._clear_task is not None:
                self._clear_task.cancel()
            self._clear_task = asyncio.get_running_loop().create_task(self._clear_synced())

    async def _clear_synced(self) -> None:
        await self._sleep(self.synced_display_seconds)
        if not self._items and not self.is_uploading and self.on_status is not None:
            self.on_status(QueueStatus(QueueState.cleared, 0, len(self.failed)))

    async def join(self) -> None:
        """Wait until every queued capture has been delivered or dropped."""
        await self._idle.wait()

    async def close(self) -> None:
        for task in (self._task, self._clear_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self.is_uploading = False

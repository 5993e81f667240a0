import argparse
import asyncio

from photobooth.client.camera import CameraService, CameraUnavailable
from photobooth.client.capture import build_payload, load_overlay
from photobooth.client.queue import QueueStatus, UploadQueue
from photobooth.client.uploader import CaptureUploader
from photobooth.config import settings
from photobooth.logging import get_logger, setup_logging

logger = get_logger("photobooth.booth")


def initialize_argparser():
    parser = argparse.ArgumentParser(formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    parser.description = "Capture photos from the webcam and upload them to the photobooth server."

    parser.add_argument("--server", default=settings.server_url, help="Base URL of the upload server")
    parser.add_argument("--overlay", default=None, help="Overlay filename listed by /overlays-list")
    parser.add_argument("--portrait", action="store_true", help="Crop captures to portrait instead of landscape")

    args = parser.parse_args()

    return parser, args


def print_status(status: QueueStatus) -> None:
    if status.text:
        print(f"[upload] {status.text}")


async def run_booth(args) -> None:
    camera = CameraService()
    async with CaptureUploader(args.server) as uploader:
        overlay = None
        if args.overlay:
            available = await uploader.list_overlays()
            if args.overlay not in available:
                logger.warning("overlay_not_found", overlay=args.overlay, available=available)
            else:
                overlay = load_overlay(await uploader.fetch_overlay(args.overlay))

        queue = UploadQueue(uploader, on_status=print_status)
        try:
            while True:
                line = await asyncio.to_thread(input, "Press Enter to take a photo (q to quit): ")
                if line.strip().lower() == "q":
                    break
                try:
                    frame = await asyncio.to_thread(camera.capture_frame)
                except CameraUnavailable as e:
                    logger.error("capture_failed", error=str(e))
                    continue
                payload = await asyncio.to_thread(build_payload, frame, not args.portrait, overlay)
                logger.info("capture_queued", width=payload.width, height=payload.height, pending=len(queue) + 1)
                queue.enqueue(payload)

            if len(queue):
                print(f"Waiting for {len(queue)} pending upload(s), Ctrl+C to abandon them")
            await queue.join()
        finally:
            await queue.close()
            camera.cleanup()


if __name__ == "__main__":
    setup_logging(settings.log_level, settings.json_logs)
    _, args = initialize_argparser()
    try:
        asyncio.run(run_booth(args))
    except KeyboardInterrupt:
        pass

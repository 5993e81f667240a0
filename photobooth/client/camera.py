import cv2
from PIL import Image

from photobooth.config import settings
from photobooth.logging import get_logger

logger = get_logger(__name__)


class CameraUnavailable(Exception):
    pass


class CameraService:
    def __init__(self, index: int = None, width: int = None, height: int = None, mirror: bool = None):
        self.index = settings.camera_index if index is None else index
        self.width = width or settings.camera_width
        self.height = height or settings.camera_height
        self.mirror = settings.mirror_camera if mirror is None else mirror
        self.camera = None
        self.is_active = False

    def initialize(self) -> bool:
        self.camera = cv2.VideoCapture(self.index)
        if not self.camera.isOpened():
            logger.error("camera_initialization_failed", index=self.index)
            self.camera.release()
            self.camera = None
            return False

        self.camera.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.camera.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        self.is_active = True
        logger.info("camera_initialized", index=self.index, width=self.width, height=self.height)
        return True

    def capture_frame(self) -> Image.Image:
        if not self.is_active or self.camera is None:
            if not self.initialize():
                raise CameraUnavailable("Camera not available")

        ret, frame = self.camera.read()
        if not ret:
            raise CameraUnavailable("Failed to capture frame")

        if self.mirror:
            frame = cv2.flip(frame, 1)
        frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        return Image.fromarray(frame)

    def cleanup(self):
        if self.camera:
            self.camera.release()
            self.is_active = False

"""Menu capture: a USB camera via OpenCV, or an image file from disk."""

from __future__ import annotations

import logging
import mimetypes
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


def _import_cv2():
    try:
        import cv2
    except ImportError:
        raise ImportError(
            "opencv-python is required: pip install opencv-python"
        ) from None
    return cv2


class MenuCamera:
    """Exclusively owned camera device that grabs JPEG stills.

    The device is held from :meth:`open` until :meth:`release`; using the
    camera as a context manager releases it on every exit path.
    """

    def __init__(
        self, index: int = 0, jpeg_quality: int = 80, save_dir: str = ""
    ) -> None:
        self._index = index
        self._jpeg_quality = jpeg_quality
        self._save_dir = Path(save_dir).expanduser() if save_dir else None
        self._cap = None

    @property
    def index(self) -> int:
        return self._index

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def open(self) -> None:
        if self._cap is not None:
            return
        cv2 = _import_cv2()
        cap = cv2.VideoCapture(self._index)
        if not cap.isOpened():
            cap.release()
            raise RuntimeError(
                f"Could not open camera {self._index}. Check the connection "
                f"and camera permissions."
            )
        self._cap = cap
        logger.debug("Camera %d acquired", self._index)

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.debug("Camera %d released", self._index)

    def __enter__(self) -> MenuCamera:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    def capture(self) -> bytes:
        """Grab a single frame and return it JPEG-encoded."""
        if self._cap is None:
            raise RuntimeError(f"Camera {self._index} is not open.")
        cv2 = _import_cv2()

        ret, frame = self._cap.read()
        if not ret or frame is None:
            raise RuntimeError(
                f"Could not read a frame from camera {self._index}."
            )

        ok, buf = cv2.imencode(
            ".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self._jpeg_quality]
        )
        if not ok:
            raise RuntimeError("Failed to encode the captured frame as JPEG.")
        data = buf.tobytes()

        if self._save_dir is not None:
            self._save_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            path = self._save_dir / f"menu_cam{self._index}_{timestamp}.jpg"
            path.write_bytes(data)
            logger.info("Saved captured frame to %s", path)

        return data

    @staticmethod
    def list_cameras(max_check: int = 10) -> list[int]:
        """List available USB camera indices by probing."""
        cv2 = _import_cv2()

        available: list[int] = []
        for i in range(max_check):
            cap = cv2.VideoCapture(i)
            if cap.isOpened():
                available.append(i)
                cap.release()
        return available


def read_image_file(path: str | Path) -> tuple[bytes, str]:
    """Load an uploaded menu image, returning its bytes and MIME type."""
    p = Path(path).expanduser()
    if not p.is_file():
        raise FileNotFoundError(f"Image file not found: {p}")
    mime_type = mimetypes.guess_type(p.name)[0] or "image/jpeg"
    if not mime_type.startswith("image/"):
        raise ValueError(f"Not an image file: {p} ({mime_type})")
    return p.read_bytes(), mime_type

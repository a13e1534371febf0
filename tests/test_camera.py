"""Tests for the menu camera module (mocked OpenCV)."""

import sys
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from gourmet_lens.camera import MenuCamera, read_image_file


@pytest.fixture
def mock_cv2():
    """Inject a mock cv2 module into sys.modules."""
    mock = MagicMock()
    with patch.dict(sys.modules, {"cv2": mock}):
        yield mock


@pytest.fixture
def working_cap(mock_cv2):
    mock_cap = MagicMock()
    mock_cap.isOpened.return_value = True
    mock_cap.read.return_value = (True, np.zeros((480, 640, 3), dtype=np.uint8))
    mock_cv2.VideoCapture.return_value = mock_cap
    mock_cv2.imencode.return_value = (
        True,
        np.frombuffer(b"\xff\xd8jpeg", dtype=np.uint8),
    )
    return mock_cap


class TestMenuCamera:
    def test_capture_returns_jpeg_bytes(self, mock_cv2, working_cap):
        cam = MenuCamera(index=0, jpeg_quality=80)
        cam.open()
        data = cam.capture()
        cam.release()

        assert data == b"\xff\xd8jpeg"
        args = mock_cv2.imencode.call_args.args
        assert args[0] == ".jpg"
        assert args[2][1] == 80
        working_cap.release.assert_called_once()

    def test_context_manager_releases(self, mock_cv2, working_cap):
        with MenuCamera(index=1) as cam:
            assert cam.is_open
            cam.capture()
        assert not cam.is_open
        mock_cv2.VideoCapture.assert_called_once_with(1)
        working_cap.release.assert_called_once()

    def test_context_manager_releases_on_error(self, mock_cv2, working_cap):
        working_cap.read.return_value = (False, None)
        with pytest.raises(RuntimeError, match="Could not read a frame"):
            with MenuCamera() as cam:
                cam.capture()
        working_cap.release.assert_called_once()

    def test_open_failure(self, mock_cv2):
        mock_cap = MagicMock()
        mock_cap.isOpened.return_value = False
        mock_cv2.VideoCapture.return_value = mock_cap

        cam = MenuCamera(index=0)
        with pytest.raises(RuntimeError, match="Could not open camera 0"):
            cam.open()
        assert not cam.is_open
        mock_cap.release.assert_called_once()

    def test_capture_without_open(self, mock_cv2):
        with pytest.raises(RuntimeError, match="not open"):
            MenuCamera().capture()

    def test_open_twice_keeps_one_device(self, mock_cv2, working_cap):
        cam = MenuCamera()
        cam.open()
        cam.open()
        assert mock_cv2.VideoCapture.call_count == 1
        cam.release()

    def test_save_dir_keeps_frame(self, mock_cv2, working_cap, tmp_path):
        save_dir = tmp_path / "frames"
        with MenuCamera(save_dir=str(save_dir)) as cam:
            cam.capture()
        saved = list(save_dir.glob("menu_cam0_*.jpg"))
        assert len(saved) == 1
        assert saved[0].read_bytes() == b"\xff\xd8jpeg"

    def test_list_cameras(self, mock_cv2):
        """list_cameras probes indices and returns available ones."""
        caps = {}
        for i in range(10):
            m = MagicMock()
            m.isOpened.return_value = i in (0, 2)
            caps[i] = m

        mock_cv2.VideoCapture.side_effect = lambda i: caps[i]

        assert MenuCamera.list_cameras() == [0, 2]


class TestReadImageFile:
    def test_reads_bytes_and_mime(self, tmp_path):
        img = tmp_path / "menu.png"
        img.write_bytes(b"\x89PNGfake")
        data, mime = read_image_file(img)
        assert data == b"\x89PNGfake"
        assert mime == "image/png"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_image_file(tmp_path / "nope.jpg")

    def test_not_an_image(self, tmp_path):
        doc = tmp_path / "menu.txt"
        doc.write_text("soup")
        with pytest.raises(ValueError, match="Not an image"):
            read_image_file(doc)

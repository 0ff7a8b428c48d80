"""Shared fixtures for facebound tests.

All images are synthetic, so no ML models are needed. Faces are drawn as two
bright square "eyes" on a dark background and found by ``EyeBlobBackend``.
"""

import cv2
import numpy as np
import pytest

from facebound.types import Frame, PixelFormat
from helpers import draw_eyes


@pytest.fixture
def synthetic_face_image():
    """200x200 black BGR image with eyes centred near (80, 100) and (120, 100)."""
    image = np.zeros((200, 200, 3), dtype=np.uint8)
    return draw_eyes(image, (80, 100), (120, 100))


@pytest.fixture
def make_frame():
    """Factory fixture building Frames from BGR arrays."""

    def _make(
        image: np.ndarray,
        pixel_format: PixelFormat = PixelFormat.PNG,
        rotation_degrees: int = 0,
        frame_id: int = 0,
        on_release=None,
    ) -> Frame:
        h, w = image.shape[:2]
        if pixel_format == PixelFormat.PNG:
            data = cv2.imencode(".png", image)[1].tobytes()
        elif pixel_format == PixelFormat.JPEG:
            data = cv2.imencode(".jpg", image)[1].tobytes()
        elif pixel_format == PixelFormat.RGB:
            data = cv2.cvtColor(image, cv2.COLOR_BGR2RGB).tobytes()
        else:
            data = image.tobytes()
        return Frame(
            data=data,
            width=w,
            height=h,
            pixel_format=pixel_format,
            rotation_degrees=rotation_degrees,
            frame_id=frame_id,
            on_release=on_release,
        )

    return _make


@pytest.fixture
def blank_canvas():
    """300x300 black overlay layer."""
    return np.zeros((300, 300, 3), dtype=np.uint8)

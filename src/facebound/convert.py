"""Raw frame → upright, detector-ready image.

Decoding follows the frame's pixel format, then the image is reduced to
RGB565 precision and rotated clockwise by the frame's rotation metadata
so that faces are gravity-upright regardless of sensor mounting.

Example:
    >>> converter = FrameConverter()
    >>> image = converter.convert(frame)
    >>> image.size
    (480, 640)
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np

from facebound.errors import DecodeError
from facebound.types import Frame, PixelFormat, UprightImage

logger = logging.getLogger(__name__)

# Clockwise rotation codes; 0 degrees needs no rotation.
_ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def to_rgb565_precision(image: np.ndarray) -> np.ndarray:
    """Quantize a BGR image to 5/6/5 bits per channel, kept as BGR uint8."""
    packed = cv2.cvtColor(image, cv2.COLOR_BGR2BGR565)
    return cv2.cvtColor(packed, cv2.COLOR_BGR5652BGR)


def rotate_upright(image: np.ndarray, rotation_degrees: int) -> np.ndarray:
    """Rotate an image clockwise by 0, 90, 180 or 270 degrees."""
    rotation = rotation_degrees % 360
    if rotation == 0:
        return image
    code = _ROTATE_CODES.get(rotation)
    if code is None:
        raise ValueError(f"Unsupported rotation: {rotation_degrees}")
    return cv2.rotate(image, code)


class FrameConverter:
    """Converts captured frames into upright images.

    Args:
        quantize_rgb565: Reduce decoded pixels to RGB565 precision. This is
            the fixed channel format the detector is fed with.
    """

    def __init__(self, quantize_rgb565: bool = True):
        self._quantize = quantize_rgb565

    def convert(self, frame: Frame) -> UprightImage:
        """Decode, normalize and rotate one frame.

        Raises:
            DecodeError: If the raw buffer cannot be decoded.
        """
        bgr = self.decode(frame)
        if self._quantize:
            bgr = to_rgb565_precision(bgr)
        upright = rotate_upright(bgr, frame.rotation_degrees)
        logger.debug(
            "Frame %d converted: %dx%d rot=%d -> %dx%d",
            frame.frame_id, bgr.shape[1], bgr.shape[0],
            frame.rotation_degrees, upright.shape[1], upright.shape[0],
        )
        return UprightImage(data=np.ascontiguousarray(upright), frame_id=frame.frame_id)

    def decode(self, frame: Frame) -> np.ndarray:
        """Decode the raw buffer into a BGR uint8 array (sensor orientation)."""
        fmt = frame.pixel_format
        try:
            if fmt in (PixelFormat.JPEG, PixelFormat.PNG):
                image = _decode_encoded(frame.data)
            elif fmt == PixelFormat.NV21:
                image = _decode_nv21(frame.data, frame.width, frame.height)
            elif fmt in (PixelFormat.BGR, PixelFormat.RGB):
                image = _decode_packed(frame.data, frame.width, frame.height)
                if fmt == PixelFormat.RGB:
                    image = cv2.cvtColor(image, cv2.COLOR_RGB2BGR)
            else:
                raise DecodeError(f"unsupported pixel format {fmt}", frame.frame_id)
        except DecodeError as e:
            if e.frame_id is None:
                raise DecodeError(e.reason, frame.frame_id) from e
            raise
        except cv2.error as e:
            raise DecodeError(f"OpenCV error: {e}", frame.frame_id) from e
        return image


def _as_uint8(data) -> np.ndarray:
    if isinstance(data, np.ndarray):
        if data.dtype != np.uint8:
            raise DecodeError(f"expected uint8 pixel data, got {data.dtype}")
        return data.reshape(-1)
    return np.frombuffer(data, dtype=np.uint8)


def _decode_encoded(data) -> np.ndarray:
    buf = _as_uint8(data)
    if buf.size == 0:
        raise DecodeError("empty buffer")
    image: Optional[np.ndarray] = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeError("image data could not be decoded")
    return image


def _decode_nv21(data, width: int, height: int) -> np.ndarray:
    if width <= 0 or height <= 0 or width % 2 or height % 2:
        raise DecodeError(f"invalid NV21 dimensions {width}x{height}")
    buf = _as_uint8(data)
    expected = width * height * 3 // 2
    if buf.size != expected:
        raise DecodeError(f"NV21 buffer has {buf.size} bytes, expected {expected}")
    yuv = buf.reshape(height * 3 // 2, width)
    return cv2.cvtColor(yuv, cv2.COLOR_YUV2BGR_NV21)


def _decode_packed(data, width: int, height: int) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise DecodeError(f"invalid dimensions {width}x{height}")
    buf = _as_uint8(data)
    expected = width * height * 3
    if buf.size != expected:
        raise DecodeError(f"packed buffer has {buf.size} bytes, expected {expected}")
    return buf.reshape(height, width, 3).copy()


__all__ = ["FrameConverter", "rotate_upright", "to_rgb565_precision"]

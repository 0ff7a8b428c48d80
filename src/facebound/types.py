"""Core data types for the face overlay pipeline.

Coordinate spaces:
    - *Image space*: pixels of the upright (rotation-corrected) image the
      detector runs on. ``FaceRecord`` and ``CropRegion`` live here.
    - *View space*: the on-screen preview surface. ``ViewRect`` lives here
      and is scaled (and possibly mirrored) relative to image space.

Example:
    >>> record = FaceRecord(mid_x=100.0, mid_y=100.0, eyes_distance=20.0)
    >>> ViewRect(80.0, 80.0, 120.0, 120.0).mirrored(300)
    ViewRect(left=180.0, top=80.0, right=220.0, bottom=120.0)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

import numpy as np

VALID_ROTATIONS = (0, 90, 180, 270)


class PixelFormat(Enum):
    """Raw buffer formats accepted from the capture side."""

    JPEG = "jpeg"
    PNG = "png"
    NV21 = "nv21"  # YUV 4:2:0 semi-planar, Y plane then interleaved VU
    BGR = "bgr"
    RGB = "rgb"

    @classmethod
    def from_string(cls, value: str) -> "PixelFormat":
        """Parse a format name (case-insensitive)."""
        try:
            return cls(value.lower())
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown pixel format '{value}' (expected one of: {valid})")


@dataclass(frozen=True, eq=False)
class Frame:
    """A single captured camera frame.

    Owned by the pipeline invocation that received it. Call
    :meth:`release` once processing is over so the capture side can hand
    out the next frame; extra calls are ignored.

    Attributes:
        data: Raw buffer. Encoded bytes for JPEG/PNG, raw bytes or an
            ndarray for NV21/BGR/RGB.
        width: Sensor-oriented width in pixels.
        height: Sensor-oriented height in pixels.
        pixel_format: Layout of ``data``.
        rotation_degrees: Clockwise rotation that makes the image upright.
        frame_id: Monotonic id assigned by the capture side.
        on_release: Callback acknowledging the frame to the capture side.
    """

    data: Union[bytes, np.ndarray]
    width: int
    height: int
    pixel_format: PixelFormat = PixelFormat.JPEG
    rotation_degrees: int = 0
    frame_id: int = 0
    on_release: Optional[Callable[[], None]] = field(
        default=None, compare=False, repr=False
    )
    _release_lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, compare=False, repr=False
    )
    _released: threading.Event = field(
        default_factory=threading.Event, init=False, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        rotation = self.rotation_degrees % 360
        if rotation not in VALID_ROTATIONS:
            raise ValueError(
                f"rotation_degrees must be one of {VALID_ROTATIONS}, "
                f"got {self.rotation_degrees}"
            )
        object.__setattr__(self, "rotation_degrees", rotation)
        if isinstance(self.pixel_format, str):
            object.__setattr__(
                self, "pixel_format", PixelFormat.from_string(self.pixel_format)
            )

    @property
    def released(self) -> bool:
        return self._released.is_set()

    def release(self) -> None:
        """Acknowledge the frame to the capture side (at most once)."""
        with self._release_lock:
            if self._released.is_set():
                return
            self._released.set()
        if self.on_release is not None:
            self.on_release()


@dataclass(frozen=True, eq=False)
class UprightImage:
    """Rotation-corrected, detector-ready image.

    ``data`` is a BGR ``uint8`` array (H, W, 3) holding RGB565 precision
    when produced by :class:`facebound.convert.FrameConverter`.
    """

    data: np.ndarray
    frame_id: int = 0

    @property
    def width(self) -> int:
        return int(self.data.shape[1])

    @property
    def height(self) -> int:
        return int(self.data.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) in pixels."""
        return self.width, self.height


@dataclass(frozen=True)
class FaceRecord:
    """One detected face in image space.

    Attributes:
        mid_x: X of the point midway between the eyes.
        mid_y: Y of the point midway between the eyes.
        eyes_distance: Distance between the eyes in pixels.
        confidence: Detector confidence [0, 1].
    """

    mid_x: float
    mid_y: float
    eyes_distance: float
    confidence: float = 1.0

    def __post_init__(self) -> None:
        if self.eyes_distance < 0:
            raise ValueError(f"eyes_distance must be >= 0, got {self.eyes_distance}")

    @property
    def midpoint(self) -> tuple[float, float]:
        return self.mid_x, self.mid_y


@dataclass(frozen=True)
class ViewRect:
    """Rectangle in view-space coordinates."""

    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def mirrored(self, canvas_width: float) -> "ViewRect":
        """Reflect horizontally inside a canvas of the given width."""
        return ViewRect(
            left=canvas_width - self.right,
            top=self.top,
            right=canvas_width - self.left,
            bottom=self.bottom,
        )

    def as_tuple(self) -> tuple[float, float, float, float]:
        return self.left, self.top, self.right, self.bottom


@dataclass(frozen=True)
class CropRegion:
    """Crop window in upright-image pixels (x, y, width, height)."""

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def as_tuple(self) -> tuple[int, int, int, int]:
        return self.x, self.y, self.width, self.height


__all__ = [
    "VALID_ROTATIONS",
    "PixelFormat",
    "Frame",
    "UprightImage",
    "FaceRecord",
    "ViewRect",
    "CropRegion",
]

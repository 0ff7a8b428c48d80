"""Exceptions raised by the facebound pipeline."""

from typing import Optional


class FaceboundError(Exception):
    """Base class for facebound errors."""


class DecodeError(FaceboundError):
    """Raised when a captured frame cannot be turned into an upright image.

    The frame's pipeline aborts; the frame is still released to the
    capture side and the next frame is processed normally.

    Attributes:
        frame_id: Identifier of the frame that failed, if known.
        reason: Short description of the failure.
    """

    def __init__(self, reason: str, frame_id: Optional[int] = None):
        self.frame_id = frame_id
        self.reason = reason
        if frame_id is None:
            super().__init__(f"Failed to decode frame: {reason}")
        else:
            super().__init__(f"Failed to decode frame {frame_id}: {reason}")


__all__ = ["FaceboundError", "DecodeError"]

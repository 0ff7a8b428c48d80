"""Backend protocol definitions for face detection."""

from typing import List, Protocol

import numpy as np

from facebound.types import FaceRecord


class FaceDetectionBackend(Protocol):
    """Protocol for face detection backends.

    A backend reports each face as the midpoint between the eyes plus the
    inter-eye distance, in the pixel space of the image it was given.
    Implementations are swappable without changing pipeline logic.
    """

    def initialize(self) -> None:
        """Load models. Called once before the first detect()."""
        ...

    def detect(self, image: np.ndarray, max_faces: int) -> List[FaceRecord]:
        """Detect up to ``max_faces`` faces in a BGR image (H, W, 3)."""
        ...

    def cleanup(self) -> None:
        """Release resources and unload models."""
        ...


__all__ = ["FaceDetectionBackend"]

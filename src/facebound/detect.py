"""Bounded face detection over upright images."""

from __future__ import annotations

import logging
from typing import List, Optional

from facebound.backends import FaceDetectionBackend, HaarCascadeBackend
from facebound.types import FaceRecord, UprightImage

logger = logging.getLogger(__name__)

DEFAULT_MAX_FACES = 3


class FaceDetectorAdapter:
    """Runs a detection backend and returns at most ``max_faces`` records.

    The result is a plain list whose length is the number of faces found.
    Its order is whatever the backend produced. An empty list means no
    face and is not an error.

    Args:
        backend: Detection backend. Defaults to :class:`HaarCascadeBackend`.
        max_faces: Upper bound on returned records.

    Example:
        >>> with FaceDetectorAdapter(max_faces=3) as detector:
        ...     records = detector.detect(image)
    """

    def __init__(
        self,
        backend: Optional[FaceDetectionBackend] = None,
        max_faces: int = DEFAULT_MAX_FACES,
    ):
        if max_faces < 1:
            raise ValueError(f"max_faces must be >= 1, got {max_faces}")
        self._backend = backend if backend is not None else HaarCascadeBackend()
        self._max_faces = max_faces
        self._initialized = False

    @property
    def max_faces(self) -> int:
        return self._max_faces

    @property
    def backend(self) -> FaceDetectionBackend:
        return self._backend

    def initialize(self) -> None:
        if self._initialized:
            return
        self._backend.initialize()
        self._initialized = True

    def detect(self, image: UprightImage) -> List[FaceRecord]:
        """Detect faces in an upright image."""
        if not self._initialized:
            self.initialize()
        records = list(self._backend.detect(image.data, self._max_faces))
        if len(records) > self._max_faces:
            records = records[: self._max_faces]
        logger.debug(
            "Frame %d: %d face(s) in %dx%d image",
            image.frame_id, len(records), image.width, image.height,
        )
        return records

    def cleanup(self) -> None:
        if self._initialized:
            self._backend.cleanup()
            self._initialized = False

    def __enter__(self) -> "FaceDetectorAdapter":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()


__all__ = ["DEFAULT_MAX_FACES", "FaceDetectorAdapter"]

"""OpenCV Haar cascade backend for face detection."""

import logging
import math
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

from facebound.types import FaceRecord

logger = logging.getLogger(__name__)

# Eye line and inter-eye distance as fractions of a frontal face box,
# used when the eye cascade does not find both eyes.
EYE_LINE_RATIO = 0.4
EYES_DISTANCE_RATIO = 0.4


class HaarCascadeBackend:
    """Face detection backend using OpenCV Haar cascades.

    Faces come from the frontal-face cascade. Inside the upper half of
    each face box the eye cascade is run; with two eyes found the face
    midpoint and inter-eye distance are measured from them, otherwise
    they are estimated from the face box.

    Args:
        scale_factor: Cascade pyramid scale step.
        min_neighbors: Cascade neighbor threshold.
        min_face_size: Smallest face box (pixels) to report.
        cascade_dir: Directory holding the cascade XML files.
            Defaults to the files bundled with OpenCV.

    Example:
        >>> backend = HaarCascadeBackend()
        >>> backend.initialize()
        >>> records = backend.detect(image, max_faces=3)
    """

    def __init__(
        self,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_face_size: int = 40,
        cascade_dir: Optional[Path] = None,
    ):
        self._scale_factor = scale_factor
        self._min_neighbors = min_neighbors
        self._min_face_size = min_face_size
        self._cascade_dir = Path(cascade_dir) if cascade_dir else Path(cv2.data.haarcascades)
        self._face_cascade: Optional[cv2.CascadeClassifier] = None
        self._eye_cascade: Optional[cv2.CascadeClassifier] = None

    def initialize(self) -> None:
        if self._face_cascade is not None:
            return
        self._face_cascade = self._load("haarcascade_frontalface_default.xml")
        self._eye_cascade = self._load("haarcascade_eye.xml")
        logger.info("Haar cascades loaded from %s", self._cascade_dir)

    def _load(self, filename: str) -> cv2.CascadeClassifier:
        path = self._cascade_dir / filename
        cascade = cv2.CascadeClassifier(str(path))
        if cascade.empty():
            raise RuntimeError(f"Failed to load Haar cascade: {path}")
        return cascade

    def detect(self, image: np.ndarray, max_faces: int) -> List[FaceRecord]:
        if self._face_cascade is None:
            self.initialize()

        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
        gray = cv2.equalizeHist(gray)

        faces = self._face_cascade.detectMultiScale(
            gray,
            scaleFactor=self._scale_factor,
            minNeighbors=self._min_neighbors,
            minSize=(self._min_face_size, self._min_face_size),
        )

        records: List[FaceRecord] = []
        for (x, y, w, h) in faces:
            if len(records) >= max_faces:
                break
            records.append(self._to_record(gray, int(x), int(y), int(w), int(h)))
        return records

    def _to_record(self, gray: np.ndarray, x: int, y: int, w: int, h: int) -> FaceRecord:
        eyes = self._find_eyes(gray, x, y, w, h)
        if eyes is not None:
            (lx, ly), (rx, ry) = eyes
            return FaceRecord(
                mid_x=(lx + rx) / 2.0,
                mid_y=(ly + ry) / 2.0,
                eyes_distance=math.hypot(rx - lx, ry - ly),
            )
        return FaceRecord(
            mid_x=x + w / 2.0,
            mid_y=y + h * EYE_LINE_RATIO,
            eyes_distance=w * EYES_DISTANCE_RATIO,
            confidence=0.5,
        )

    def _find_eyes(self, gray, x, y, w, h):
        """Return the two eye centers (left first) in image pixels, or None."""
        roi = gray[y:y + h // 2, x:x + w]
        if roi.size == 0:
            return None
        eyes = self._eye_cascade.detectMultiScale(
            roi,
            scaleFactor=self._scale_factor,
            minNeighbors=self._min_neighbors,
            minSize=(max(1, int(w * 0.1)), max(1, int(h * 0.1))),
            maxSize=(max(1, int(w * 0.4)), max(1, int(h * 0.3))),
        )
        if len(eyes) < 2:
            return None
        # Two largest candidates, ordered left to right
        largest = sorted(eyes, key=lambda e: e[2] * e[3], reverse=True)[:2]
        centers = sorted(
            (x + ex + ew / 2.0, y + ey + eh / 2.0) for (ex, ey, ew, eh) in largest
        )
        return centers[0], centers[1]

    def cleanup(self) -> None:
        self._face_cascade = None
        self._eye_cascade = None

"""Shared test helpers for facebound tests."""

from typing import List

import cv2
import numpy as np

from facebound.types import FaceRecord


class FixedBackend:
    """Backend that returns a preset list of records."""

    def __init__(self, records: List[FaceRecord]):
        self.records = list(records)
        self.initialized = False
        self.cleaned_up = False
        self.calls = []

    def initialize(self) -> None:
        self.initialized = True

    def detect(self, image, max_faces):
        self.calls.append((image.shape, max_faces))
        return list(self.records)

    def cleanup(self) -> None:
        self.cleaned_up = True


class EyeBlobBackend:
    """Finds one face per pair of bright blobs (left to right)."""

    def initialize(self) -> None:
        pass

    def detect(self, image, max_faces):
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        _, mask = cv2.threshold(gray, 128, 255, cv2.THRESH_BINARY)
        count, _, _, centroids = cv2.connectedComponentsWithStats(mask)
        # Label 0 is the background
        centers = sorted((float(cx), float(cy)) for cx, cy in centroids[1:count])
        records = []
        for (lx, ly), (rx, ry) in zip(centers[0::2], centers[1::2]):
            records.append(
                FaceRecord(
                    mid_x=(lx + rx) / 2.0,
                    mid_y=(ly + ry) / 2.0,
                    eyes_distance=float(np.hypot(rx - lx, ry - ly)),
                )
            )
        return records[:max_faces]

    def cleanup(self) -> None:
        pass


def draw_eyes(image: np.ndarray, left_center, right_center, half: int = 5) -> np.ndarray:
    """Draw two white squares of side ``2 * half`` centred on the given pixels."""
    for cx, cy in (left_center, right_center):
        image[cy - half:cy + half, cx - half:cx + half] = 255
    return image



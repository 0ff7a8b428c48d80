"""Face crop planning and persistence.

The crop is sized by the inter-eye distance (``space``): three spaces
wide, four spaces tall, starting three spaces left of the eye midpoint
and eleven thirds of a space above it. That leaves more headroom above
the eyes than chin room below, then the window is clamped to the image.

Example:
    >>> region = plan_crop(FaceRecord(50.0, 50.0, 40.0), 1000, 1000)
    >>> region.as_tuple()
    (0, 0, 120, 160)
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Optional, Union

import cv2
import numpy as np

from facebound.types import CropRegion, FaceRecord, UprightImage

logger = logging.getLogger(__name__)

MIN_EYES_DISTANCE = 40


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up."""
    return int(math.floor(value + 0.5))


def plan_crop(
    record: FaceRecord,
    image_width: int,
    image_height: int,
    min_eyes_distance: int = MIN_EYES_DISTANCE,
) -> Optional[CropRegion]:
    """Plan a crop window around one face.

    Returns:
        The clamped crop region, or None when the face is too small
        (rounded inter-eye distance below ``min_eyes_distance``).
    """
    space = round_half_up(record.eyes_distance)
    if space < min_eyes_distance:
        return None

    x = round_half_up(record.mid_x)
    y = round_half_up(record.mid_y)

    default_width = min(3 * space, image_width)
    default_height = min(4 * space, image_height)

    clip_x = max(x - 3 * space, 0)
    clip_y = max(y - (11 * space) // 3, 0)

    clip_width = image_width - clip_x if clip_x + default_width > image_width else default_width
    clip_height = image_height - clip_y if clip_y + default_height > image_height else default_height

    # Midpoint outside the image leaves nothing to crop
    if clip_width <= 0 or clip_height <= 0:
        return None

    return CropRegion(x=clip_x, y=clip_y, width=clip_width, height=clip_height)


def crop_image(image: Union[UprightImage, np.ndarray], region: CropRegion) -> np.ndarray:
    """Cut the region out of an image (returns a copy)."""
    data = image.data if isinstance(image, UprightImage) else image
    return data[region.y:region.bottom, region.x:region.right].copy()


class FaceCropWriter:
    """Writes the latest face crop as PNG to one fixed path.

    Each save overwrites the previous file; the last write wins.

    Args:
        path: Destination file. Parent directories are created.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, image: Union[UprightImage, np.ndarray], region: CropRegion) -> Path:
        """Crop and write the PNG.

        Raises:
            OSError: If encoding or writing fails.
        """
        crop = crop_image(image, region)
        ok, encoded = cv2.imencode(".png", crop)
        if not ok:
            raise OSError(f"Failed to encode face crop for {self._path}")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(encoded.tobytes())
        logger.debug("Saved face crop %s to %s", region.as_tuple(), self._path)
        return self._path


__all__ = [
    "MIN_EYES_DISTANCE",
    "round_half_up",
    "plan_crop",
    "crop_image",
    "FaceCropWriter",
]

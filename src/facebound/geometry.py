"""Image-space → view-space mapping for face records.

A face record is drawn as a square of side ``2 * eyes_distance`` centred
on the eye midpoint. Scaling happens first; mirroring for a front
camera happens afterwards, in view space.
"""

from __future__ import annotations

from typing import Iterable, List

from facebound.types import FaceRecord, ViewRect


def scale_factors(
    view_size: tuple[float, float],
    image_size: tuple[int, int],
) -> tuple[float, float]:
    """Return (scale_x, scale_y) from image pixels to view units.

    Args:
        view_size: (width, height) of the preview surface.
        image_size: (width, height) of the upright image.
    """
    view_w, view_h = view_size
    image_w, image_h = image_size
    if image_w <= 0 or image_h <= 0:
        raise ValueError(f"Image size must be positive, got {image_w}x{image_h}")
    return float(view_w) / image_w, float(view_h) / image_h


def map_face_to_view(
    record: FaceRecord,
    scale_x: float,
    scale_y: float,
    mirror: bool = False,
    canvas_width: float = 0.0,
) -> ViewRect:
    """Map one face record to a view-space rectangle.

    Args:
        record: Face in upright-image coordinates.
        scale_x: View width / image width.
        scale_y: View height / image height.
        mirror: Reflect horizontally (front-facing camera).
        canvas_width: Width of the destination canvas, used for mirroring.
    """
    half = record.eyes_distance
    rect = ViewRect(
        left=(record.mid_x - half) * scale_x,
        top=(record.mid_y - half) * scale_y,
        right=(record.mid_x + half) * scale_x,
        bottom=(record.mid_y + half) * scale_y,
    )
    if mirror:
        rect = rect.mirrored(canvas_width)
    return rect


def map_faces(
    records: Iterable[FaceRecord],
    scale_x: float,
    scale_y: float,
    mirror: bool = False,
    canvas_width: float = 0.0,
) -> List[ViewRect]:
    """Map a sequence of records, keeping their order."""
    return [
        map_face_to_view(r, scale_x, scale_y, mirror=mirror, canvas_width=canvas_width)
        for r in records
    ]


__all__ = ["scale_factors", "map_face_to_view", "map_faces"]

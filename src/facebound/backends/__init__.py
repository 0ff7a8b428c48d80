"""Face detection backends.

``HaarCascadeBackend`` ships with OpenCV and is the default.
``InsightFaceBackend`` needs the ``insightface`` extra.
"""

from typing import Any

from facebound.backends.base import FaceDetectionBackend
from facebound.backends.haar import HaarCascadeBackend

BACKENDS = ("haar", "insightface")


def create_backend(name: str = "haar", **kwargs: Any) -> FaceDetectionBackend:
    """Instantiate a backend by name.

    Raises:
        ValueError: If the name is unknown.
    """
    if name == "haar":
        return HaarCascadeBackend(**kwargs)
    if name == "insightface":
        from facebound.backends.insightface import InsightFaceBackend

        return InsightFaceBackend(**kwargs)
    raise ValueError(f"Unknown backend '{name}' (expected one of: {', '.join(BACKENDS)})")


__all__ = ["BACKENDS", "FaceDetectionBackend", "HaarCascadeBackend", "create_backend"]

"""InsightFace SCRFD backend for face detection."""

import contextlib
import io
import logging
import math
from pathlib import Path
from typing import List, Optional

import numpy as np

from facebound.types import FaceRecord

logger = logging.getLogger(__name__)


class InsightFaceBackend:
    """Face detection backend using InsightFace SCRFD.

    SCRFD returns 5-point keypoints; the first two are the eye centers,
    which give the face midpoint and inter-eye distance directly.

    Args:
        model_name: Model pack name (default: "buffalo_l").
        det_size: Detection input size (width, height).
        det_thresh: Detection confidence threshold.
        device: "cpu" or "cuda[:N]".
        models_dir: Optional root for downloaded model packs.

    Example:
        >>> backend = InsightFaceBackend(device="cpu")
        >>> backend.initialize()
        >>> records = backend.detect(image, max_faces=3)
        >>> backend.cleanup()
    """

    def __init__(
        self,
        model_name: str = "buffalo_l",
        det_size: tuple[int, int] = (640, 640),
        det_thresh: float = 0.5,
        device: str = "cpu",
        models_dir: Optional[Path] = None,
    ):
        self._model_name = model_name
        self._det_size = tuple(det_size)
        self._det_thresh = det_thresh
        self._device = device
        self._models_dir = models_dir
        self._app: Optional[object] = None

    def initialize(self) -> None:
        if self._app is not None:
            return

        try:
            from insightface.app import FaceAnalysis
            import onnxruntime as ort
        except ImportError:
            raise ImportError(
                "insightface is required for InsightFaceBackend. "
                "Install with: pip install facebound[insightface]"
            )

        ort.set_default_logger_severity(3)
        available = ort.get_available_providers()

        if self._device.startswith("cuda") and "CUDAExecutionProvider" in available:
            ctx_id = int(self._device.split(":")[-1]) if ":" in self._device else 0
            providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]
        else:
            if self._device.startswith("cuda"):
                logger.warning("CUDAExecutionProvider not available, falling back to CPU")
            ctx_id = -1
            providers = ["CPUExecutionProvider"]

        fa_kwargs = dict(
            name=self._model_name,
            providers=providers,
            allowed_modules=["detection"],
        )
        if self._models_dir is not None:
            fa_kwargs["root"] = str(self._models_dir)

        # insightface prints model discovery to stdout
        with contextlib.redirect_stdout(io.StringIO()):
            app = FaceAnalysis(**fa_kwargs)
            app.prepare(ctx_id=ctx_id, det_size=self._det_size)
        self._app = app
        logger.info("InsightFace SCRFD initialized (providers=%s)", providers)

    def detect(self, image: np.ndarray, max_faces: int) -> List[FaceRecord]:
        if self._app is None:
            raise RuntimeError("Backend not initialized. Call initialize() first.")

        records: List[FaceRecord] = []
        for face in self._app.get(image, max_num=max_faces):
            score = float(face.det_score)
            if score < self._det_thresh:
                continue
            kps = getattr(face, "kps", None)
            if kps is None or len(kps) < 2:
                continue
            (lx, ly), (rx, ry) = kps[0][:2], kps[1][:2]
            records.append(
                FaceRecord(
                    mid_x=float(lx + rx) / 2.0,
                    mid_y=float(ly + ry) / 2.0,
                    eyes_distance=math.hypot(float(rx - lx), float(ry - ly)),
                    confidence=score,
                )
            )
        return records[:max_faces]

    def cleanup(self) -> None:
        self._app = None

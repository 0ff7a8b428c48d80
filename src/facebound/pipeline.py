"""Per-frame processing and the keep-only-latest detection worker.

``FacePipeline.process()`` runs one frame through conversion, detection,
view mapping and crop persistence. ``LatestFrameWorker`` runs it off the
rendering thread: frames submitted while the worker is busy replace each
other in a single slot, and every frame is released to the capture side
whether it was processed, dropped or failed to decode.

Example:
    >>> config = PipelineConfig()
    >>> view = OverlayView.from_config(config, width=720, height=960)
    >>> pipeline = FacePipeline.from_config(config, view_size=view.size)
    >>> with LatestFrameWorker(pipeline, view) as worker:
    ...     for frame in camera:           # capture callback
    ...         worker.submit(frame)
    ...         view.redraw(layer)         # UI tick
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from facebound.backends import FaceDetectionBackend, create_backend
from facebound.config import PipelineConfig
from facebound.convert import FrameConverter
from facebound.crop import FaceCropWriter, MIN_EYES_DISTANCE, plan_crop
from facebound.detect import FaceDetectorAdapter
from facebound.errors import DecodeError
from facebound.geometry import map_faces, scale_factors
from facebound.paths import get_default_crop_path
from facebound.types import CropRegion, FaceRecord, Frame, ViewRect

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    """Result of processing a single frame.

    Attributes:
        frame_id: Id of the source frame.
        image_size: (width, height) of the upright image.
        scale: (scale_x, scale_y) from image to view space.
        records: Detected faces, detector order.
        rects: View-space rectangles, one per record (mirrored if
            front-facing).
        crop_region: Crop around the first face, if it was large enough.
        crop_path: Where the crop was written, if it was written.
        timing_ms: Per-stage elapsed time in milliseconds.
    """

    frame_id: int
    image_size: tuple[int, int]
    scale: tuple[float, float]
    records: List[FaceRecord] = field(default_factory=list)
    rects: List[ViewRect] = field(default_factory=list)
    crop_region: Optional[CropRegion] = None
    crop_path: Optional[Path] = None
    timing_ms: dict = field(default_factory=dict)

    @property
    def has_faces(self) -> bool:
        return bool(self.records)


class FacePipeline:
    """Frame → upright image → faces → view rects + face crop.

    Args:
        view_size: (width, height) of the preview surface.
        detector: Face detector. Defaults to the Haar cascade backend.
        converter: Frame converter.
        crop_writer: Where to persist crops. None disables persistence.
        front_facing: Mirror view rectangles horizontally.
        min_eyes_distance: Smallest face (rounded eye distance) to crop.
    """

    def __init__(
        self,
        view_size: tuple[int, int],
        detector: Optional[FaceDetectorAdapter] = None,
        converter: Optional[FrameConverter] = None,
        crop_writer: Optional[FaceCropWriter] = None,
        front_facing: bool = True,
        min_eyes_distance: int = MIN_EYES_DISTANCE,
    ):
        self._view_size = view_size
        self._detector = detector if detector is not None else FaceDetectorAdapter()
        self._converter = converter if converter is not None else FrameConverter()
        self._crop_writer = crop_writer
        self._front_facing = front_facing
        self._min_eyes_distance = min_eyes_distance

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        view_size: tuple[int, int],
        backend: Optional[FaceDetectionBackend] = None,
    ) -> "FacePipeline":
        """Build a pipeline from a :class:`PipelineConfig`."""
        if backend is None:
            backend = create_backend(config.backend, **config.backend_kwargs)
        crop_writer = None
        if config.save_crops:
            crop_path = config.crop_path or get_default_crop_path()
            crop_writer = FaceCropWriter(crop_path)
        return cls(
            view_size=view_size,
            detector=FaceDetectorAdapter(backend, max_faces=config.max_faces),
            converter=FrameConverter(quantize_rgb565=config.quantize_rgb565),
            crop_writer=crop_writer,
            front_facing=config.front_facing,
            min_eyes_distance=config.min_eyes_distance,
        )

    @property
    def view_size(self) -> tuple[int, int]:
        return self._view_size

    @property
    def detector(self) -> FaceDetectorAdapter:
        return self._detector

    def initialize(self) -> None:
        self._detector.initialize()

    def cleanup(self) -> None:
        self._detector.cleanup()

    def process(self, frame: Frame) -> FrameResult:
        """Process one frame. Does not release it.

        Raises:
            DecodeError: If the frame cannot be converted.
        """
        t0 = time.perf_counter()
        image = self._converter.convert(frame)
        t1 = time.perf_counter()
        records = self._detector.detect(image)
        t2 = time.perf_counter()

        scale_x, scale_y = scale_factors(self._view_size, image.size)
        rects = map_faces(
            records, scale_x, scale_y,
            mirror=self._front_facing, canvas_width=self._view_size[0],
        )

        result = FrameResult(
            frame_id=frame.frame_id,
            image_size=image.size,
            scale=(scale_x, scale_y),
            records=records,
            rects=rects,
        )

        if records:
            logger.debug("Frame %d: %d face(s) detected", frame.frame_id, len(records))
            # First record wins; detector order decides which face is kept
            result.crop_region = plan_crop(
                records[0], image.width, image.height,
                min_eyes_distance=self._min_eyes_distance,
            )
            if result.crop_region is not None and self._crop_writer is not None:
                try:
                    result.crop_path = self._crop_writer.save(image, result.crop_region)
                except OSError as e:
                    logger.warning("Frame %d: face crop not saved: %s", frame.frame_id, e)
        else:
            logger.debug("Frame %d: no face", frame.frame_id)
        t3 = time.perf_counter()

        result.timing_ms = {
            "convert": (t1 - t0) * 1000.0,
            "detect": (t2 - t1) * 1000.0,
            "geometry_crop": (t3 - t2) * 1000.0,
        }
        return result


class OverlaySink(Protocol):
    """Receiver of finished detection results (normally an OverlayView)."""

    def show_rects(self, rects: Sequence[ViewRect], frame_id: int = 0) -> None:
        ...

    def clear(self, reason: str = "no_face") -> None:
        ...


class LatestFrameWorker:
    """Runs the pipeline on a dedicated thread, keeping only the latest frame.

    Args:
        pipeline: Pipeline to run per frame.
        sink: Receives ``show_rects()`` / ``clear()`` after each frame.
        name: Worker thread name.
    """

    def __init__(
        self,
        pipeline: FacePipeline,
        sink: Optional[OverlaySink] = None,
        name: str = "facebound-worker",
    ):
        self._pipeline = pipeline
        self._sink = sink
        self._name = name
        self._cond = threading.Condition()
        self._pending: Optional[Frame] = None
        self._busy = False
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self.processed = 0
        self.dropped = 0
        self.failed = 0
        self.last_result: Optional[FrameResult] = None

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Initialize the pipeline and start the worker thread.

        Raises:
            RuntimeError: If a previous worker thread is still finishing.
        """
        with self._cond:
            if self._running:
                return
            if self._thread is not None and self._thread.is_alive():
                raise RuntimeError("Previous detection worker thread is still running")
            self._running = True
        try:
            self._pipeline.initialize()
        except Exception:
            with self._cond:
                self._running = False
            raise
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.info("Detection worker started")

    def submit(self, frame: Frame) -> bool:
        """Hand a frame to the worker without blocking.

        Returns:
            False if the worker is not running (the frame is released).
        """
        replaced: Optional[Frame] = None
        with self._cond:
            if not self._running:
                accepted = False
            else:
                accepted = True
                replaced = self._pending
                self._pending = frame
                if replaced is not None:
                    self.dropped += 1
                self._cond.notify_all()

        if not accepted:
            frame.release()
            return False
        if replaced is not None:
            logger.debug("Dropped frame %d for frame %d", replaced.frame_id, frame.frame_id)
            replaced.release()
        return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no frame is pending or being processed."""
        with self._cond:
            return self._cond.wait_for(
                lambda: self._pending is None and not self._busy, timeout=timeout
            )

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the worker; a frame still pending is released unprocessed.

        The pipeline is cleaned up by the worker thread once it has finished
        its current frame, so a join that times out leaves cleanup pending.
        """
        with self._cond:
            if not self._running:
                return
            self._running = False
            pending, self._pending = self._pending, None
            self._cond.notify_all()
        if pending is not None:
            pending.release()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(
                    "Detection worker did not stop within %.1fs; "
                    "pipeline cleanup deferred to the worker thread", timeout,
                )
            else:
                self._thread = None
        logger.info(
            "Detection worker stopped (processed=%d dropped=%d failed=%d)",
            self.processed, self.dropped, self.failed,
        )

    def _run(self) -> None:
        try:
            while True:
                with self._cond:
                    self._cond.wait_for(
                        lambda: self._pending is not None or not self._running
                    )
                    if not self._running:
                        return
                    frame, self._pending = self._pending, None
                    self._busy = True
                try:
                    self._handle(frame)
                finally:
                    with self._cond:
                        self._busy = False
                        self._cond.notify_all()
        finally:
            # Runs after the last frame has been handled
            try:
                self._pipeline.cleanup()
            except Exception:
                logger.exception("Pipeline cleanup failed")

    def _handle(self, frame: Frame) -> None:
        result: Optional[FrameResult] = None
        try:
            result = self._pipeline.process(frame)
        except DecodeError as e:
            self.failed += 1
            logger.warning("%s", e)
        except Exception:
            self.failed += 1
            logger.exception("Frame %d: processing failed", frame.frame_id)
        finally:
            frame.release()

        if result is None:
            return
        self.processed += 1
        self.last_result = result
        if self._sink is None:
            return
        if result.rects:
            self._sink.show_rects(result.rects, frame_id=result.frame_id)
        else:
            self._sink.clear()

    def __enter__(self) -> "LatestFrameWorker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


__all__ = ["FrameResult", "FacePipeline", "OverlaySink", "LatestFrameWorker"]

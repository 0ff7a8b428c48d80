"""facebound - Live face detection overlays and face crops for camera streams.

Converts captured frames into upright images, detects faces, maps them
into preview (view) coordinates with scale and front-camera mirroring,
draws corner-bracket overlays and keeps a crop of the first face on disk.

Example:
    >>> from facebound import FacePipeline, LatestFrameWorker, OverlayView, PipelineConfig
    >>> config = PipelineConfig(overlay_mode="brackets", front_facing=True)
    >>> view = OverlayView.from_config(config, width=720, height=960)
    >>> pipeline = FacePipeline.from_config(config, view_size=view.size)
    >>> worker = LatestFrameWorker(pipeline, view)
    >>> worker.start()
    >>> worker.submit(frame)        # capture thread
    >>> view.redraw(overlay_layer)  # UI thread
"""

from facebound.config import PipelineConfig
from facebound.convert import FrameConverter
from facebound.crop import FaceCropWriter, crop_image, plan_crop
from facebound.detect import FaceDetectorAdapter
from facebound.errors import DecodeError, FaceboundError
from facebound.geometry import map_face_to_view, map_faces, scale_factors
from facebound.overlay import (
    OverlayMode,
    OverlayPhase,
    OverlayRenderer,
    OverlaySnapshot,
    OverlayState,
    OverlayView,
    bracket_segments,
)
from facebound.pipeline import FacePipeline, FrameResult, LatestFrameWorker
from facebound.types import (
    CropRegion,
    FaceRecord,
    Frame,
    PixelFormat,
    UprightImage,
    ViewRect,
)

__version__ = "0.1.0"

__all__ = [
    "PipelineConfig",
    "FrameConverter",
    "FaceCropWriter",
    "crop_image",
    "plan_crop",
    "FaceDetectorAdapter",
    "DecodeError",
    "FaceboundError",
    "map_face_to_view",
    "map_faces",
    "scale_factors",
    "OverlayMode",
    "OverlayPhase",
    "OverlayRenderer",
    "OverlaySnapshot",
    "OverlayState",
    "OverlayView",
    "bracket_segments",
    "FacePipeline",
    "FrameResult",
    "LatestFrameWorker",
    "CropRegion",
    "FaceRecord",
    "Frame",
    "PixelFormat",
    "UprightImage",
    "ViewRect",
]

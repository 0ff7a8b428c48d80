"""Configuration for the face overlay pipeline.

Example:
    >>> from facebound.config import PipelineConfig
    >>>
    >>> config = PipelineConfig(
    ...     max_faces=3,
    ...     front_facing=True,
    ...     overlay_mode="brackets",
    ...     crop_path="/tmp/face.png",
    ... )
    >>> config = PipelineConfig.from_yaml("facebound.yaml")
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from facebound.backends import BACKENDS
from facebound.crop import MIN_EYES_DISTANCE
from facebound.detect import DEFAULT_MAX_FACES
from facebound.overlay import OverlayMode


@dataclass
class PipelineConfig:
    """Complete configuration for the face overlay pipeline.

    Attributes:
        max_faces: Maximum faces reported per frame.
        min_eyes_distance: Smallest rounded inter-eye distance (pixels)
            that still produces a face crop.
        front_facing: Camera faces the user; overlay is mirrored.
        overlay_mode: "brackets" (corner brackets) or "rect".
        overlay_color: BGR stroke color.
        quantize_rgb565: Reduce frames to RGB565 precision before detection.
        save_crops: Persist a crop of the first face.
        crop_path: Destination PNG. None means ``$FACEBOUND_HOME/face.png``.
        backend: Detection backend name ("haar" or "insightface").
        backend_kwargs: Extra keyword arguments for the backend.
    """

    max_faces: int = DEFAULT_MAX_FACES
    min_eyes_distance: int = MIN_EYES_DISTANCE
    front_facing: bool = True
    overlay_mode: str = OverlayMode.BRACKETS.value
    overlay_color: tuple[int, int, int] = (255, 255, 255)
    quantize_rgb565: bool = True
    save_crops: bool = True
    crop_path: Optional[str] = None
    backend: str = "haar"
    backend_kwargs: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_faces < 1:
            raise ValueError(f"max_faces must be >= 1, got {self.max_faces}")
        if self.min_eyes_distance < 0:
            raise ValueError(
                f"min_eyes_distance must be >= 0, got {self.min_eyes_distance}"
            )
        # Raises ValueError for unknown modes
        OverlayMode(self.overlay_mode)
        if self.backend not in BACKENDS:
            raise ValueError(
                f"Unknown backend '{self.backend}' (expected one of: {', '.join(BACKENDS)})"
            )
        self.overlay_color = tuple(int(c) for c in self.overlay_color)
        if len(self.overlay_color) != 3:
            raise ValueError(f"overlay_color must have 3 components, got {self.overlay_color}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """Create PipelineConfig from a dictionary (e.g., loaded from YAML).

        Unknown keys are rejected so that typos do not pass silently.
        """
        data = dict(data or {})
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        if "overlay_color" in data:
            data["overlay_color"] = tuple(data["overlay_color"])
        return cls(**data)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "PipelineConfig":
        """Load PipelineConfig from a YAML file.

        Raises:
            ImportError: If PyYAML is not installed.
            FileNotFoundError: If the file doesn't exist.
        """
        try:
            import yaml
        except ImportError:
            raise ImportError(
                "PyYAML is required for YAML config support. "
                "Install it with: pip install facebound[yaml]"
            )

        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "max_faces": self.max_faces,
            "min_eyes_distance": self.min_eyes_distance,
            "front_facing": self.front_facing,
            "overlay_mode": self.overlay_mode,
            "overlay_color": list(self.overlay_color),
            "quantize_rgb565": self.quantize_rgb565,
            "save_crops": self.save_crops,
            "crop_path": self.crop_path,
            "backend": self.backend,
            "backend_kwargs": dict(self.backend_kwargs),
        }


__all__ = ["PipelineConfig"]

"""Default storage locations.

Crops go to ``~/.facebound`` by default. Override with the
``FACEBOUND_HOME`` environment variable.
"""

import os
from pathlib import Path

CROP_FILENAME = "face.png"


def get_home_dir() -> Path:
    """Return the facebound home directory, creating it if needed.

    Resolution order:
        1. ``FACEBOUND_HOME`` environment variable.
        2. ``~/.facebound`` (default).
    """
    home = os.environ.get("FACEBOUND_HOME")
    if home:
        home_dir = Path(home)
    else:
        home_dir = Path.home() / ".facebound"
    home_dir.mkdir(parents=True, exist_ok=True)
    return home_dir


def get_default_crop_path() -> Path:
    """Fixed path the latest face crop is written to."""
    return get_home_dir() / CROP_FILENAME


__all__ = ["CROP_FILENAME", "get_home_dir", "get_default_crop_path"]

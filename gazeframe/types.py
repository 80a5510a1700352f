"""
Gazeframe type definitions.

This module contains the public value types shared by the generator and
the viewer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TrackingMode(Enum):
    """Which input drives the viewer."""
    MOUSE = "mouse"              # pupil_x / pupil_y at a fixed pitch
    ORIENTATION = "orientation"  # pitch / pupil_x from device tilt


class RetryState(Enum):
    """States of a single acquisition attempt cycle."""
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    EXHAUSTED = "exhausted"
    SUCCEEDED = "succeeded"


class PreloadStatus(Enum):
    """Outcome of preloading one image."""
    READY = "ready"
    FAILED = "failed"
    PENDING = "pending"  # timed out, loaded lazily


@dataclass(frozen=True)
class ParameterTriple:
    """One (pitch, pupil_x, pupil_y) combination."""
    pitch: int
    pupil_x: int
    pupil_y: int

    def to_input(self) -> Dict[str, int]:
        """Edit parameters as the expression editor names them."""
        return {
            "rotate_pitch": self.pitch,
            "pupil_x": self.pupil_x,
            "pupil_y": self.pupil_y,
        }


@dataclass(frozen=True)
class ManifestEntry:
    """A generated image and the triple it was generated from."""
    filename: str
    pitch: int
    pupil_x: int
    pupil_y: int

    @property
    def triple(self) -> ParameterTriple:
        return ParameterTriple(self.pitch, self.pupil_x, self.pupil_y)

    def to_dict(self) -> Dict[str, Any]:
        """On-disk JSON shape."""
        return {
            "filename": self.filename,
            "rotate_pitch": self.pitch,
            "pupil_x": self.pupil_x,
            "pupil_y": self.pupil_y,
        }


@dataclass(frozen=True)
class InputSample:
    """
    A normalized pointer or orientation reading.

    Both axes are already mapped into parameter space. In MOUSE mode
    horizontal is pupil_x and vertical is pupil_y; in ORIENTATION mode
    horizontal is pupil_x and vertical is pitch.
    """
    horizontal: float
    vertical: float


@dataclass(frozen=True)
class Selection:
    """Result of a nearest-match lookup."""
    filename: str
    changed: bool
    entry: Optional[ManifestEntry] = None

"""
Nearest-match selection over the manifest.

The viewer fakes continuous gaze tracking from a discrete image set: each
input sample picks the manifest entry whose parameters are closest, and
the image only changes when that entry changes.
"""

from typing import Optional, Sequence, Tuple

from .grid import ParameterGrid
from .types import InputSample, ManifestEntry, Selection, TrackingMode


def squared_distance(
    entry: ManifestEntry,
    sample: InputSample,
    mode: TrackingMode,
    fixed_pitch: float = 0,
) -> float:
    """Squared Euclidean distance between an entry and a sample in mode's axes."""
    dx = entry.pupil_x - sample.horizontal
    if mode is TrackingMode.ORIENTATION:
        dp = entry.pitch - sample.vertical
        return dx * dx + dp * dp
    dy = entry.pupil_y - sample.vertical
    dp = entry.pitch - fixed_pitch
    return dx * dx + dy * dy + dp * dp


def nearest(
    manifest: Sequence[ManifestEntry],
    sample: InputSample,
    mode: TrackingMode = TrackingMode.MOUSE,
    fixed_pitch: float = 0,
) -> ManifestEntry:
    """
    Closest entry to sample. Ties go to the earliest entry.

    Raises:
        ValueError: If manifest is empty
    """
    if not manifest:
        raise ValueError("Cannot select from an empty manifest")

    best = manifest[0]
    best_distance = squared_distance(best, sample, mode, fixed_pitch)
    for entry in manifest[1:]:
        distance = squared_distance(entry, sample, mode, fixed_pitch)
        if distance < best_distance:
            best, best_distance = entry, distance
    return best


def select(
    manifest: Sequence[ManifestEntry],
    sample: InputSample,
    previous_filename: Optional[str] = None,
    mode: TrackingMode = TrackingMode.MOUSE,
    fixed_pitch: float = 0,
) -> Selection:
    """
    Pick the image for sample and report whether it differs from the last one.

    Args:
        manifest: Candidate entries, in manifest order
        sample: Normalized input
        previous_filename: Filename selected for the previous sample
        mode: Which axes the sample drives
        fixed_pitch: Pitch assumed in MOUSE mode

    Returns:
        Selection with the chosen filename and a changed flag
    """
    entry = nearest(manifest, sample, mode, fixed_pitch)
    return Selection(
        filename=entry.filename,
        changed=entry.filename != previous_filename,
        entry=entry,
    )


class Selector:
    """
    Remembers the last selection for a stream of samples.

    Usage:
        selector = Selector(manifest, TrackingMode.MOUSE)
        result = selector.update(normalize_pointer(x, y, w, h, grid))
        if result.changed:
            swap_image(result.filename)
    """

    def __init__(
        self,
        manifest: Sequence[ManifestEntry],
        mode: TrackingMode = TrackingMode.MOUSE,
        fixed_pitch: float = 0,
    ):
        if not manifest:
            raise ValueError("Selector needs a non-empty manifest")
        self._manifest = tuple(manifest)
        self.mode = mode
        self.fixed_pitch = fixed_pitch
        self.current: Optional[str] = None

    def update(self, sample: InputSample) -> Selection:
        result = select(self._manifest, sample, self.current, self.mode, self.fixed_pitch)
        self.current = result.filename
        return result

    def reset(self) -> None:
        self.current = None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _lerp(low: float, high: float, t: float) -> float:
    return low + (high - low) * t


def normalize_pointer(
    x: float,
    y: float,
    width: float,
    height: float,
    grid: ParameterGrid,
) -> InputSample:
    """
    Map a pointer position to (pupil_x, pupil_y).

    Left edge is the smallest pupil_x; the top edge is the largest pupil_y.
    Positions outside the viewport are clamped.
    """
    if width <= 0 or height <= 0:
        raise ValueError("Viewport size must be positive")
    fx = _clamp(x / width, 0.0, 1.0)
    fy = _clamp(y / height, 0.0, 1.0)
    x_low, x_high = grid.span(grid.pupil_x_values)
    y_low, y_high = grid.span(grid.pupil_y_values)
    return InputSample(
        horizontal=_lerp(x_low, x_high, fx),
        vertical=_lerp(y_high, y_low, fy),
    )


def normalize_orientation(
    beta: float,
    gamma: float,
    grid: ParameterGrid,
    max_tilt: float = 30.0,
    baseline: Tuple[float, float] = (0.0, 0.0),
) -> InputSample:
    """
    Map device orientation angles to (pupil_x, pitch).

    gamma (left/right tilt) drives pupil_x and beta (front/back tilt)
    drives pitch. Angles are taken relative to baseline (beta, gamma) and
    clamped to +/- max_tilt degrees, which spans the whole axis range.
    """
    if max_tilt <= 0:
        raise ValueError("max_tilt must be positive")
    base_beta, base_gamma = baseline
    tx = _clamp((gamma - base_gamma) / max_tilt, -1.0, 1.0)
    tp = _clamp((beta - base_beta) / max_tilt, -1.0, 1.0)
    x_low, x_high = grid.span(grid.pupil_x_values)
    p_low, p_high = grid.span(grid.pitch_values)
    return InputSample(
        horizontal=_lerp(x_low, x_high, (tx + 1) / 2),
        vertical=_lerp(p_low, p_high, (tp + 1) / 2),
    )

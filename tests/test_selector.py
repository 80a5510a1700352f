"""Tests for gazeframe.selector module."""

import pytest

from gazeframe.grid import ParameterGrid
from gazeframe.selector import (
    Selector,
    nearest,
    normalize_orientation,
    normalize_pointer,
    select,
    squared_distance,
)
from gazeframe.types import InputSample, ManifestEntry, TrackingMode


def entry(pitch, pupil_x, pupil_y):
    return ManifestEntry(f"image_pitch{pitch}_px{pupil_x}_py{pupil_y}.webp", pitch, pupil_x, pupil_y)


TWO_ENTRIES = (entry(0, 0, 0), entry(0, 15, 0))


class TestSelect:
    """Tests for select()."""

    def test_nearest_wins(self):
        """pupil_x=10 is 5 away from the second entry and 10 from the first."""
        result = select(TWO_ENTRIES, InputSample(10, 0), None, TrackingMode.MOUSE, fixed_pitch=0)
        assert result.filename == "image_pitch0_px15_py0.webp"
        assert result.entry == TWO_ENTRIES[1]
        assert result.changed is True

    def test_deterministic(self):
        sample = InputSample(4.2, -3.3)
        first = select(TWO_ENTRIES, sample)
        for _ in range(10):
            assert select(TWO_ENTRIES, sample).filename == first.filename

    def test_tie_goes_to_earlier_entry(self):
        """Equidistant samples pick the entry first in manifest order."""
        assert select(TWO_ENTRIES, InputSample(7.5, 0)).filename == TWO_ENTRIES[0].filename
        reversed_manifest = TWO_ENTRIES[::-1]
        assert select(reversed_manifest, InputSample(7.5, 0)).filename == TWO_ENTRIES[1].filename

    def test_unchanged_when_same_entry(self):
        """Moving inside the same region reports no change."""
        first = select(TWO_ENTRIES, InputSample(12, 0))
        second = select(TWO_ENTRIES, InputSample(13, 1), first.filename)
        assert second.filename == first.filename
        assert second.changed is False

    def test_changed_when_entry_differs(self):
        first = select(TWO_ENTRIES, InputSample(12, 0))
        second = select(TWO_ENTRIES, InputSample(1, 0), first.filename)
        assert second.changed is True

    def test_mouse_mode_prefers_fixed_pitch(self):
        manifest = (entry(10, 5, 5), entry(0, 5, 5))
        result = select(manifest, InputSample(5, 5), mode=TrackingMode.MOUSE, fixed_pitch=0)
        assert result.entry.pitch == 0

    def test_orientation_mode_uses_pitch_and_pupil_x(self):
        manifest = (entry(-20, 0, 0), entry(20, 0, 0), entry(20, 15, 0))
        result = select(manifest, InputSample(14, 18), mode=TrackingMode.ORIENTATION)
        assert result.entry == entry(20, 15, 0)

    def test_orientation_mode_ignores_pupil_y(self):
        """Entries differing only in pupil_y tie; the first wins."""
        manifest = (entry(0, 0, 15), entry(0, 0, -15))
        result = select(manifest, InputSample(0, 0), mode=TrackingMode.ORIENTATION)
        assert result.entry == manifest[0]

    def test_empty_manifest_raises(self):
        with pytest.raises(ValueError):
            select((), InputSample(0, 0))

    def test_squared_distance(self):
        e = entry(5, 3, 4)
        assert squared_distance(e, InputSample(0, 0), TrackingMode.MOUSE, 5) == 25
        assert squared_distance(e, InputSample(0, 1), TrackingMode.ORIENTATION) == 9 + 16

    def test_nearest_scans_whole_manifest(self):
        manifest = tuple(entry(0, x, 0) for x in range(-15, 16))
        assert nearest(manifest, InputSample(15, 0)).pupil_x == 15


class TestSelector:
    """Tests for the stateful Selector adapter."""

    def test_tracks_previous(self):
        selector = Selector(TWO_ENTRIES)
        assert selector.update(InputSample(14, 0)).changed is True
        assert selector.update(InputSample(11, 0)).changed is False
        assert selector.update(InputSample(2, 0)).changed is True
        assert selector.current == TWO_ENTRIES[0].filename

    def test_reset(self):
        selector = Selector(TWO_ENTRIES)
        selector.update(InputSample(0, 0))
        selector.reset()
        assert selector.current is None
        assert selector.update(InputSample(0, 0)).changed is True

    def test_rejects_empty_manifest(self):
        with pytest.raises(ValueError):
            Selector(())


class TestNormalizePointer:
    """Tests for pointer normalization."""

    grid = ParameterGrid([0], [-15, 0, 15], [-15, 0, 15])

    def test_center(self):
        sample = normalize_pointer(50, 50, 100, 100, self.grid)
        assert sample == InputSample(0.0, 0.0)

    def test_corners(self):
        top_left = normalize_pointer(0, 0, 100, 100, self.grid)
        assert top_left == InputSample(-15.0, 15.0)
        bottom_right = normalize_pointer(100, 100, 100, 100, self.grid)
        assert bottom_right == InputSample(15.0, -15.0)

    def test_clamps_outside_viewport(self):
        assert normalize_pointer(-50, 500, 100, 100, self.grid) == InputSample(-15.0, -15.0)

    def test_rejects_empty_viewport(self):
        with pytest.raises(ValueError):
            normalize_pointer(0, 0, 0, 100, self.grid)


class TestNormalizeOrientation:
    """Tests for device orientation normalization."""

    grid = ParameterGrid([-20, 0, 20], [-15, 0, 15], [0])

    def test_level_device_is_centered(self):
        assert normalize_orientation(0, 0, self.grid) == InputSample(0.0, 0.0)

    def test_full_tilt(self):
        sample = normalize_orientation(30, -30, self.grid, max_tilt=30)
        assert sample == InputSample(-15.0, 20.0)

    def test_clamped_beyond_max_tilt(self):
        assert normalize_orientation(90, 90, self.grid, max_tilt=30) == InputSample(15.0, 20.0)

    def test_baseline(self):
        sample = normalize_orientation(60, 10, self.grid, max_tilt=30, baseline=(45, 10))
        assert sample.horizontal == 0.0
        assert sample.vertical == pytest.approx(10.0)

    def test_rejects_non_positive_tilt(self):
        with pytest.raises(ValueError):
            normalize_orientation(0, 0, self.grid, max_tilt=0)

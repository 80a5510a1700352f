"""Tests for gazeframe.viewer — startup loading of manifest and images."""

import pytest

from gazeframe.config import GazeConfig
from gazeframe.errors import ManifestError
from gazeframe.types import InputSample, TrackingMode
from gazeframe.viewer import ViewerState

from conftest import entry_dict, write_asset_dir


def config_for(directory, **kwargs):
    return GazeConfig(asset_dir=str(directory), preload_timeout=5.0, **kwargs)


class TestViewerStateLoad:
    """Tests for ViewerState.load()."""

    @pytest.mark.asyncio
    async def test_loads_manifest_and_preloads(self, asset_dir):
        state = await ViewerState.load(config_for(asset_dir))
        assert len(state.manifest) == 6
        assert state.candidates == state.manifest
        assert state.grid.pupil_x_values == (-10, 0, 10)
        assert state.grid.pupil_y_values == (-5, 5)

    @pytest.mark.asyncio
    async def test_missing_manifest_is_fatal(self, tmp_path):
        with pytest.raises(ManifestError, match="not found"):
            await ViewerState.load(config_for(tmp_path))

    @pytest.mark.asyncio
    async def test_empty_manifest_is_fatal(self, tmp_path):
        (tmp_path / "image-mappings.json").write_text("[]")
        with pytest.raises(ManifestError, match="empty"):
            await ViewerState.load(config_for(tmp_path))

    @pytest.mark.asyncio
    async def test_missing_image_excluded(self, asset_dir):
        (asset_dir / "image_pitch0_px10_py5.webp").unlink()
        state = await ViewerState.load(config_for(asset_dir))
        assert len(state.manifest) == 6
        assert len(state.candidates) == 5
        assert "image_pitch0_px10_py5.webp" in state.preload.failed
        result = state.select(InputSample(11, 5))
        assert result.filename == "image_pitch0_px10_py-5.webp"

    @pytest.mark.asyncio
    async def test_no_loadable_images_is_fatal(self, tmp_path):
        write_asset_dir(tmp_path, [entry_dict(0, 0, 0)], image_bytes=b"")
        with pytest.raises(ManifestError, match="could be loaded"):
            await ViewerState.load(config_for(tmp_path))

    @pytest.mark.asyncio
    async def test_default_mode_from_config(self, asset_dir):
        state = await ViewerState.load(config_for(asset_dir, tracking_mode=TrackingMode.ORIENTATION))
        assert state.default_mode is TrackingMode.ORIENTATION
        assert state.selector().mode is TrackingMode.ORIENTATION
        assert state.selector(TrackingMode.MOUSE).mode is TrackingMode.MOUSE

"""Viewer state: manifest, preload results and selection candidates."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from .config import GazeConfig
from .errors import ManifestError
from .grid import Manifest, ParameterGrid, load_manifest
from .preload import PreloadReport, preload_images
from .selector import Selector, select
from .types import InputSample, ManifestEntry, Selection, TrackingMode

logger = logging.getLogger(__name__)


@dataclass
class ViewerState:
    """
    Everything the viewer needs after startup.

    Loaded once; the manifest is treated as read-only afterwards.
    """
    asset_dir: Path
    manifest: Manifest
    candidates: Tuple[ManifestEntry, ...]
    preload: PreloadReport
    grid: ParameterGrid
    default_mode: TrackingMode = TrackingMode.MOUSE
    fixed_pitch: int = 0
    max_tilt: float = 30.0

    @classmethod
    async def load(cls, config: GazeConfig) -> "ViewerState":
        """
        Load the manifest and preload its images.

        Raises:
            ManifestError: Manifest missing, invalid or empty, or no image
                could be loaded
        """
        asset_dir = config.asset_path()
        manifest = load_manifest(config.viewer_manifest_path())
        report = await preload_images(
            asset_dir,
            [entry.filename for entry in manifest],
            timeout=config.preload_timeout,
        )
        candidates = report.selectable(manifest)
        if not candidates:
            raise ManifestError(f"None of the {len(manifest)} manifest images in {asset_dir} could be loaded")

        logger.info(f"Viewer ready with {len(candidates)}/{len(manifest)} selectable images")
        return cls(
            asset_dir=asset_dir,
            manifest=manifest,
            candidates=candidates,
            preload=report,
            grid=_grid_from_manifest(candidates),
            default_mode=config.tracking_mode,
            fixed_pitch=config.fixed_pitch,
            max_tilt=config.max_tilt,
        )

    def select(
        self,
        sample: InputSample,
        previous_filename: Optional[str] = None,
        mode: Optional[TrackingMode] = None,
    ) -> Selection:
        return select(self.candidates, sample, previous_filename, mode or self.default_mode, self.fixed_pitch)

    def selector(self, mode: Optional[TrackingMode] = None) -> Selector:
        return Selector(self.candidates, mode or self.default_mode, self.fixed_pitch)


def _grid_from_manifest(entries: Tuple[ManifestEntry, ...]) -> ParameterGrid:
    """Axis values actually present, used to normalize raw input."""
    return ParameterGrid(
        sorted({e.pitch for e in entries}),
        sorted({e.pupil_x for e in entries}),
        sorted({e.pupil_y for e in entries}),
    )

"""
FastAPI server for the Gazeframe viewer.

Provides:
- REST endpoints for health, manifest and nearest-match selection
- Static serving of the generated images under /images
- The bundled browser viewer at /
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .. import __version__
from ..config import GazeConfig
from ..selector import normalize_orientation, normalize_pointer
from ..types import InputSample, TrackingMode
from ..viewer import ViewerState
from .protocol import IMAGE_ROUTE, selection_to_dict, viewer_to_dict

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"


def _parse_mode(value: Optional[str]) -> Optional[TrackingMode]:
    if value is None:
        return None
    return TrackingMode(value.lower())


def create_app(
    config: Optional[GazeConfig] = None,
    state: Optional[ViewerState] = None,
    serve_static: bool = True,
) -> Any:
    """Create the FastAPI application for the viewer.

    Args:
        config: Gazeframe configuration (defaults when None)
        state: Preloaded viewer state. When None the manifest is loaded
            and images preloaded during startup; a missing or empty
            manifest then fails startup.
        serve_static: Whether to serve the browser viewer at /

    Returns:
        FastAPI application instance
    """
    config = config or GazeConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup/shutdown lifecycle."""
        if app.state.viewer is None:
            logger.info("Loading manifest and preloading images...")
            app.state.viewer = await ViewerState.load(config)
        logger.info("Gazeframe viewer accepting connections")
        yield
        logger.info("Gazeframe viewer stopped")

    app = FastAPI(
        title="Gazeframe",
        description="Gaze-following portrait viewer",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.viewer = state

    def _viewer() -> ViewerState:
        return app.state.viewer

    # === REST Endpoints ===

    @app.get("/api/gaze/health")
    async def get_health() -> JSONResponse:
        """Health check."""
        viewer = _viewer()
        if viewer is None:
            return JSONResponse({"healthy": False, "state": "loading"}, status_code=503)
        return JSONResponse({
            "healthy": True,
            "state": "ready",
            "images": len(viewer.manifest),
            "selectable": len(viewer.candidates),
            "preload": viewer.preload.summary(),
        })

    @app.get("/api/gaze/version")
    async def get_version() -> JSONResponse:
        return JSONResponse({"version": __version__})

    @app.get("/api/gaze/manifest")
    async def get_manifest() -> JSONResponse:
        """Selectable entries plus the settings the browser viewer needs."""
        viewer = _viewer()
        if viewer is None:
            return JSONResponse({"error": "Viewer not ready"}, status_code=503)
        return JSONResponse(viewer_to_dict(viewer))

    @app.get("/api/gaze/select")
    async def get_select(
        x: float = Query(..., description="Horizontal axis (pupil_x)"),
        y: float = Query(..., description="Vertical axis (pupil_y, or pitch in orientation mode)"),
        mode: Optional[str] = None,
        previous: Optional[str] = None,
    ) -> JSONResponse:
        """Nearest entry for an already normalized sample."""
        viewer = _viewer()
        if viewer is None:
            return JSONResponse({"error": "Viewer not ready"}, status_code=503)
        try:
            tracking_mode = _parse_mode(mode)
        except ValueError:
            return JSONResponse({"error": f"Unknown mode: {mode}"}, status_code=400)
        result = viewer.select(InputSample(x, y), previous, tracking_mode)
        return JSONResponse(selection_to_dict(result))

    @app.get("/api/gaze/select/pointer")
    async def get_select_pointer(
        x: float,
        y: float,
        width: float = Query(..., gt=0),
        height: float = Query(..., gt=0),
        previous: Optional[str] = None,
    ) -> JSONResponse:
        """Nearest entry for a raw pointer position inside a viewport."""
        viewer = _viewer()
        if viewer is None:
            return JSONResponse({"error": "Viewer not ready"}, status_code=503)
        sample = normalize_pointer(x, y, width, height, viewer.grid)
        result = viewer.select(sample, previous, TrackingMode.MOUSE)
        return JSONResponse(selection_to_dict(result))

    @app.get("/api/gaze/select/orientation")
    async def get_select_orientation(
        beta: float,
        gamma: float,
        base_beta: float = 0.0,
        base_gamma: float = 0.0,
        previous: Optional[str] = None,
    ) -> JSONResponse:
        """Nearest entry for raw device orientation angles."""
        viewer = _viewer()
        if viewer is None:
            return JSONResponse({"error": "Viewer not ready"}, status_code=503)
        sample = normalize_orientation(
            beta, gamma, viewer.grid,
            max_tilt=viewer.max_tilt,
            baseline=(base_beta, base_gamma),
        )
        result = viewer.select(sample, previous, TrackingMode.ORIENTATION)
        return JSONResponse(selection_to_dict(result))

    # === Static files ===

    asset_dir = config.asset_path()
    if state is not None:
        asset_dir = state.asset_dir
    if asset_dir.is_dir():
        app.mount(IMAGE_ROUTE, StaticFiles(directory=str(asset_dir)), name="images")
        logger.info(f"Serving images from {asset_dir}")
    else:
        logger.warning(f"Image directory {asset_dir} does not exist")

    if serve_static:
        app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="viewer")

    return app

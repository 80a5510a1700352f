"""
Gazeframe web viewer — FastAPI app serving the gaze-following page.

Serves the bundled browser viewer, the generated images and a small JSON
API exposing the manifest and server-side nearest-match selection.

Usage:
    from gazeframe.web import create_app

    app = create_app(config)
    # Run with: gazeframe serve
"""

from .protocol import entry_to_dict, selection_to_dict, viewer_to_dict
from .server import create_app

__all__ = [
    "create_app",
    "entry_to_dict",
    "selection_to_dict",
    "viewer_to_dict",
]

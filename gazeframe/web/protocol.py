"""
Viewer state → JSON serialization for the web API.

Entries use the manifest's on-disk field names so the browser can treat
API responses and the manifest file the same way.
"""

from typing import Any, Dict

from ..types import ManifestEntry, Selection
from ..viewer import ViewerState

IMAGE_ROUTE = "/images"


def entry_to_dict(entry: ManifestEntry) -> Dict[str, Any]:
    data = entry.to_dict()
    data["url"] = f"{IMAGE_ROUTE}/{entry.filename}"
    return data


def selection_to_dict(selection: Selection) -> Dict[str, Any]:
    return {
        "filename": selection.filename,
        "changed": selection.changed,
        "url": f"{IMAGE_ROUTE}/{selection.filename}",
        "entry": entry_to_dict(selection.entry) if selection.entry else None,
    }


def viewer_to_dict(state: ViewerState) -> Dict[str, Any]:
    """Everything the browser needs to run selection on its own."""
    return {
        "mode": state.default_mode.value,
        "fixed_pitch": state.fixed_pitch,
        "max_tilt": state.max_tilt,
        "image_base": f"{IMAGE_ROUTE}/",
        "grid": state.grid.to_dict(),
        "entries": [entry_to_dict(e) for e in state.candidates],
        "excluded": state.preload.failed,
    }

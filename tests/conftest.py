"""Shared fixtures for gazeframe tests."""

import json
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from gazeframe.types import ParameterTriple

# Smallest byte string the preloader recognises as webp
WEBP_BYTES = b"RIFF\x1a\x00\x00\x00WEBPVP8 " + b"\x00" * 14


class FakeEditorClient:
    """
    Stand-in for ExpressionEditorClient.

    ``errors`` maps a triple to a list of exceptions raised by successive
    run() calls for that triple before it succeeds.
    """

    def __init__(self, errors: Optional[Dict[ParameterTriple, List[Exception]]] = None):
        self.errors = {k: list(v) for k, v in (errors or {}).items()}
        self.calls: List[ParameterTriple] = []
        self.downloads: List[str] = []
        self.closed = False

    def run(self, triple: ParameterTriple) -> str:
        self.calls.append(triple)
        pending = self.errors.get(triple)
        if pending:
            raise pending.pop(0)
        return f"https://replicate.delivery/{triple.pitch}_{triple.pupil_x}_{triple.pupil_y}.webp"

    def download(self, url: str) -> bytes:
        self.downloads.append(url)
        return WEBP_BYTES

    def close(self) -> None:
        self.closed = True


class InterruptingClient(FakeEditorClient):
    """Raises KeyboardInterrupt on the n-th run() call."""

    def __init__(self, interrupt_at: int):
        super().__init__()
        self.interrupt_at = interrupt_at

    def run(self, triple: ParameterTriple) -> str:
        if len(self.calls) + 1 == self.interrupt_at:
            self.calls.append(triple)
            raise KeyboardInterrupt
        return super().run(triple)


class SleepRecorder:
    """Records requested waits instead of sleeping."""

    def __init__(self):
        self.waits: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def fake_client():
    return FakeEditorClient()


def write_asset_dir(directory: Path, entries: List[dict], image_bytes: bytes = WEBP_BYTES) -> Path:
    """Write a manifest and one image per entry; returns the manifest path."""
    directory.mkdir(parents=True, exist_ok=True)
    for entry in entries:
        (directory / entry["filename"]).write_bytes(image_bytes)
    manifest = directory / "image-mappings.json"
    manifest.write_text(json.dumps(entries, indent=2))
    return manifest


def entry_dict(pitch: int, pupil_x: int, pupil_y: int) -> dict:
    return {
        "filename": f"image_pitch{pitch}_px{pupil_x}_py{pupil_y}.webp",
        "rotate_pitch": pitch,
        "pupil_x": pupil_x,
        "pupil_y": pupil_y,
    }


@pytest.fixture
def asset_dir(tmp_path):
    """Asset directory holding a small 1 x 3 x 2 grid."""
    entries = [
        entry_dict(0, px, py)
        for px in (-10, 0, 10)
        for py in (-5, 5)
    ]
    directory = tmp_path / "assets"
    write_asset_dir(directory, entries)
    return directory


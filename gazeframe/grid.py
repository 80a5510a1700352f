"""
Parameter grid, filename convention and manifest handling.

The manifest is the only contract between the generator and the viewer:
a JSON array of ``{"filename", "rotate_pitch", "pupil_x", "pupil_y"}``
objects, rewritten in full on every generator run.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import ManifestError
from .types import ManifestEntry, ParameterTriple
from .utils.files import atomic_write_text

logger = logging.getLogger(__name__)

DEFAULT_PITCH_VALUES = (-20, -15, -10, -5, 0, 5, 10, 15, 20)
DEFAULT_PUPIL_X_VALUES = (-15, -10, -5, 0, 5, 10, 15)
DEFAULT_PUPIL_Y_VALUES = (-15, -7, 0, 7, 15)

DEFAULT_EXTENSION = "webp"
MANIFEST_FILENAME = "image-mappings.json"

_FILENAME_RE = re.compile(r"^image_pitch(-?\d+)_px(-?\d+)_py(-?\d+)\.([A-Za-z0-9]+)$")

Manifest = Tuple[ManifestEntry, ...]


def derive_filename(triple: ParameterTriple, extension: str = DEFAULT_EXTENSION) -> str:
    """
    Image filename for a triple.

    The browser viewer builds the same string, so the format must stay
    byte-identical: ``image_pitch{pitch}_px{pupil_x}_py{pupil_y}.{ext}``.
    """
    return f"image_pitch{triple.pitch}_px{triple.pupil_x}_py{triple.pupil_y}.{extension}"


def parse_filename(filename: str) -> Optional[ParameterTriple]:
    """Inverse of derive_filename. Returns None for foreign names."""
    match = _FILENAME_RE.match(filename)
    if not match:
        return None
    pitch, pupil_x, pupil_y = (int(g) for g in match.groups()[:3])
    return ParameterTriple(pitch, pupil_x, pupil_y)


def _check_axis(name: str, values: Sequence[int]) -> Tuple[int, ...]:
    axis = tuple(int(v) for v in values)
    if not axis:
        raise ValueError(f"{name} must contain at least one value")
    if len(set(axis)) != len(axis):
        raise ValueError(f"{name} contains duplicate values: {list(axis)}")
    return axis


class ParameterGrid:
    """
    The fixed set of allowed values per axis.

    Usage:
        grid = ParameterGrid()
        for triple in grid.triples():
            ...
    """

    def __init__(
        self,
        pitch_values: Sequence[int] = DEFAULT_PITCH_VALUES,
        pupil_x_values: Sequence[int] = DEFAULT_PUPIL_X_VALUES,
        pupil_y_values: Sequence[int] = DEFAULT_PUPIL_Y_VALUES,
    ):
        self.pitch_values = _check_axis("pitch_values", pitch_values)
        self.pupil_x_values = _check_axis("pupil_x_values", pupil_x_values)
        self.pupil_y_values = _check_axis("pupil_y_values", pupil_y_values)

    def triples(self) -> Iterator[ParameterTriple]:
        """Cartesian product, pitch outermost, pupil_y innermost."""
        for pitch in self.pitch_values:
            for pupil_x in self.pupil_x_values:
                for pupil_y in self.pupil_y_values:
                    yield ParameterTriple(pitch, pupil_x, pupil_y)

    def __len__(self) -> int:
        return len(self.pitch_values) * len(self.pupil_x_values) * len(self.pupil_y_values)

    def __iter__(self) -> Iterator[ParameterTriple]:
        return self.triples()

    @staticmethod
    def span(values: Sequence[int]) -> Tuple[int, int]:
        """(min, max) of an axis."""
        return min(values), max(values)

    def to_dict(self) -> Dict[str, List[int]]:
        return {
            "pitch": list(self.pitch_values),
            "pupil_x": list(self.pupil_x_values),
            "pupil_y": list(self.pupil_y_values),
        }


class ManifestBuilder:
    """
    Accumulates manifest entries during a generation run.

    Entries keep insertion order; a triple can only be added once.
    """

    def __init__(self, extension: str = DEFAULT_EXTENSION):
        self._extension = extension
        self._entries: List[ManifestEntry] = []
        self._seen: set = set()

    def add(self, triple: ParameterTriple) -> ManifestEntry:
        if triple in self._seen:
            raise ManifestError(f"Duplicate triple in manifest: {triple}")
        entry = ManifestEntry(
            filename=derive_filename(triple, self._extension),
            pitch=triple.pitch,
            pupil_x=triple.pupil_x,
            pupil_y=triple.pupil_y,
        )
        self._seen.add(triple)
        self._entries.append(entry)
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def build(self) -> Manifest:
        return tuple(self._entries)


def manifest_to_json(manifest: Sequence[ManifestEntry]) -> str:
    return json.dumps([entry.to_dict() for entry in manifest], indent=2)


def write_manifest(path: Union[str, Path], manifest: Sequence[ManifestEntry]) -> Path:
    """
    Replace the manifest file with the given entries.

    Written through a temp file so a crash mid-write leaves the previous
    manifest intact.
    """
    path = Path(path)
    atomic_write_text(path, manifest_to_json(manifest) + "\n")
    logger.info(f"Wrote manifest with {len(manifest)} entries to {path}")
    return path


def _parse_entry(index: int, item: Any) -> ManifestEntry:
    if not isinstance(item, dict):
        raise ManifestError(f"Manifest entry {index} is not an object")
    try:
        filename = item["filename"]
        values = [item["rotate_pitch"], item["pupil_x"], item["pupil_y"]]
    except KeyError as exc:
        raise ManifestError(f"Manifest entry {index} is missing {exc.args[0]!r}") from exc
    if not isinstance(filename, str) or not filename:
        raise ManifestError(f"Manifest entry {index} has an invalid filename")
    # bool is an int subclass but never a valid parameter
    if any(isinstance(v, bool) or not isinstance(v, int) for v in values):
        raise ManifestError(f"Manifest entry {index} has non-integer parameters")
    pitch, pupil_x, pupil_y = values
    return ManifestEntry(filename=filename, pitch=pitch, pupil_x=pupil_x, pupil_y=pupil_y)


def parse_manifest(data: Any) -> Manifest:
    """Validate decoded manifest JSON."""
    if not isinstance(data, list):
        raise ManifestError("Manifest must be a JSON array")
    entries = [_parse_entry(i, item) for i, item in enumerate(data)]
    if not entries:
        raise ManifestError("Manifest is empty")

    seen: Dict[ParameterTriple, str] = {}
    for entry in entries:
        if entry.triple in seen:
            raise ManifestError(
                f"Duplicate triple {entry.triple} ({seen[entry.triple]}, {entry.filename})"
            )
        seen[entry.triple] = entry.filename
    return tuple(entries)


def load_manifest(path: Union[str, Path]) -> Manifest:
    """
    Load and validate a manifest file.

    Raises:
        ManifestError: If the file is missing, not valid JSON, malformed,
            contains duplicate triples, or is empty
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestError(f"Manifest not found: {path}") from exc
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest {path}: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Manifest {path} is not valid JSON: {exc}") from exc

    manifest = parse_manifest(data)
    logger.debug(f"Loaded {len(manifest)} manifest entries from {path}")
    return manifest

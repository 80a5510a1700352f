"""
Gazeframe — precomputed gaze-following portraits.

Generates a grid of expression-edited face images (head pitch x pupil
position) through the Replicate expression-editor model, then serves a
static viewer that swaps between them to follow the pointer or the
device orientation.

Generator Usage:
    from gazeframe import GazeConfig, Generator

    config = GazeConfig.load("gazeframe.yaml")
    report = Generator.from_config(config).run()
    print(report.generated, report.failed)

Selection Usage:
    from gazeframe import InputSample, TrackingMode, load_manifest, select

    manifest = load_manifest("generated-images/image-mappings.json")
    result = select(manifest, InputSample(10, 0), None, TrackingMode.MOUSE)
    print(result.filename, result.changed)
"""

__version__ = "1.0.0"

from .config import GazeConfig
from .errors import (
    ConfigurationError,
    EmptyOutputError,
    GazeframeError,
    GenerationError,
    ManifestError,
    RateLimitError,
)
from .generator import GenerationReport, Generator
from .grid import (
    ManifestBuilder,
    ParameterGrid,
    derive_filename,
    load_manifest,
    parse_filename,
    write_manifest,
)
from .selector import Selector, normalize_orientation, normalize_pointer, select
from .types import (
    InputSample,
    ManifestEntry,
    ParameterTriple,
    PreloadStatus,
    RetryState,
    Selection,
    TrackingMode,
)

__all__ = [
    "__version__",
    "GazeConfig",
    "ConfigurationError",
    "EmptyOutputError",
    "GazeframeError",
    "GenerationError",
    "ManifestError",
    "RateLimitError",
    "GenerationReport",
    "Generator",
    "ManifestBuilder",
    "ParameterGrid",
    "derive_filename",
    "load_manifest",
    "parse_filename",
    "write_manifest",
    "Selector",
    "normalize_orientation",
    "normalize_pointer",
    "select",
    "InputSample",
    "ManifestEntry",
    "ParameterTriple",
    "PreloadStatus",
    "RetryState",
    "Selection",
    "TrackingMode",
]

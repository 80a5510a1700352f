"""
Image preloading for the viewer.

Every image named by the manifest is read concurrently before input
handling starts. Broken images are logged and dropped from the candidate
set; images still loading when the timeout elapses stay selectable and are
served lazily.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .types import ManifestEntry, PreloadStatus

logger = logging.getLogger(__name__)


def sniff_image_type(data: bytes) -> Optional[str]:
    """Identify webp, png, jpeg or gif from magic bytes."""
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data.startswith(b"\xff\xd8\xff"):
        return "jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "gif"
    return None


@dataclass
class PreloadReport:
    """Per-filename preload outcome."""
    statuses: Dict[str, PreloadStatus] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    sizes: Dict[str, int] = field(default_factory=dict)

    def _with(self, status: PreloadStatus) -> List[str]:
        return [name for name, s in self.statuses.items() if s is status]

    @property
    def ready(self) -> List[str]:
        return self._with(PreloadStatus.READY)

    @property
    def failed(self) -> List[str]:
        return self._with(PreloadStatus.FAILED)

    @property
    def pending(self) -> List[str]:
        return self._with(PreloadStatus.PENDING)

    def selectable(self, manifest: Sequence[ManifestEntry]) -> tuple:
        """Manifest entries that did not fail, in manifest order."""
        return tuple(
            entry for entry in manifest
            if self.statuses.get(entry.filename) is not PreloadStatus.FAILED
        )

    def summary(self) -> Dict[str, int]:
        return {
            "ready": len(self.ready),
            "failed": len(self.failed),
            "pending": len(self.pending),
        }


def _resolve(asset_dir: Path, filename: str) -> Path:
    path = (asset_dir / filename).resolve()
    # Manifest filenames must stay inside the asset directory
    path.relative_to(asset_dir.resolve())
    return path


async def load_image(asset_dir: Path, filename: str) -> int:
    """
    Read and check one image.

    Returns:
        Size in bytes

    Raises:
        ValueError: Path escapes asset_dir, file is empty or not an image
        OSError: File missing or unreadable
    """
    path = _resolve(asset_dir, filename)
    data = await asyncio.to_thread(path.read_bytes)
    if not data:
        raise ValueError("file is empty")
    if sniff_image_type(data) is None:
        raise ValueError("not a recognised image")
    return len(data)


async def preload_images(
    asset_dir: Union[str, Path],
    filenames: Iterable[str],
    timeout: Optional[float] = 10.0,
) -> PreloadReport:
    """
    Load all images concurrently.

    Args:
        asset_dir: Directory the filenames are relative to
        filenames: Images to load
        timeout: Seconds to wait overall; None waits for everything

    Returns:
        PreloadReport; never raises for individual images
    """
    asset_dir = Path(asset_dir)
    report = PreloadReport()
    names = list(dict.fromkeys(filenames))
    if not names:
        return report

    tasks = {
        name: asyncio.create_task(load_image(asset_dir, name), name=f"preload:{name}")
        for name in names
    }
    _, pending = await asyncio.wait(tasks.values(), timeout=timeout)

    for name, task in tasks.items():
        if task in pending:
            task.cancel()
            report.statuses[name] = PreloadStatus.PENDING
            continue
        exc = task.exception()
        if exc is not None:
            report.statuses[name] = PreloadStatus.FAILED
            report.errors[name] = str(exc) or exc.__class__.__name__
            logger.warning(f"Failed to preload {name}: {report.errors[name]}")
        else:
            report.statuses[name] = PreloadStatus.READY
            report.sizes[name] = task.result()

    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
        logger.info(f"{len(pending)} images still loading after {timeout}s, loading lazily")

    logger.info(
        f"Preloaded {len(report.ready)}/{len(names)} images "
        f"({len(report.failed)} failed, {len(report.pending)} pending)"
    )
    return report

"""
Sequential image generation over the parameter grid.

One request is in flight at a time. Triples whose image already exists
are skipped, so an interrupted run can simply be started again.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Set, Tuple

from .client import ExpressionEditorClient
from .config import GazeConfig
from .errors import GenerationError
from .grid import MANIFEST_FILENAME, Manifest, ManifestBuilder, ParameterGrid, derive_filename, write_manifest
from .types import ParameterTriple
from .utils.files import atomic_write_bytes
from .utils.rate_limit import RateLimitConfig, RequestPacer
from .utils.retry import RetryConfig, RetryMachine

logger = logging.getLogger(__name__)


@dataclass
class GenerationReport:
    """Outcome of one generator run."""
    total: int
    skipped: int = 0
    generated: List[ParameterTriple] = field(default_factory=list)
    failed: List[Tuple[ParameterTriple, str]] = field(default_factory=list)
    requests: int = 0
    backoffs: int = 0
    paced_wait_s: float = 0.0
    duration_s: float = 0.0
    manifest_path: Optional[Path] = None
    manifest_entries: int = 0

    @property
    def complete(self) -> bool:
        return not self.failed


class Generator:
    """
    Drives the acquisition loop.

    Args:
        grid: Parameter grid to cover
        output_dir: Where images and the manifest are written
        client: Expression editor client (anything with run/download)
        retry_config: Attempts and backoff per triple
        pacer: Inter-request delay
        extension: Image file extension
        manifest_filename: Name of the manifest inside output_dir
        sleep: Wait function used for backoff (injectable for tests)
    """

    def __init__(
        self,
        grid: ParameterGrid,
        output_dir: Path,
        client: ExpressionEditorClient,
        retry_config: Optional[RetryConfig] = None,
        pacer: Optional[RequestPacer] = None,
        extension: str = "webp",
        manifest_filename: str = MANIFEST_FILENAME,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.grid = grid
        self.output_dir = Path(output_dir)
        self.client = client
        self.retry_config = retry_config or RetryConfig()
        self.pacer = pacer or RequestPacer(sleep=sleep)
        self.extension = extension
        self.manifest_filename = manifest_filename
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: GazeConfig,
        client: Optional[ExpressionEditorClient] = None,
        api_token: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "Generator":
        """
        Build a generator from config.

        The API token is read from the environment unless given or a
        client is injected.

        Raises:
            ConfigurationError: If no client is given and the token is missing
        """
        if client is None:
            client = ExpressionEditorClient(
                api_token=api_token or GazeConfig.api_token(),
                model_version=config.model_version,
                source_image=config.source_image,
                base_url=config.api_base_url,
                output_format=config.output_format,
                output_quality=config.output_quality,
                crop_factor=config.crop_factor,
                timeout=config.request_timeout,
                poll_interval=config.poll_interval,
                prediction_timeout=config.prediction_timeout,
            )
        return cls(
            grid=config.grid(),
            output_dir=config.output_path(),
            client=client,
            retry_config=RetryConfig(
                max_attempts=config.retry_max_attempts,
                backoff_seconds=config.retry_backoff_seconds,
            ),
            pacer=RequestPacer.from_config(
                RateLimitConfig(request_delay=config.request_delay, enabled=config.rate_limit_enabled),
                sleep=sleep,
            ),
            extension=config.output_format,
            manifest_filename=config.manifest_filename,
            sleep=sleep,
        )

    @property
    def manifest_path(self) -> Path:
        return self.output_dir / self.manifest_filename

    def image_path(self, triple: ParameterTriple) -> Path:
        return self.output_dir / derive_filename(triple, self.extension)

    def prepare_output_dir(self) -> None:
        """
        Create the output directory.

        Raises:
            GenerationError: If the directory cannot be created
        """
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise GenerationError(f"Cannot create output directory {self.output_dir}: {exc}") from exc

    def existing_files(self) -> Set[str]:
        if not self.output_dir.is_dir():
            return set()
        return {p.name for p in self.output_dir.iterdir() if p.is_file()}

    def new_retry_machine(self) -> RetryMachine:
        return RetryMachine(config=self.retry_config, sleep=self._sleep)

    def acquire(self, triple: ParameterTriple, machine: Optional[RetryMachine] = None) -> Path:
        """
        Generate and store the image for one triple.

        The image file is written atomically before this returns.

        Raises:
            GenerationError: Once the retry budget is spent or on a
                non-retryable failure
        """
        machine = machine or self.new_retry_machine()

        def attempt() -> bytes:
            url = self.client.run(triple)
            return self.client.download(url)

        data = machine.run(attempt)
        return atomic_write_bytes(self.image_path(triple), data)

    def run(self) -> GenerationReport:
        """
        Generate every missing image, then rewrite the manifest.

        Per-triple failures are logged and skipped. Only failure to create
        the output directory or to write files aborts the run.
        """
        started = time.monotonic()
        self.prepare_output_dir()
        self.pacer.reset()

        existing = self.existing_files()
        triples = list(self.grid.triples())
        missing = [t for t in triples if derive_filename(t, self.extension) not in existing]
        report = GenerationReport(total=len(triples), skipped=len(triples) - len(missing))

        logger.info(f"Found {len(existing)} existing files in {self.output_dir}/")
        logger.info(f"Total combinations: {len(triples)}")
        logger.info(f"Missing images to generate: {len(missing)}")

        for index, triple in enumerate(missing):
            self.pacer.wait()
            logger.info(
                f"Generating image {index + 1}/{len(missing)}: pitch={triple.pitch}, "
                f"pupil_x={triple.pupil_x}, pupil_y={triple.pupil_y}"
            )
            machine = self.new_retry_machine()
            try:
                path = self.acquire(triple, machine)
            except GenerationError as exc:
                report.failed.append((triple, str(exc)))
                logger.error(
                    f"Failed to generate {derive_filename(triple, self.extension)} "
                    f"after {machine.attempts} attempt(s), skipping: {exc}"
                )
                continue
            finally:
                report.requests += machine.attempts
                report.backoffs += machine.backoffs
            report.generated.append(triple)
            logger.info(f"Saved: {path.name}")

        manifest = self.build_manifest(triples)
        report.manifest_path = write_manifest(self.manifest_path, manifest)
        report.manifest_entries = len(manifest)
        report.duration_s = time.monotonic() - started

        pacing = self.pacer.get_stats()
        report.paced_wait_s = pacing["total_wait_time"]
        logger.debug(
            f"Paced {pacing['total_requests']} request(s), "
            f"waited {pacing['total_wait_time']:.1f}s between them"
        )

        if report.failed:
            logger.warning(f"{len(report.failed)} images failed; run again to resume")
        else:
            logger.info("All images generated")
        return report

    def build_manifest(self, triples: List[ParameterTriple]) -> Manifest:
        """Manifest of every grid triple whose image is on disk, in grid order."""
        present = self.existing_files()
        builder = ManifestBuilder(extension=self.extension)
        for triple in triples:
            if derive_filename(triple, self.extension) in present:
                builder.add(triple)
            else:
                logger.debug(f"Leaving {triple} out of the manifest (no image)")
        return builder.build()

"""End-to-end identification tool.

:class:`IdentificationTool` loads the signature databases once, wires the
matchers into a :class:`~sigsleuth.core.detector.Detector` and produces a
:class:`ToolOutput` per file: the results, the resolved media type, the raw
FileCollection report and, when a transformer is configured, the transformed
report.
"""

from __future__ import annotations

import logging
import time
import xml.etree.ElementTree as ET
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from .config import IdentificationSettings
from .core.detector import Detector
from .core.errors import BuildError, DetectionError, InitializationError, SigsleuthError
from .core.mediatype import MediaType, resolve_media_type
from .core.types import ResultCollection
from .matchers.binary import BinarySignatureMatcher
from .matchers.container import ContainerSignatureMatcher
from .reporting.file_collection import ReportBuilder
from .reporting.transform import DEFAULT_TEMPLATE, ReportTransformer, apply_transform
from .signatures.loader import load_container_signature_file, load_signature_file
from .signatures.model import ContainerSignatureDatabase, SignatureDatabase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutput:
    path: Path
    results: ResultCollection
    media_type: MediaType
    raw: ET.Element
    transformed: Optional[ET.Element]
    duration_ms: int


@dataclass(frozen=True)
class ToolRun:
    """One entry of a batch: the output, or the error that replaced it."""

    path: Path
    output: Optional[ToolOutput] = None
    error: Optional[SigsleuthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class IdentificationTool:
    def __init__(
        self,
        database: SignatureDatabase,
        container_database: Optional[ContainerSignatureDatabase] = None,
        *,
        max_bytes_to_scan: int = -1,
        binary_signatures_only: bool = False,
        match_extensions: bool = True,
        escape_all: bool = False,
        transformer: Optional[ReportTransformer] = None,
        transform_template: str = DEFAULT_TEMPLATE,
    ) -> None:
        self.database = database
        self.container_database = container_database
        self.binary_matcher = BinarySignatureMatcher(
            database,
            max_bytes_to_scan=max_bytes_to_scan,
            match_extensions=match_extensions,
        )
        self.container_matcher: Optional[ContainerSignatureMatcher] = None
        if container_database is not None:
            self.container_matcher = ContainerSignatureMatcher(
                container_database,
                database,
                max_bytes_to_scan=max_bytes_to_scan,
            )
        self.detector = Detector(
            self.binary_matcher,
            self.container_matcher,
            binary_signatures_only=binary_signatures_only,
        )
        self.report_builder = ReportBuilder(
            signature_version=database.version,
            escape_all=escape_all,
        )
        self.transformer = transformer
        self.transform_template = transform_template

    @classmethod
    def from_settings(
        cls,
        settings: IdentificationSettings,
        *,
        transformer: Optional[ReportTransformer] = None,
    ) -> "IdentificationTool":
        """Load the configured signature files and build a tool.

        Raises:
            InitializationError: When a required signature file is missing or
                cannot be parsed.
        """

        try:
            database = load_signature_file(settings.signature_file)
            container_database = None
            if settings.container_signature_file is not None:
                container_database = load_container_signature_file(settings.container_signature_file)
        except InitializationError:
            logger.error("Error initialising signature databases from %s", settings.signature_file)
            raise
        return cls(
            database,
            container_database,
            max_bytes_to_scan=settings.max_bytes_to_scan,
            binary_signatures_only=settings.binary_signatures_only,
            match_extensions=settings.match_extensions,
            escape_all=settings.escape_all,
            transformer=transformer,
            transform_template=settings.transform_template,
        )

    def extract_info(self, path: Path | str) -> ToolOutput:
        """Identify ``path`` and build its reports.

        Raises:
            DetectionError: The file could not be opened or read.
            BuildError: The raw report failed its self-check.
        """

        started = time.monotonic()
        path = Path(path)
        results = self.detector.identify_file(path)
        media_type = resolve_media_type(results.results)
        raw = self.report_builder.build(results, created=datetime.now(timezone.utc))
        transformed = None
        if self.transformer is not None:
            transformed = apply_transform(raw, self.transformer, self.transform_template)
        duration_ms = int((time.monotonic() - started) * 1000)
        return ToolOutput(
            path=path,
            results=results,
            media_type=media_type,
            raw=raw,
            transformed=transformed,
            duration_ms=duration_ms,
        )

    def extract_many(
        self,
        paths: Iterable[Path | str],
        *,
        workers: int = 1,
        on_error: Optional[Callable[[Path, Exception], None]] = None,
    ) -> List[ToolRun]:
        """Run :meth:`extract_info` per file; one failure never stops the rest."""

        if workers <= 0:
            raise ValueError("workers must be a positive integer")
        targets = [Path(path) for path in paths]

        def run(path: Path) -> ToolRun:
            try:
                return ToolRun(path=path, output=self.extract_info(path))
            except (DetectionError, BuildError) as exc:
                logger.warning("Skipping %s: %s", path, exc)
                if on_error is not None:
                    try:
                        on_error(path, exc)
                    except Exception:  # pragma: no cover - defensive
                        logger.exception("on_error handler raised for %s", path)
                return ToolRun(path=path, error=exc)

        if workers == 1 or len(targets) <= 1:
            return [run(path) for path in targets]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sigsleuth") as pool:
            return list(pool.map(run, targets))

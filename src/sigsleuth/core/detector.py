"""Detection orchestration: binary signatures first, container refinement second.

Examples
--------
>>> from sigsleuth.core.types import IdentificationResult, ResultCollection
>>> class StaticMatcher:
...     def match(self, request):
...         collection = ResultCollection(identifier=request.identifier)
...         collection.add_result(IdentificationResult(name="Fixture", mime_type="image/png"))
...         return collection
>>> class NoContainer:
...     def match(self, results, request):
...         return None
>>> detector = Detector(StaticMatcher(), NoContainer())
>>> results = detector.identify_file(Path(__file__))
>>> [result.name for result in results]
['Fixture']
>>> str(resolve_media_type(results.results))
'image/png'
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Callable, Iterable, List, Optional

from .errors import DetectionError, SigsleuthError, StreamError, wrap_io_error
from .mediatype import MediaType, media_type_for_result, resolve_media_type
from .request import IdentificationRequest
from .types import ResultCollection

if TYPE_CHECKING:  # pragma: no cover - import only for type hints
    from ..matchers.base import BinaryMatcher, ContainerMatcher

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Path, Exception], None]


@dataclass
class FileIdentification:
    """Outcome of one file in a batch: results or the error that stopped it."""

    path: Path
    results: Optional[ResultCollection] = None
    error: Optional[SigsleuthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Detector:
    """Sequences the binary matcher and the optional container matcher.

    The detector keeps no per-call state, so one instance can serve
    concurrent identifications of independent files.
    """

    def __init__(
        self,
        binary_matcher: "BinaryMatcher",
        container_matcher: Optional["ContainerMatcher"] = None,
        *,
        binary_signatures_only: bool = False,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """Create a detector.

        Args:
            binary_matcher: Strategy producing the binary signature results.
            container_matcher: Optional strategy refining container formats.
                ``None`` disables container identification entirely.
            binary_signatures_only: Skip container refinement whenever the
                binary matcher already found something.
            on_error: Optional callback invoked with ``(path, exception)``
                when a file in a batch fails. The exception passed will be a
                :class:`~sigsleuth.core.errors.DetectionError`.
        """
        self._binary = binary_matcher
        self._container = container_matcher
        self._binary_only = binary_signatures_only
        self._on_error = on_error

    @property
    def binary_signatures_only(self) -> bool:
        return self._binary_only

    def detect(self, request: IdentificationRequest, stream: BinaryIO) -> ResultCollection:
        """Identify ``stream``; the request owns and closes it."""

        try:
            request.open(stream)
        except StreamError:
            # The request does not own a stream it rejected.
            stream.close()
            raise
        try:
            results = self._binary.match(request)
            if self._binary_only and results.results:
                return results
            if self._container is not None:
                results.add_result(self._container.match(results, request))
            return results
        except OSError as exc:
            raise wrap_io_error(request.metadata.name, exc) from exc
        finally:
            request.close()

    def determine_media_type(self, request: IdentificationRequest, stream: BinaryIO) -> MediaType:
        """Identify ``stream`` and resolve the outcome into a MediaType.

        Outside binary-only mode the container result wins on its own; the
        binary results are used when the container step had nothing to add.
        """

        try:
            request.open(stream)
            results = self._binary.match(request)
            if self._binary_only or self._container is None:
                return resolve_media_type(results.results)
            refined = self._container.match(results, request)
            if refined is None:
                return resolve_media_type(results.results)
            return media_type_for_result(refined)
        except OSError as exc:
            raise wrap_io_error(request.metadata.name, exc) from exc
        finally:
            request.close()

    def identify_file(self, path: Path | str, *, parent_id: Optional[int] = None) -> ResultCollection:
        path = Path(path)
        request = IdentificationRequest.for_path(path, parent_id=parent_id)
        try:
            stream = path.open("rb")
        except OSError as exc:
            raise wrap_io_error(path, exc) from exc
        return self.detect(request, stream)

    def identify_paths(
        self,
        paths: Iterable[Path | str],
        *,
        workers: int = 1,
        on_error: Optional[ErrorCallback] = None,
    ) -> List[FileIdentification]:
        """Identify independent files, isolating per-file failures.

        Args:
            paths: Files to identify. Output order follows this order.
            workers: Thread count; ``1`` runs sequentially.
            on_error: Overrides the detector level callback for this batch.
        """

        if workers <= 0:
            raise ValueError("workers must be a positive integer")
        callback = on_error if on_error is not None else self._on_error
        targets = [Path(path) for path in paths]

        def run(path: Path) -> FileIdentification:
            try:
                return FileIdentification(path=path, results=self.identify_file(path))
            except DetectionError as exc:
                logger.warning("Skipping %s: %s", path, exc)
                self._notify(callback, path, exc)
                return FileIdentification(path=path, error=exc)

        if workers == 1 or len(targets) <= 1:
            return [run(path) for path in targets]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sigsleuth") as pool:
            return list(pool.map(run, targets))

    @staticmethod
    def _notify(callback: Optional[ErrorCallback], path: Path, error: DetectionError) -> None:
        if callback is None:
            return
        try:
            callback(path, error)
        except Exception:  # pragma: no cover - defensive
            logger.exception("on_error handler raised for %s", path)

"""Container-aware refinement of binary matches.

A binary match on a container envelope (a ZIP archive, an OLE2 compound
document) only says "this is a ZIP". The container matcher opens the envelope,
checks which container signature's entries are present (and, where required,
which entry contents match) and reports the contained format as one refined
result.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from ..core.errors import wrap_io_error
from ..core.request import IdentificationRequest
from ..core.types import METHOD_CONTAINER, IdentificationResult, ResultCollection
from ..signatures.model import ContainerSignature, ContainerSignatureDatabase, SignatureDatabase
from .binary import normalise_scan_limit
from .containers import ContainerFormatError, ContainerReader, ReaderFactory, get_container_reader

logger = logging.getLogger(__name__)


class ContainerSignatureMatcher:
    def __init__(
        self,
        container_database: ContainerSignatureDatabase,
        signature_database: SignatureDatabase,
        *,
        max_bytes_to_scan: Optional[int] = -1,
        readers: Optional[Mapping[str, ReaderFactory]] = None,
    ) -> None:
        self._containers = container_database
        self._signatures = signature_database
        self._max_bytes_to_scan = normalise_scan_limit(max_bytes_to_scan)
        self._readers = {key.upper(): value for key, value in (readers or {}).items()}

    @property
    def max_bytes_to_scan(self) -> int:
        return self._max_bytes_to_scan

    def container_type(self, results: ResultCollection) -> Optional[str]:
        """Return the container type triggered by the highest ranked result."""

        for result in results:
            container_type = self._containers.container_type_for(result.puid)
            if container_type is not None:
                return container_type
        return None

    def match(
        self,
        results: ResultCollection,
        request: IdentificationRequest,
    ) -> Optional[IdentificationResult]:
        container_type = self.container_type(results)
        if container_type is None:
            return None
        signatures = self._containers.signatures_for(container_type)
        factory = self._readers.get(container_type) or get_container_reader(container_type)
        if not signatures or factory is None:
            logger.debug(
                "No container signatures or reader for %s (%s)",
                container_type,
                request.metadata.name,
            )
            return None

        try:
            reader = factory(request.stream)
        except ContainerFormatError as exc:
            logger.warning("Skipping %s container check for %s: %s", container_type, request.metadata.name, exc)
            return None
        except OSError as exc:
            raise wrap_io_error(request.metadata.name, exc) from exc

        try:
            cache: Dict[str, bytes] = {}
            for signature in signatures:
                if self._signature_matches(signature, reader, cache):
                    logger.debug(
                        "Container signature %s matched %s",
                        signature.id,
                        request.metadata.name,
                    )
                    return self._result_for(signature)
        except ContainerFormatError as exc:
            logger.warning("Abandoning %s container check for %s: %s", container_type, request.metadata.name, exc)
            return None
        except OSError as exc:
            raise wrap_io_error(request.metadata.name, exc) from exc
        finally:
            reader.close()
        return None

    def _signature_matches(
        self,
        signature: ContainerSignature,
        reader: ContainerReader,
        cache: Dict[str, bytes],
    ) -> bool:
        if not signature.files:
            return False
        for entry in signature.files:
            if not reader.exists(entry.path):
                return False
            if not entry.signatures:
                continue
            content = cache.get(entry.path)
            if content is None:
                content = reader.read(entry.path, self._max_bytes_to_scan)
                cache[entry.path] = content
            if not entry.matches(content, len(content)):
                return False
        return True

    def _result_for(self, signature: ContainerSignature) -> IdentificationResult:
        puid = self._containers.format_mappings.get(signature.id)
        fmt = self._signatures.formats_by_puid.get(puid) if puid else None
        if fmt is not None:
            return fmt.to_result(METHOD_CONTAINER)
        return IdentificationResult(
            name=signature.description or (puid or ""),
            puid=puid,
            method=METHOD_CONTAINER,
        )

"""Binary signature matching against an opened request."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..core.request import IdentificationRequest
from ..core.types import METHOD_BINARY, METHOD_EXTENSION, ResultCollection
from ..signatures.model import FileFormat, SignatureDatabase

logger = logging.getLogger(__name__)


def normalise_scan_limit(value: Optional[int]) -> int:
    """Map ``None`` and non-positive ceilings to ``-1`` (unlimited)."""

    if value is None or value <= 0:
        return -1
    return int(value)


class BinarySignatureMatcher:
    """Match a request against every internal signature of a database.

    Example
    -------
    >>> from sigsleuth.signatures import (
    ...     ByteSequence, FileFormat, InternalSignature, SignatureDatabase, SubSequence,
    ... )
    >>> database = SignatureDatabase(
    ...     signatures=(InternalSignature(1, (ByteSequence((SubSequence(1, "'GIF8'"),)),)),),
    ...     formats=(FileFormat(1, "Graphics Interchange Format", puid="fmt/4", signature_ids=(1,)),),
    ... )
    >>> matcher = BinarySignatureMatcher(database)
    >>> matcher.max_bytes_to_scan
    -1
    """

    def __init__(
        self,
        database: SignatureDatabase,
        *,
        max_bytes_to_scan: Optional[int] = -1,
        match_extensions: bool = True,
    ) -> None:
        self._database = database
        self._max_bytes_to_scan = normalise_scan_limit(max_bytes_to_scan)
        self._match_extensions = match_extensions

    @property
    def database(self) -> SignatureDatabase:
        return self._database

    @property
    def max_bytes_to_scan(self) -> int:
        return self._max_bytes_to_scan

    def match(self, request: IdentificationRequest) -> ResultCollection:
        collection = ResultCollection(identifier=request.identifier)
        buffer = request.buffer
        size = request.size
        formats: Dict[int, FileFormat] = {}
        for signature in self._database.signatures:
            if not signature.matches(buffer, size, self._max_bytes_to_scan):
                continue
            for fmt in self._database.formats_by_signature.get(signature.id, ()):
                formats.setdefault(fmt.id, fmt)

        for fmt in _apply_priorities(list(formats.values())):
            collection.add_result(fmt.to_result(METHOD_BINARY))

        if not collection.results and self._match_extensions:
            for fmt in self._database.formats_for_extension(request.extension):
                collection.add_result(fmt.to_result(METHOD_EXTENSION))
            if collection.results:
                logger.debug(
                    "No signature matched %s; using %s extension-only format(s)",
                    request.metadata.name,
                    len(collection.results),
                )

        logger.debug(
            "Binary signatures matched %s format(s) for %s",
            len(collection.results),
            request.metadata.name,
        )
        return collection


def _apply_priorities(matched: List[FileFormat]) -> List[FileFormat]:
    """Drop formats that another matched format takes priority over."""

    outranked = {
        lower
        for fmt in matched
        for lower in fmt.priority_over
        if lower != fmt.id
    }
    return [fmt for fmt in matched if fmt.id not in outranked]

"""Shared data structures for identification requests and results.

Example
-------
>>> identifier = RequestIdentifier(uri="file:///tmp/a%26b.png")
>>> collection = ResultCollection(identifier=identifier)
>>> collection.add_result(
...     IdentificationResult(name="Portable Network Graphics", puid="fmt/11")
... )
>>> collection.path
'/tmp/a&b.png'
>>> [result.puid for result in collection]
['fmt/11']
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import unquote, urlparse

METHOD_BINARY = "binary"
METHOD_CONTAINER = "container"
METHOD_EXTENSION = "extension"


@dataclass(frozen=True)
class RequestMetaData:
    size: int
    last_modified: Optional[float]
    name: str


@dataclass(frozen=True)
class RequestIdentifier:
    uri: str
    parent_id: Optional[int] = None

    @property
    def path(self) -> str:
        """Percent-decoded path component of :attr:`uri`."""

        parsed = urlparse(self.uri)
        if not parsed.scheme:
            return self.uri
        return unquote(parsed.path)


@dataclass(frozen=True)
class IdentificationResult:
    """One candidate format match produced by a matcher."""

    name: str
    version: Optional[str] = None
    puid: Optional[str] = None
    mime_type: Optional[str] = None
    method: str = METHOD_BINARY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "puid": self.puid,
            "mime_type": self.mime_type,
            "method": self.method,
        }


@dataclass
class ResultCollection:
    """Ordered results for one request, highest priority first."""

    identifier: RequestIdentifier
    results: List[IdentificationResult] = field(default_factory=list)

    def add_result(self, result: Optional[IdentificationResult]) -> None:
        if result is None:
            return
        self.results.append(result)

    @property
    def uri(self) -> str:
        return self.identifier.uri

    @property
    def path(self) -> str:
        return self.identifier.path

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[IdentificationResult]:
        return iter(self.results)

    def __bool__(self) -> bool:
        # An empty collection is still a valid collection.
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uri": self.uri,
            "path": self.path,
            "results": [result.to_dict() for result in self.results],
        }

"""Protocols implemented by the matcher strategies the detector sequences."""

from __future__ import annotations

from typing import Optional, Protocol

from ..core.request import IdentificationRequest
from ..core.types import IdentificationResult, ResultCollection


class BinaryMatcher(Protocol):
    """Produces candidate results for an opened request."""

    def match(self, request: IdentificationRequest) -> ResultCollection:
        ...


class ContainerMatcher(Protocol):
    """Refines binary results using the structure of container formats.

    Returns ``None`` when there is nothing to refine.
    """

    def match(
        self,
        results: ResultCollection,
        request: IdentificationRequest,
    ) -> Optional[IdentificationResult]:
        ...

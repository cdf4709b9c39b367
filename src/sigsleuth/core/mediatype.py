"""Resolve identification results into a single MediaType descriptor.

Example
-------
>>> from sigsleuth.core.types import IdentificationResult
>>> str(resolve_media_type([]))
'application/octet-stream'
>>> excel = IdentificationResult(
...     name="Microsoft Excel", version="97",
...     mime_type="application/vnd.ms-excel, application/x-msexcel",
... )
>>> str(resolve_media_type([excel]))
'application/vnd.ms-excel; version=97'
>>> text = IdentificationResult(name="Plain Text File", puid="x-fmt/111")
>>> str(resolve_media_type([text]))
'application/x-puid-x-fmt-111; name="Plain Text File"'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Sequence

from .types import IdentificationResult

OCTET_STREAM_TYPE = "application/octet-stream"
UNSET_VERSION = "null"

_TOKEN = r"[A-Za-z0-9!#$%&'*+.^_`|~-]+"
_BASE_TYPE = re.compile(rf"^(?P<type>{_TOKEN})/(?P<subtype>{_TOKEN})$")
_PARAMETER = re.compile(
    rf"\s*(?P<key>{_TOKEN})\s*=\s*(?:\"(?P<quoted>(?:[^\"\\]|\\.)*)\"|(?P<plain>[^;\s]*))\s*"
)
_PLAIN_VALUE = re.compile(rf"^{_TOKEN}$")


@dataclass(frozen=True)
class MediaType:
    """A ``type/subtype`` plus ordered, uniquely keyed parameters."""

    base_type: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_type", self.base_type.strip().lower())
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))

    @property
    def type(self) -> str:
        return self.base_type.split("/", 1)[0]

    @property
    def subtype(self) -> str:
        return self.base_type.split("/", 1)[-1]

    def with_parameters(self, parameters: Mapping[str, str]) -> "MediaType":
        return MediaType(self.base_type, parameters)

    @classmethod
    def parse(cls, text: str) -> "MediaType":
        """Parse ``type/subtype; key=value`` text.

        Raises:
            ValueError: When the base type is not a single ``type/subtype``
                pair or a parameter is malformed.
        """

        base, _, remainder = text.strip().partition(";")
        base = base.strip()
        if not _BASE_TYPE.match(base):
            raise ValueError(f"Invalid media type: {text!r}")
        parameters: Dict[str, str] = {}
        for chunk in _split_parameters(remainder):
            match = _PARAMETER.fullmatch(chunk)
            if not match:
                raise ValueError(f"Invalid media type parameter {chunk!r} in {text!r}")
            value = match.group("quoted")
            if value is None:
                value = match.group("plain") or ""
            else:
                value = re.sub(r"\\(.)", r"\1", value)
            parameters[match.group("key").lower()] = value
        return cls(base, parameters)

    def __str__(self) -> str:
        rendered = [self.base_type]
        for key, value in self.parameters.items():
            if not _PLAIN_VALUE.match(value):
                escaped = value.replace("\\", "\\\\").replace('"', '\\"')
                value = f'"{escaped}"'
            rendered.append(f"{key}={value}")
        return "; ".join(rendered)


OCTET_STREAM = MediaType(OCTET_STREAM_TYPE)


def _split_parameters(text: str) -> Sequence[str]:
    chunks = []
    current = []
    quoted = False
    escaped = False
    for char in text:
        if escaped:
            escaped = False
        elif char == "\\" and quoted:
            escaped = True
        elif char == '"':
            quoted = not quoted
        elif char == ";" and not quoted:
            chunks.append("".join(current))
            current = []
            continue
        current.append(char)
    chunks.append("".join(current))
    return [chunk for chunk in chunks if chunk.strip()]


def parse_mime_field(value: Optional[str]) -> Optional[str]:
    """Pick the usable MIME string out of a signature's MIME field.

    Signature sources sometimes list several candidates separated by ``", "``;
    the first one wins. A bare subtype such as ``vnd.wordperfect`` is taken to
    live under ``application/``.
    """

    if value is None or not value.strip():
        return None
    candidate = value.split(", ")[0]
    if "/" not in candidate:
        candidate = "application/" + candidate
    return candidate


def _puid_media_type(result: IdentificationResult) -> MediaType:
    if result.puid:
        base_type = "application/x-puid-" + result.puid.replace("/", "-")
    else:
        base_type = OCTET_STREAM_TYPE
    parameters = {"name": (result.name or "").replace('"', "'")}
    version = result.version
    if version and version != UNSET_VERSION:
        parameters["version"] = version
    return MediaType(base_type, parameters)


def resolve_media_type(results: Sequence[IdentificationResult]) -> MediaType:
    """Reduce ordered results to one MediaType using the first result only."""

    results = list(results)
    if not results:
        return OCTET_STREAM
    first = results[0]
    mime = parse_mime_field(first.mime_type)
    media_type: Optional[MediaType] = None
    if mime is not None:
        try:
            media_type = MediaType.parse(mime)
        except ValueError:
            media_type = None
    if media_type is None:
        return _puid_media_type(first)

    parameters = dict(media_type.parameters)
    # Versions are only trusted when the identification was unambiguous.
    if "version" not in parameters and first.version and len(results) == 1:
        parameters["version"] = first.version
    return media_type.with_parameters(parameters)


def media_type_for_result(result: Optional[IdentificationResult]) -> MediaType:
    return resolve_media_type([result] if result is not None else [])

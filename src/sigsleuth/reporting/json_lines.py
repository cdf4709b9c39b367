"""Newline-delimited JSON helpers for identification reports.

Each identified file becomes one ``identification`` record carrying its
results and resolved media type; files that failed become ``error`` records.
The helpers stream records so large batches never have to be held as one
JSON document.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Iterator, Mapping, TextIO

from ..core.detector import FileIdentification
from ..core.mediatype import resolve_media_type

__all__ = ["iter_json_records", "render_json_lines", "write_json_lines"]


def _prepare_record(kind: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    return {"type": kind, "payload": dict(payload)}


def _identification_payload(entry: FileIdentification) -> dict[str, Any]:
    if entry.results is None:
        return {
            "path": str(entry.path),
            "uri": None,
            "results": [],
            "media_type": str(resolve_media_type([])),
        }
    media_type = resolve_media_type(entry.results.results)
    return {
        "path": str(entry.path),
        "uri": entry.results.uri,
        "results": [result.to_dict() for result in entry.results],
        "media_type": str(media_type),
    }


def iter_json_records(
    entries: Iterable[FileIdentification],
    *,
    extra_metadata: Mapping[str, object] | None = None,
) -> Iterator[dict[str, Any]]:
    """Yield JSON-compatible records for identified and failed files."""

    run_metadata = dict(extra_metadata or {})
    for entry in entries:
        if entry.error is not None:
            payload: dict[str, Any] = {
                "path": str(entry.path),
                "error": type(entry.error).__name__,
                "message": str(entry.error),
            }
            kind = "error"
        else:
            payload = _identification_payload(entry)
            kind = "identification"
        if run_metadata:
            payload["run_metadata"] = dict(run_metadata)
        yield _prepare_record(kind, payload)


def render_json_lines(
    entries: Iterable[FileIdentification],
    *,
    extra_metadata: Mapping[str, object] | None = None,
    sort_keys: bool = True,
) -> str:
    """Return newline-delimited JSON for ``entries``."""

    lines = [
        json.dumps(record, ensure_ascii=False, sort_keys=sort_keys)
        for record in iter_json_records(entries, extra_metadata=extra_metadata)
    ]
    return "\n".join(lines)


def write_json_lines(
    entries: Iterable[FileIdentification],
    stream: TextIO,
    *,
    extra_metadata: Mapping[str, object] | None = None,
    sort_keys: bool = True,
) -> None:
    """Write newline-delimited JSON to ``stream``."""

    for record in iter_json_records(entries, extra_metadata=extra_metadata):
        stream.write(json.dumps(record, ensure_ascii=False, sort_keys=sort_keys))
        stream.write("\n")

"""Reporting adapters for identification results.

The FileCollection XML document is the canonical raw report; the JSON lines
helpers serve batch tooling, and :mod:`.transform` hands raw documents to an
external transform.
"""

from .file_collection import (
    FILE_COLLECTION_NS,
    ReportBuilder,
    escape_ampersands,
    escape_markup,
    hit_count,
    to_string,
)
from .json_lines import iter_json_records, render_json_lines, write_json_lines
from .transform import DEFAULT_TEMPLATE, ReportTransformer, apply_transform

__all__ = [
    "DEFAULT_TEMPLATE",
    "FILE_COLLECTION_NS",
    "ReportBuilder",
    "ReportTransformer",
    "apply_transform",
    "escape_ampersands",
    "escape_markup",
    "hit_count",
    "iter_json_records",
    "render_json_lines",
    "to_string",
    "write_json_lines",
]

"""FileCollection report documents.

The builder writes the report as text, in a fixed element order, and then
parses it back with :mod:`defusedxml`. The round trip doubles as a self-check:
text that fails to parse raises :class:`~sigsleuth.core.errors.BuildError`.

Only ``&`` is escaped by default, which keeps the output byte-compatible with
existing consumers. Values containing ``<``, ``>`` or quotes therefore fail
the self-check unless the builder is created with ``escape_all=True``.
"""

from __future__ import annotations

import io
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Callable, List, Optional
from xml.sax.saxutils import escape as _xml_escape

from defusedxml import ElementTree as DEFUSED_ET
from defusedxml.common import DefusedXmlException

from .. import __version__
from ..core.errors import BuildError
from ..core.types import IdentificationResult, ResultCollection

FILE_COLLECTION_NS = "http://www.nationalarchives.gov.uk/pronom/FileCollection"
HIT_STATUS = "Information unavailable"


def escape_ampersands(value: str) -> str:
    return value.replace("&", "&amp;")


def escape_markup(value: str) -> str:
    return _xml_escape(value, {'"': "&quot;"})


class ReportBuilder:
    """Serialise a :class:`ResultCollection` into a FileCollection document.

    Example
    -------
    >>> from sigsleuth.core.types import RequestIdentifier
    >>> collection = ResultCollection(RequestIdentifier("file:///data/R%26D.txt"))
    >>> root = ReportBuilder(signature_version="v70").build(collection)
    >>> root.find(f"{{{FILE_COLLECTION_NS}}}IdentificationFile/{{{FILE_COLLECTION_NS}}}FilePath").text
    '/data/R&D.txt'
    """

    def __init__(
        self,
        tool_version: str = __version__,
        signature_version: str = "",
        *,
        escape_all: bool = False,
    ) -> None:
        self.tool_version = tool_version
        self.signature_version = signature_version
        self._escape: Callable[[str], str] = escape_markup if escape_all else escape_ampersands

    def render(self, collection: ResultCollection, *, created: Optional[datetime] = None) -> str:
        """Return the report text for ``collection``."""

        esc = self._escape
        out = io.StringIO()
        out.write('<?xml version="1.0" encoding="UTF-8"?>\n')
        out.write(f'<FileCollection xmlns="{FILE_COLLECTION_NS}">\n')
        out.write(f"  <DROIDVersion>{esc(self.tool_version)}</DROIDVersion>\n")
        out.write(f"  <SignatureFileVersion>{esc(self.signature_version)}</SignatureFileVersion>\n")
        stamp = created.isoformat() if created is not None else ""
        out.write(f"  <DateCreated>{esc(stamp)}</DateCreated>\n")
        out.write('  <IdentificationFile IdentQuality="" >\n')
        out.write(f"    <FilePath>{esc(collection.path)}</FilePath>\n")
        if not collection.results:
            out.write("    <FileFormatHit>\n")
            out.write("    </FileFormatHit>\n")
        for hit in collection.results:
            out.writelines(self._hit_lines(hit))
        out.write("  </IdentificationFile>\n")
        out.write("</FileCollection>\n")
        return out.getvalue()

    def _hit_lines(self, hit: IdentificationResult) -> List[str]:
        esc = self._escape
        lines = [
            "    <FileFormatHit>\n",
            f"      <Status>{HIT_STATUS}</Status>\n",
            f"      <Name>{esc(hit.name or '')}</Name>\n",
        ]
        if hit.version is not None:
            lines.append(f"      <Version>{esc(hit.version)}</Version>\n")
        if hit.puid is not None:
            lines.append(f"      <PUID>{esc(hit.puid)}</PUID>\n")
        if hit.mime_type is not None:
            lines.append(f"      <MimeType>{esc(hit.mime_type)}</MimeType>\n")
        lines.append("    </FileFormatHit>\n")
        return lines

    def build(self, collection: ResultCollection, *, created: Optional[datetime] = None) -> ET.Element:
        """Render ``collection`` and parse it back into an element tree."""

        text = self.render(collection, created=created)
        try:
            return DEFUSED_ET.fromstring(text.encode("utf-8"))
        except (ET.ParseError, DefusedXmlException) as exc:
            raise BuildError(f"Error parsing report for {collection.path}: {exc}") from exc


def hit_count(document: ET.Element) -> int:
    """Number of ``FileFormatHit`` elements in a built report."""

    return len(document.findall(f".//{{{FILE_COLLECTION_NS}}}FileFormatHit"))


def to_string(document: ET.Element) -> str:
    return ET.tostring(document, encoding="unicode")

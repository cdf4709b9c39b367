"""Load binary and container signature definition files.

Both loaders parse with :mod:`defusedxml` and accept namespaced or plain
element names. Any missing file, XML error or invalid byte pattern surfaces as
:class:`~sigsleuth.core.errors.InitializationError` so a tool never starts
with a half-loaded database.

Binary signature files look like::

    <FFSignatureFile Version="70">
      <InternalSignatureCollection>
        <InternalSignature ID="1">
          <ByteSequence Reference="BOFoffset">
            <SubSequence Position="1" SubSeqMinOffset="0" SubSeqMaxOffset="0">
              <Sequence>89504E470D0A1A0A</Sequence>
            </SubSequence>
          </ByteSequence>
        </InternalSignature>
      </InternalSignatureCollection>
      <FileFormatCollection>
        <FileFormat ID="1" Name="Portable Network Graphics" PUID="fmt/11"
                    Version="1.0" MIMEType="image/png">
          <InternalSignatureID>1</InternalSignatureID>
          <Extension>png</Extension>
        </FileFormat>
      </FileFormatCollection>
    </FFSignatureFile>
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from defusedxml import ElementTree as DEFUSED_ET
from defusedxml.common import DefusedXmlException

from ..core.errors import InitializationError
from .model import (
    BOF,
    EOF,
    VARIABLE,
    ByteSequence,
    ContainerFile,
    ContainerSignature,
    ContainerSignatureDatabase,
    FileFormat,
    InternalSignature,
    SequenceFragment,
    SignatureDatabase,
    SubSequence,
)
from .sequence import SignatureSyntaxError

logger = logging.getLogger(__name__)

_REFERENCES = {
    "bofoffset": BOF,
    "eofoffset": EOF,
    "variable": VARIABLE,
    "": VARIABLE,
}


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> Iterator[ET.Element]:
    for child in element:
        if _local(child.tag) == name:
            yield child


def _child(element: ET.Element, name: str) -> Optional[ET.Element]:
    return next(_children(element, name), None)


def _text(element: Optional[ET.Element]) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _attr(element: ET.Element, *names: str) -> Optional[str]:
    """Return the first attribute present among ``names`` (case-insensitive)."""

    lowered = {key.lower(): value for key, value in element.attrib.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value is not None:
            return value.strip()
    return None


def _int_attr(element: ET.Element, *names: str, default: Optional[int] = None) -> Optional[int]:
    value = _attr(element, *names)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"<{_local(element.tag)}> {names[0]}={value!r} is not an integer") from exc


def _parse_fragments(element: ET.Element, name: str) -> Tuple[SequenceFragment, ...]:
    fragments = []
    for node in _children(element, name):
        min_offset = _int_attr(node, "MinOffset", default=0) or 0
        fragments.append(
            SequenceFragment(
                position=_int_attr(node, "Position", default=1) or 1,
                sequence=_text(node),
                min_offset=min_offset,
                max_offset=_int_attr(node, "MaxOffset", default=min_offset),
            )
        )
    return tuple(fragments)


def _parse_subsequence(element: ET.Element, index: int) -> SubSequence:
    # A missing maximum pins the sub-sequence at its minimum offset.
    min_offset = _int_attr(element, "SubSeqMinOffset", default=0) or 0
    return SubSequence(
        position=_int_attr(element, "Position", default=index) or index,
        sequence=_text(_child(element, "Sequence")),
        min_offset=min_offset,
        max_offset=_int_attr(element, "SubSeqMaxOffset", default=min_offset),
        left_fragments=_parse_fragments(element, "LeftFragment"),
        right_fragments=_parse_fragments(element, "RightFragment"),
    )


def _parse_byte_sequence(element: ET.Element) -> ByteSequence:
    reference_text = (_attr(element, "Reference") or "").lower()
    if reference_text not in _REFERENCES:
        raise ValueError(f"Unknown byte sequence reference {reference_text!r}")
    subsequences = tuple(
        _parse_subsequence(node, index)
        for index, node in enumerate(_children(element, "SubSequence"), start=1)
    )
    return ByteSequence(subsequences=subsequences, reference=_REFERENCES[reference_text])


def parse_internal_signature(element: ET.Element) -> InternalSignature:
    """Build an :class:`InternalSignature` from an ``<InternalSignature>`` node."""

    return InternalSignature(
        id=_int_attr(element, "ID", default=0) or 0,
        byte_sequences=tuple(
            _parse_byte_sequence(node) for node in _children(element, "ByteSequence")
        ),
        specificity=_attr(element, "Specificity"),
    )


def _parse_file_format(element: ET.Element) -> FileFormat:
    def ids(name: str) -> Tuple[int, ...]:
        return tuple(int(_text(node)) for node in _children(element, name) if _text(node))

    return FileFormat(
        id=_int_attr(element, "ID", default=0) or 0,
        name=_attr(element, "Name") or "",
        puid=_attr(element, "PUID") or None,
        version=_attr(element, "Version") or None,
        mime_type=_attr(element, "MIMEType") or None,
        extensions=tuple(
            _text(node).lower().lstrip(".") for node in _children(element, "Extension") if _text(node)
        ),
        signature_ids=ids("InternalSignatureID"),
        priority_over=ids("HasPriorityOverFileFormatID"),
    )


def _read_root(path: Path, *, label: str) -> ET.Element:
    path = Path(path)
    if not path.is_file():
        raise InitializationError(f"{label} not found: {path}")
    try:
        return DEFUSED_ET.parse(str(path)).getroot()
    except (ET.ParseError, DefusedXmlException) as exc:
        raise InitializationError(f"Can't parse {label.lower()}: {path}") from exc
    except OSError as exc:
        raise InitializationError(f"Unable to read {label.lower()} {path}: {exc}") from exc


def build_signature_database(root: ET.Element) -> SignatureDatabase:
    signatures: List[InternalSignature] = []
    collection = _child(root, "InternalSignatureCollection")
    if collection is not None:
        signatures.extend(
            parse_internal_signature(node) for node in _children(collection, "InternalSignature")
        )
    formats: List[FileFormat] = []
    format_collection = _child(root, "FileFormatCollection")
    if format_collection is not None:
        formats.extend(
            _parse_file_format(node) for node in _children(format_collection, "FileFormat")
        )
    return SignatureDatabase(
        signatures=tuple(signatures),
        formats=tuple(formats),
        version=_attr(root, "Version") or "",
    )


def load_signature_file(path: Path | str) -> SignatureDatabase:
    """Load a binary signature file into a :class:`SignatureDatabase`."""

    root = _read_root(Path(path), label="Signature file")
    try:
        database = build_signature_database(root)
    except (SignatureSyntaxError, ValueError) as exc:
        raise InitializationError(f"Can't parse signature file: {path}: {exc}") from exc
    logger.debug(
        "Loaded %s signatures and %s formats from %s (version %s)",
        len(database.signatures),
        len(database.formats),
        path,
        database.version or "unknown",
    )
    return database


def _parse_container_signature(element: ET.Element) -> ContainerSignature:
    files: List[ContainerFile] = []
    files_node = _child(element, "Files")
    for node in _children(files_node, "File") if files_node is not None else ():
        signatures: Tuple[InternalSignature, ...] = ()
        binary = _child(node, "BinarySignatures")
        if binary is not None:
            collection = _child(binary, "InternalSignatureCollection")
            source = collection if collection is not None else binary
            signatures = tuple(
                parse_internal_signature(sig) for sig in _children(source, "InternalSignature")
            )
        path = _text(_child(node, "Path"))
        if not path:
            raise ValueError("Container signature file entry without <Path>")
        files.append(ContainerFile(path=path, signatures=signatures))
    return ContainerSignature(
        id=_int_attr(element, "Id", "ID", default=0) or 0,
        container_type=(_attr(element, "ContainerType") or "").upper(),
        files=tuple(files),
        description=_text(_child(element, "Description")),
    )


def build_container_database(root: ET.Element) -> ContainerSignatureDatabase:
    signatures: List[ContainerSignature] = []
    signatures_node = _child(root, "ContainerSignatures")
    if signatures_node is not None:
        signatures.extend(
            _parse_container_signature(node)
            for node in _children(signatures_node, "ContainerSignature")
        )
    mappings: Dict[int, str] = {}
    mappings_node = _child(root, "FileFormatMappings")
    if mappings_node is not None:
        for node in _children(mappings_node, "FileFormatMapping"):
            signature_id = _int_attr(node, "signatureId")
            puid = _attr(node, "Puid")
            if signature_id is None or not puid:
                raise ValueError("FileFormatMapping requires signatureId and Puid")
            mappings.setdefault(signature_id, puid)
    triggers: Dict[str, List[str]] = {}
    triggers_node = _child(root, "TriggerPuids")
    if triggers_node is not None:
        for node in _children(triggers_node, "TriggerPuid"):
            container_type = (_attr(node, "ContainerType") or "").upper()
            puid = _attr(node, "Puid")
            if container_type and puid:
                triggers.setdefault(container_type, []).append(puid)
    return ContainerSignatureDatabase(
        signatures=tuple(signatures),
        format_mappings=mappings,
        trigger_puids={key: tuple(value) for key, value in triggers.items()},
        version=_attr(root, "signatureVersion") or "",
    )


def load_container_signature_file(path: Path | str) -> ContainerSignatureDatabase:
    """Load a container signature file into a :class:`ContainerSignatureDatabase`."""

    root = _read_root(Path(path), label="Container signature file")
    try:
        database = build_container_database(root)
    except (SignatureSyntaxError, ValueError) as exc:
        raise InitializationError(f"Can't parse container signature file: {path}: {exc}") from exc
    logger.debug(
        "Loaded %s container signatures from %s",
        len(database.signatures),
        path,
    )
    return database

"""In-memory signature databases.

Every structure here is immutable once built so a database loaded at start-up
can be shared by concurrent identifications without locking. Byte sequences
compile their regular expression at construction, which surfaces syntax
errors while the database is loaded rather than during a scan.
"""

from __future__ import annotations

import mmap
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from ..core.types import METHOD_BINARY, IdentificationResult
from .sequence import Fragment, compile_fragment, either, gap, join, split_segments, translate_parts

BOF = "BOFoffset"
EOF = "EOFoffset"
VARIABLE = "Variable"

Buffer = Union[bytes, bytearray, memoryview, mmap.mmap]


@dataclass(frozen=True)
class SequenceFragment:
    """Pattern attached to the left or right of a sub-sequence."""

    position: int
    sequence: str
    min_offset: int = 0
    max_offset: Optional[int] = 0


def _fragment_group(fragments: Tuple[SequenceFragment, ...], *, left: bool) -> List[Fragment]:
    """Fold fragments into regex parts ordered left to right.

    Position 1 is adjacent to the sub-sequence; fragments sharing a position
    are alternatives, each keeping its own gap. A lone fragment stays split
    into its parts so an open-ended gap remains visible to the matcher.
    """

    positions = sorted({fragment.position for fragment in fragments}, reverse=left)
    parts: List[Fragment] = []
    for position in positions:
        options = []
        for fragment in fragments:
            if fragment.position != position:
                continue
            pattern = translate_parts(fragment.sequence)
            spacing = gap(fragment.min_offset, fragment.max_offset)
            options.append([*pattern, spacing] if left else [spacing, *pattern])
        if len(options) == 1:
            parts.extend(options[0])
        else:
            parts.append(either(join(option) for option in options))
    return parts


@dataclass(frozen=True)
class SubSequence:
    position: int
    sequence: str
    min_offset: int = 0
    max_offset: Optional[int] = 0
    left_fragments: Tuple[SequenceFragment, ...] = ()
    right_fragments: Tuple[SequenceFragment, ...] = ()

    def parts(self) -> List[Fragment]:
        return [
            *_fragment_group(self.left_fragments, left=True),
            *translate_parts(self.sequence),
            *_fragment_group(self.right_fragments, left=False),
        ]


Segment = Tuple[int, "re.Pattern[bytes]", Optional[int]]


@dataclass(frozen=True)
class ByteSequence:
    """Ordered sub-sequences anchored at BOF, EOF or floating.

    The expression is compiled as segments split at open-ended gaps. Each
    segment is matched at its earliest position after the end of the previous
    one, so a scan stays linear in the number of bytes examined.
    """

    subsequences: Tuple[SubSequence, ...]
    reference: str = BOF
    segments: Tuple[Segment, ...] = field(init=False, repr=False, compare=False)
    span: Optional[int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.reference not in (BOF, EOF, VARIABLE):
            raise ValueError(f"Unknown byte sequence reference: {self.reference!r}")
        if not self.subsequences:
            raise ValueError("A byte sequence needs at least one sub-sequence")
        ordered = sorted(self.subsequences, key=lambda sub: sub.position)
        parts: List[Fragment] = []
        if self.reference == BOF:
            for sub in ordered:
                parts.append(gap(sub.min_offset, sub.max_offset))
                parts.extend(sub.parts())
        elif self.reference == EOF:
            # Position 1 sits nearest the end; offsets count back from there.
            for sub in reversed(ordered):
                parts.extend(sub.parts())
                parts.append(gap(sub.min_offset, sub.max_offset))
            parts.append(Fragment(r"\Z", 0))
        else:
            parts.extend(ordered[0].parts())
            for sub in ordered[1:]:
                parts.append(gap(sub.min_offset, sub.max_offset))
                parts.extend(sub.parts())
        segments = tuple(
            (min_gap, compile_fragment(fragment), fragment.width)
            for min_gap, fragment in split_segments(parts)
        )
        object.__setattr__(self, "segments", segments)
        object.__setattr__(self, "span", join(parts).width)

    def matches(self, buffer: Buffer, size: int, max_bytes: Optional[int] = None) -> bool:
        """Check the sequence against the first/last ``max_bytes`` of ``buffer``."""

        limit = size if max_bytes is None or max_bytes <= 0 else min(size, max_bytes)
        if self.reference == EOF:
            position, end = size - limit, size
            if self.span is not None:
                position = max(position, size - self.span)
        else:
            position, end = 0, limit
        last = len(self.segments) - 1
        for index, (min_gap, pattern, width) in enumerate(self.segments):
            position += min_gap
            if position > end:
                return False
            if index == 0 and self.reference == BOF:
                found = pattern.match(buffer, position, end)
            else:
                if index == last and self.reference == EOF and width is not None:
                    # The final segment ends at \Z.
                    position = max(position, end - width)
                found = pattern.search(buffer, position, end)
            if found is None:
                return False
            position = found.end()
        return True


@dataclass(frozen=True)
class InternalSignature:
    id: int
    byte_sequences: Tuple[ByteSequence, ...]
    specificity: Optional[str] = None

    def matches(self, buffer: Buffer, size: int, max_bytes: Optional[int] = None) -> bool:
        if not self.byte_sequences:
            return False
        return all(sequence.matches(buffer, size, max_bytes) for sequence in self.byte_sequences)


@dataclass(frozen=True)
class FileFormat:
    id: int
    name: str
    puid: Optional[str] = None
    version: Optional[str] = None
    mime_type: Optional[str] = None
    extensions: Tuple[str, ...] = ()
    signature_ids: Tuple[int, ...] = ()
    priority_over: Tuple[int, ...] = ()

    def to_result(self, method: str = METHOD_BINARY) -> IdentificationResult:
        return IdentificationResult(
            name=self.name,
            version=self.version,
            puid=self.puid,
            mime_type=self.mime_type,
            method=method,
        )


@dataclass(frozen=True)
class SignatureDatabase:
    """Ordered binary signatures and the file formats they identify."""

    signatures: Tuple[InternalSignature, ...]
    formats: Tuple[FileFormat, ...]
    version: str = ""
    formats_by_id: Mapping[int, FileFormat] = field(init=False, repr=False, compare=False)
    formats_by_puid: Mapping[str, FileFormat] = field(init=False, repr=False, compare=False)
    formats_by_signature: Mapping[int, Tuple[FileFormat, ...]] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        by_id: Dict[int, FileFormat] = {}
        by_puid: Dict[str, FileFormat] = {}
        by_signature: Dict[int, List[FileFormat]] = {}
        for fmt in self.formats:
            by_id.setdefault(fmt.id, fmt)
            if fmt.puid:
                by_puid.setdefault(fmt.puid, fmt)
            for signature_id in fmt.signature_ids:
                by_signature.setdefault(signature_id, []).append(fmt)
        object.__setattr__(self, "formats_by_id", MappingProxyType(by_id))
        object.__setattr__(self, "formats_by_puid", MappingProxyType(by_puid))
        object.__setattr__(
            self,
            "formats_by_signature",
            MappingProxyType({key: tuple(value) for key, value in by_signature.items()}),
        )

    def formats_for_extension(self, extension: str, *, unsigned_only: bool = True) -> Tuple[FileFormat, ...]:
        extension = extension.lower().lstrip(".")
        if not extension:
            return ()
        return tuple(
            fmt
            for fmt in self.formats
            if extension in fmt.extensions and (not unsigned_only or not fmt.signature_ids)
        )


@dataclass(frozen=True)
class ContainerFile:
    """Entry a container signature expects, optionally with content signatures."""

    path: str
    signatures: Tuple[InternalSignature, ...] = ()

    def matches(self, content: Buffer, size: int, max_bytes: Optional[int] = None) -> bool:
        if not self.signatures:
            return True
        return any(signature.matches(content, size, max_bytes) for signature in self.signatures)


@dataclass(frozen=True)
class ContainerSignature:
    id: int
    container_type: str
    files: Tuple[ContainerFile, ...]
    description: str = ""


@dataclass(frozen=True)
class ContainerSignatureDatabase:
    """Container signatures keyed by container type and trigger PUID."""

    signatures: Tuple[ContainerSignature, ...]
    format_mappings: Mapping[int, str]
    trigger_puids: Mapping[str, Tuple[str, ...]]
    version: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "format_mappings", MappingProxyType(dict(self.format_mappings)))
        object.__setattr__(
            self,
            "trigger_puids",
            MappingProxyType({key.upper(): tuple(value) for key, value in self.trigger_puids.items()}),
        )

    def container_type_for(self, puid: Optional[str]) -> Optional[str]:
        if not puid:
            return None
        for container_type, puids in self.trigger_puids.items():
            if puid in puids:
                return container_type
        return None

    def signatures_for(self, container_type: str) -> Tuple[ContainerSignature, ...]:
        container_type = container_type.upper()
        return tuple(
            signature
            for signature in self.signatures
            if signature.container_type.upper() == container_type
        )

"""Scoped access to the bytes of one file under identification.

An :class:`IdentificationRequest` takes ownership of a binary stream when
opened and releases it on :meth:`IdentificationRequest.close`. Matchers scan
:attr:`IdentificationRequest.buffer`, a memory map of the stream, so large
files are paged in by the OS instead of being read into Python memory.
Streams that cannot seek (pipes, sockets) are first spooled to a temporary
file.
"""

from __future__ import annotations

import io
import logging
import mmap
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional, Union

from .errors import StreamError, wrap_io_error
from .types import RequestIdentifier, RequestMetaData

logger = logging.getLogger(__name__)

_SPOOL_CHUNK = 1024 * 1024

Buffer = Union[bytes, mmap.mmap]


def _is_seekable(stream: BinaryIO) -> bool:
    try:
        return bool(stream.seekable())
    except (AttributeError, OSError, ValueError):
        return False


def _has_fileno(stream: BinaryIO) -> bool:
    try:
        stream.fileno()
    except (AttributeError, OSError, io.UnsupportedOperation, ValueError):
        return False
    return True


class IdentificationRequest:
    """File bytes plus metadata for a single identification call."""

    def __init__(self, metadata: RequestMetaData, identifier: RequestIdentifier) -> None:
        self.metadata = metadata
        self.identifier = identifier
        self._stream: Optional[BinaryIO] = None
        self._spool: Optional[BinaryIO] = None
        self._map: Optional[mmap.mmap] = None
        self._bytes: Optional[bytes] = None
        self._size = 0
        self._closed = False

    @classmethod
    def for_path(cls, path: Path | str, *, parent_id: Optional[int] = None) -> "IdentificationRequest":
        """Build metadata and identifier for ``path`` without opening it."""

        path = Path(path)
        try:
            resolved = path.resolve()
            stat = resolved.stat()
        except OSError as exc:
            raise wrap_io_error(path, exc) from exc
        metadata = RequestMetaData(
            size=stat.st_size,
            last_modified=stat.st_mtime,
            name=str(resolved),
        )
        identifier = RequestIdentifier(uri=resolved.as_uri(), parent_id=parent_id)
        return cls(metadata, identifier)

    @property
    def path(self) -> Path:
        return Path(self.identifier.path)

    @property
    def extension(self) -> str:
        """Lower-cased file extension of the display name, without the dot."""

        return Path(self.metadata.name).suffix.lower().lstrip(".")

    @property
    def is_open(self) -> bool:
        return self._stream is not None and not self._closed

    @property
    def size(self) -> int:
        self._require_open()
        return self._size

    @property
    def stream(self) -> BinaryIO:
        """Seekable stream positioned at the start of the content."""

        self._require_open()
        stream = self._spool if self._spool is not None else self._stream
        if stream is None:
            raise StreamError(self.metadata.name, "request has no stream")
        try:
            stream.seek(0)
        except OSError as exc:
            raise wrap_io_error(self.metadata.name, exc) from exc
        return stream

    @property
    def buffer(self) -> Buffer:
        """Random-access view of the whole content."""

        self._require_open()
        if self._map is not None:
            return self._map
        return self._bytes if self._bytes is not None else b""

    def open(self, stream: BinaryIO) -> None:
        """Take ownership of ``stream`` and prepare the scan buffer."""

        if self._stream is not None:
            raise StreamError(self.metadata.name, "request is already open")
        self._stream = stream
        try:
            source = stream
            if not _is_seekable(stream):
                self._spool = tempfile.TemporaryFile()
                shutil.copyfileobj(stream, self._spool, _SPOOL_CHUNK)
                self._spool.flush()
                source = self._spool
            source.seek(0, os.SEEK_END)
            self._size = source.tell()
            source.seek(0)
            if self._size and _has_fileno(source):
                self._map = mmap.mmap(source.fileno(), 0, access=mmap.ACCESS_READ)
            elif self._size:
                self._bytes = source.read()
        except (OSError, ValueError) as exc:
            self.close()
            raise StreamError(self.metadata.name, str(exc)) from exc
        logger.debug("Opened %s (%s bytes)", self.metadata.name, self._size)

    def read(self, offset: int, length: int) -> bytes:
        """Return up to ``length`` bytes starting at ``offset``."""

        buffer = self.buffer
        if offset < 0 or offset >= self._size or length <= 0:
            return b""
        try:
            return bytes(buffer[offset: offset + length])
        except (OSError, ValueError) as exc:
            raise StreamError(self.metadata.name, str(exc)) from exc

    def close(self) -> None:
        """Release the buffer and every stream owned by the request."""

        if self._closed:
            return
        self._closed = True
        if self._map is not None:
            self._map.close()
            self._map = None
        self._bytes = None
        for handle in (self._spool, self._stream):
            if handle is None:
                continue
            try:
                handle.close()
            except OSError:
                logger.debug("Ignoring close failure for %s", self.metadata.name)
        self._spool = None

    def _require_open(self) -> None:
        if self._stream is None or self._closed:
            raise StreamError(self.metadata.name, "request is not open")

    def __enter__(self) -> "IdentificationRequest":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"IdentificationRequest(uri={self.identifier.uri!r}, size={self.metadata.size})"

from __future__ import annotations

import io
import mmap
from pathlib import Path

import pytest

from sigsleuth.core.errors import StreamError
from sigsleuth.core.request import IdentificationRequest
from sigsleuth.core.types import RequestIdentifier, RequestMetaData


def _memory_request() -> IdentificationRequest:
    return IdentificationRequest(
        RequestMetaData(size=0, last_modified=None, name="memory.bin"),
        RequestIdentifier(uri="memory.bin"),
    )


def test_for_path_collects_metadata(tmp_path: Path) -> None:
    target = tmp_path / "sample.PNG"
    target.write_bytes(b"0123456789")

    request = IdentificationRequest.for_path(target, parent_id=7)

    assert request.metadata.size == 10
    assert request.metadata.last_modified == pytest.approx(target.stat().st_mtime)
    assert request.metadata.name == str(target.resolve())
    assert request.identifier.parent_id == 7
    assert request.path == target.resolve()
    assert request.extension == "png"
    assert not request.is_open


def test_for_path_missing_file(tmp_path: Path) -> None:
    with pytest.raises(StreamError) as excinfo:
        IdentificationRequest.for_path(tmp_path / "nope.bin")

    assert excinfo.value.path == tmp_path / "nope.bin"


def test_file_streams_are_memory_mapped(tmp_path: Path) -> None:
    target = tmp_path / "mapped.bin"
    target.write_bytes(b"abcdef")
    request = IdentificationRequest.for_path(target)

    with request:
        request.open(target.open("rb"))
        assert isinstance(request.buffer, mmap.mmap)
        assert request.size == 6
        assert request.read(2, 3) == b"cde"
        assert request.read(4, 100) == b"ef"
        assert request.read(10, 1) == b""
        assert request.stream.read() == b"abcdef"

    assert not request.is_open


def test_in_memory_streams_are_buffered() -> None:
    request = _memory_request()

    with request:
        request.open(io.BytesIO(b"payload"))
        assert request.buffer == b"payload"
        assert request.size == 7


def test_close_is_idempotent_and_releases_stream() -> None:
    stream = io.BytesIO(b"payload")
    request = _memory_request()
    request.open(stream)

    request.close()
    request.close()

    assert stream.closed
    with pytest.raises(StreamError):
        _ = request.buffer


def test_open_twice_is_rejected() -> None:
    request = _memory_request()
    request.open(io.BytesIO(b"a"))
    try:
        with pytest.raises(StreamError):
            request.open(io.BytesIO(b"b"))
    finally:
        request.close()


def test_unreadable_stream_raises_stream_error() -> None:
    class _Broken(io.BytesIO):
        def seek(self, *args: object) -> int:
            raise OSError("seek failed")

    stream = _Broken(b"data")
    request = _memory_request()

    with pytest.raises(StreamError, match="seek failed"):
        request.open(stream)

    assert stream.closed
    assert not request.is_open

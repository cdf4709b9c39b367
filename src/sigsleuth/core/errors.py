"""Exception hierarchy shared by the identification pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class SigsleuthError(Exception):
    """Base class for every error raised by sigsleuth."""


class InitializationError(SigsleuthError):
    """Signature resources are missing or cannot be parsed."""


class DetectionError(SigsleuthError):
    """Detection for a single file could not complete."""


class StreamError(DetectionError):
    """Represents a failure to open or read the stream being identified."""

    def __init__(self, path: Optional[Path | str], reason: str) -> None:
        self.path = Path(path) if path is not None else None
        self.reason = reason
        if self.path is None:
            super().__init__(reason)
        else:
            super().__init__(f"{self.path}: {reason}")

    def __repr__(self) -> str:  # pragma: no cover - trivial wrapper
        path_repr = str(self.path) if self.path is not None else None
        return f"StreamError(path={path_repr!r}, reason={self.reason!r})"


class BuildError(SigsleuthError):
    """The assembled report text could not be parsed back into a document."""


def wrap_io_error(path: Optional[Path | str], exc: OSError) -> StreamError:
    """Convert an ``OSError`` into ``StreamError``."""

    return StreamError(path=path, reason=str(exc))

"""Identification settings and their JSON loader.

Example settings file::

    {
      "signature_file": "signatures/DROID_SignatureFile_V70.xml",
      "container_signature_file": "signatures/container-signature.xml",
      "max_bytes_to_scan": 65536,
      "binary_signatures_only": false
    }

Relative signature paths resolve against ``$SIGSLEUTH_HOME`` when it is set,
otherwise against the directory holding the settings file.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .reporting.transform import DEFAULT_TEMPLATE

HOME_ENV = "SIGSLEUTH_HOME"


def _resolve(value: Optional[str], base: Optional[Path]) -> Optional[Path]:
    if value is None or str(value).strip() == "":
        return None
    candidate = Path(os.path.expanduser(os.path.expandvars(str(value))))
    if candidate.is_absolute():
        return candidate
    home = os.environ.get(HOME_ENV)
    root = Path(home) if home else base
    return (root / candidate) if root is not None else candidate


@dataclass(frozen=True)
class IdentificationSettings:
    signature_file: Path
    container_signature_file: Optional[Path] = None
    max_bytes_to_scan: int = -1
    binary_signatures_only: bool = False
    match_extensions: bool = True
    escape_all: bool = False
    transform_template: str = DEFAULT_TEMPLATE
    workers: int = 1

    @classmethod
    def from_dict(
        cls,
        payload: Mapping[str, Any],
        *,
        base_dir: Optional[Path] = None,
    ) -> "IdentificationSettings":
        if not isinstance(payload, Mapping):
            raise TypeError("Settings payload must be a mapping.")

        signature_file = _resolve(payload.get("signature_file"), base_dir)
        if signature_file is None:
            raise ValueError("Settings require a 'signature_file' entry.")

        max_bytes = payload.get("max_bytes_to_scan", -1)
        try:
            max_bytes = int(max_bytes) if max_bytes is not None else -1
        except (TypeError, ValueError) as exc:
            raise ValueError("max_bytes_to_scan must be an integer.") from exc

        workers = int(payload.get("workers", 1))
        if workers <= 0:
            raise ValueError("workers must be positive if provided.")

        template = str(payload.get("transform_template") or DEFAULT_TEMPLATE)

        return cls(
            signature_file=signature_file,
            container_signature_file=_resolve(payload.get("container_signature_file"), base_dir),
            max_bytes_to_scan=max_bytes if max_bytes > 0 else -1,
            binary_signatures_only=bool(payload.get("binary_signatures_only", False)),
            match_extensions=bool(payload.get("match_extensions", True)),
            escape_all=bool(payload.get("escape_all", False)),
            transform_template=template,
            workers=workers,
        )

    def with_overrides(self, **changes: Any) -> "IdentificationSettings":
        """Return a copy with every non-``None`` keyword applied."""

        applied = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **applied)


def load_settings(path: Path | str) -> IdentificationSettings:
    path = Path(path)
    payload = json.loads(path.read_text(encoding="utf-8"))
    return IdentificationSettings.from_dict(payload, base_dir=path.resolve().parent)

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import List, Tuple

import pytest

from sigsleuth.reporting.transform import DEFAULT_TEMPLATE, apply_transform


class _RecordingTransformer:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, ET.Element]] = []

    def transform(self, template: str, document: ET.Element) -> ET.Element:
        self.calls.append((template, document))
        return ET.Element("fits")


def test_apply_transform_hands_off_document() -> None:
    transformer = _RecordingTransformer()
    document = ET.Element("FileCollection")

    output = apply_transform(document, transformer)

    assert output.tag == "fits"
    assert transformer.calls == [(DEFAULT_TEMPLATE, document)]


def test_apply_transform_requires_template() -> None:
    with pytest.raises(ValueError):
        apply_transform(ET.Element("FileCollection"), _RecordingTransformer(), "")

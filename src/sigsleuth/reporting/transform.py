"""Hand-off point for downstream report transforms.

The raw FileCollection document is converted into other schemas by an
external collaborator (typically an XSLT processor). Only the calling
convention lives here.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "droid_to_fits.xslt"


class ReportTransformer(Protocol):
    """Turns a raw report into a document of another schema."""

    def transform(self, template: str, document: ET.Element) -> ET.Element:
        ...


def apply_transform(
    document: ET.Element,
    transformer: ReportTransformer,
    template: str = DEFAULT_TEMPLATE,
) -> ET.Element:
    """Pass ``document`` and the ``template`` reference to ``transformer``."""

    if not template:
        raise ValueError("A transform template reference is required")
    logger.debug("Applying report transform %s", template)
    return transformer.transform(template, document)

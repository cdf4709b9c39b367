"""sigsleuth: file format identification from binary and container signatures.

The package matches byte streams against a signature database, refines
container formats (ZIP, OLE2) with container signatures, resolves the outcome
into a single media type and renders FileCollection reports.
"""

from __future__ import annotations

__version__ = "0.3.0"

from .config import IdentificationSettings, load_settings
from .core import (
    OCTET_STREAM,
    BuildError,
    DetectionError,
    Detector,
    FileIdentification,
    IdentificationRequest,
    IdentificationResult,
    InitializationError,
    MediaType,
    RequestIdentifier,
    RequestMetaData,
    ResultCollection,
    SigsleuthError,
    StreamError,
    parse_mime_field,
    resolve_media_type,
)
from .matchers import BinarySignatureMatcher, ContainerSignatureMatcher
from .reporting import ReportBuilder
from .signatures import (
    ContainerSignatureDatabase,
    SignatureDatabase,
    load_container_signature_file,
    load_signature_file,
)
from .tool import IdentificationTool, ToolOutput, ToolRun

__all__ = [
    "__version__",
    "BinarySignatureMatcher",
    "BuildError",
    "ContainerSignatureDatabase",
    "ContainerSignatureMatcher",
    "DetectionError",
    "Detector",
    "FileIdentification",
    "IdentificationRequest",
    "IdentificationResult",
    "IdentificationSettings",
    "IdentificationTool",
    "InitializationError",
    "MediaType",
    "OCTET_STREAM",
    "ReportBuilder",
    "RequestIdentifier",
    "RequestMetaData",
    "ResultCollection",
    "SignatureDatabase",
    "SigsleuthError",
    "StreamError",
    "ToolOutput",
    "ToolRun",
    "load_container_signature_file",
    "load_settings",
    "load_signature_file",
    "parse_mime_field",
    "resolve_media_type",
]

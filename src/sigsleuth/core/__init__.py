"""sigsleuth core module exports."""

from .detector import Detector, FileIdentification
from .errors import (
    BuildError,
    DetectionError,
    InitializationError,
    SigsleuthError,
    StreamError,
)
from .mediatype import (
    OCTET_STREAM,
    MediaType,
    media_type_for_result,
    parse_mime_field,
    resolve_media_type,
)
from .request import IdentificationRequest
from .types import (
    METHOD_BINARY,
    METHOD_CONTAINER,
    METHOD_EXTENSION,
    IdentificationResult,
    RequestIdentifier,
    RequestMetaData,
    ResultCollection,
)

__all__ = [
    "BuildError",
    "DetectionError",
    "Detector",
    "FileIdentification",
    "IdentificationRequest",
    "IdentificationResult",
    "InitializationError",
    "METHOD_BINARY",
    "METHOD_CONTAINER",
    "METHOD_EXTENSION",
    "MediaType",
    "OCTET_STREAM",
    "RequestIdentifier",
    "RequestMetaData",
    "ResultCollection",
    "SigsleuthError",
    "StreamError",
    "media_type_for_result",
    "parse_mime_field",
    "resolve_media_type",
]

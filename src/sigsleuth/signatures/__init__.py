"""Signature databases, byte-pattern compiler and definition file loaders."""

from .loader import load_container_signature_file, load_signature_file
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
from .sequence import SignatureSyntaxError, compile_sequence

__all__ = [
    "BOF",
    "EOF",
    "VARIABLE",
    "ByteSequence",
    "ContainerFile",
    "ContainerSignature",
    "ContainerSignatureDatabase",
    "FileFormat",
    "InternalSignature",
    "SequenceFragment",
    "SignatureDatabase",
    "SignatureSyntaxError",
    "SubSequence",
    "compile_sequence",
    "load_container_signature_file",
    "load_signature_file",
]

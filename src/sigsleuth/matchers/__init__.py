"""Matcher strategies: binary signatures first, container refinement second."""

from .base import BinaryMatcher, ContainerMatcher
from .binary import BinarySignatureMatcher
from .container import ContainerSignatureMatcher
from .containers import (
    ContainerFormatError,
    ContainerReader,
    Ole2ContainerReader,
    ZipContainerReader,
    get_container_reader,
    register_container_reader,
    registered_container_types,
)

__all__ = [
    "BinaryMatcher",
    "BinarySignatureMatcher",
    "ContainerFormatError",
    "ContainerMatcher",
    "ContainerReader",
    "ContainerSignatureMatcher",
    "Ole2ContainerReader",
    "ZipContainerReader",
    "get_container_reader",
    "register_container_reader",
    "registered_container_types",
]

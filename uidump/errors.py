"""Exceptions raised while building and querying a UI hierarchy."""

from __future__ import annotations


class UiDumpError(Exception):
    """Base class for all uidump errors."""


class InvalidBoundsError(UiDumpError, ValueError):
    """A bounds string does not match ``[x1,y1][x2,y2]``."""

    def __init__(self, bounds: str) -> None:
        super().__init__(f"Invalid bounds: {bounds!r}")
        self.bounds = bounds


class MissingAttributeError(UiDumpError, KeyError):
    """A derivation needs an attribute the node does not carry."""

    def __init__(self, attribute: str) -> None:
        super().__init__(attribute)
        self.attribute = attribute

    def __str__(self) -> str:
        return f"Node has no '{self.attribute}' attribute"


class ResolutionUnavailableError(UiDumpError, RuntimeError):
    """The device screen resolution could not be obtained or parsed."""


class HierarchyParseError(UiDumpError, ValueError):
    """A hierarchy dump is not well-formed XML."""

"""Tree node base and the resolution provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in screen pixels."""

    x: int
    y: int
    width: int
    height: int

    def contains(self, px: int, py: int) -> bool:
        return self.x <= px <= self.x + self.width and self.y <= py <= self.y + self.height


class TreeNode:
    """Generic node of a captured hierarchy.

    Holds the parent/child links and the on-screen rectangle.  Subclasses
    decide what the node represents and how the rectangle gets filled in.
    """

    def __init__(self) -> None:
        self.parent: TreeNode | None = None
        self.children: list[TreeNode] = []
        self.x = 0
        self.y = 0
        self.width = 0
        self.height = 0
        self.has_bounds = False

    # ---- structure -------------------------------------------------------

    def add_child(self, child: TreeNode) -> None:
        child.parent = self
        self.children.append(child)

    def get_children(self) -> tuple[TreeNode, ...]:
        return tuple(self.children)

    def clear_all_children(self) -> None:
        for child in self.children:
            child.parent = None
        self.children.clear()

    # ---- geometry --------------------------------------------------------

    @property
    def rect(self) -> Rect | None:
        if not self.has_bounds:
            return None
        return Rect(self.x, self.y, self.width, self.height)

    def find_leaf_most_nodes_at_point(self, px: int, py: int) -> list[TreeNode]:
        """Return the deepest nodes whose rectangle contains the point.

        A node that contains the point is reported only when none of its
        children contains it too.  Nodes without bounds are transparent:
        their children are still searched.
        """
        found: list[TreeNode] = []
        self._collect_at_point(px, py, found)
        return found

    def _collect_at_point(self, px: int, py: int, found: list[TreeNode]) -> bool:
        rect = self.rect
        if rect is not None and not rect.contains(px, py):
            return False
        matched_child = False
        for child in self.children:
            if child._collect_at_point(px, py, found):
                matched_child = True
        if matched_child:
            return True
        if rect is not None:
            found.append(self)
            return True
        return False

    # ---- attributes ------------------------------------------------------

    def get_attributes_array(self) -> tuple:
        """Return the node's attributes as an ordered sequence of pairs."""
        return ()


class ResolutionProvider(ABC):
    """Source of the device screen resolution.

    Implementations may block (e.g. shell out to ``adb``); callers wrap
    them with whatever timeout or retry policy they need.
    """

    @abstractmethod
    def get_resolution(self) -> str:
        """Return the resolution as ``"<width> x <height>"`` text.

        Raises:
            ResolutionUnavailableError: If the resolution cannot be read.
        """
        ...

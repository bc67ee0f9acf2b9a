"""Load ``uiautomator dump`` XML into a tree of UiNode objects."""

from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET
from typing import Iterator

from uidump._base import ResolutionProvider, TreeNode
from uidump.errors import HierarchyParseError, InvalidBoundsError
from uidump.node import UiNode

logger = logging.getLogger(__name__)

_ROTATION_RE = re.compile(r"-?[0-9]+")


class RootNode(TreeNode):
    """The ``<hierarchy>`` element of a dump."""

    def __init__(self, rotation: int | None = None) -> None:
        super().__init__()
        self.rotation = rotation

    @property
    def display_name(self) -> str:
        if self.rotation is None:
            return "Hierarchy"
        return f"Hierarchy (rotation={self.rotation})"

    def __str__(self) -> str:
        return self.display_name


def iter_nodes(root: TreeNode) -> Iterator[UiNode]:
    """Yield every UiNode below ``root`` (and ``root`` itself) in pre-order."""
    stack = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, UiNode):
            yield node
        stack.extend(reversed(node.children))


def _build_node(
    element: ET.Element,
    parent: TreeNode,
    *,
    strict: bool,
    provider: ResolutionProvider | None,
    counter: list[int],
) -> None:
    node = UiNode(resolution_provider=provider)
    node.node_id = f"n{counter[0]}"
    counter[0] += 1
    for key, value in element.attrib.items():
        try:
            node.add_attribute(key, value)
        except InvalidBoundsError:
            if strict:
                raise
            logger.warning(
                "Node %s has invalid bounds %r; keeping it without bounds", node.node_id, value
            )
    parent.add_child(node)

    for child in element:
        if child.tag == "node":
            _build_node(child, node, strict=strict, provider=provider, counter=counter)


def load_hierarchy(
    source: str | bytes,
    *,
    strict: bool = True,
    resolution_provider: ResolutionProvider | None = None,
) -> RootNode:
    """Parse a hierarchy dump.

    Args:
        source: XML text of the dump.
        strict: If True, a node with unparsable bounds aborts the load with
                InvalidBoundsError.  If False the node is kept without bounds
                and a warning is logged.
        resolution_provider: Passed to every node, used by
                             :meth:`UiNode.get_bounds_center`.

    Returns:
        The root of the tree.  Nodes get IDs ``n0``, ``n1``, ... in pre-order.

    Raises:
        HierarchyParseError: If ``source`` is not well-formed XML.
        InvalidBoundsError: In strict mode, on the first bad ``bounds``.
    """
    try:
        top = ET.fromstring(source)
    except ET.ParseError as e:
        raise HierarchyParseError(f"Malformed hierarchy dump: {e}") from e

    counter = [0]
    if top.tag == "node":
        # Some tools emit the first window node without a <hierarchy> wrapper.
        root = RootNode()
        _build_node(top, root, strict=strict, provider=resolution_provider, counter=counter)
    else:
        rotation = top.get("rotation")
        root = RootNode(int(rotation) if rotation and _ROTATION_RE.fullmatch(rotation) else None)
        for child in top:
            if child.tag == "node":
                _build_node(child, root, strict=strict, provider=resolution_provider, counter=counter)

    logger.debug("Loaded hierarchy with %d nodes", counter[0])
    return root


def load_file(
    path: str | os.PathLike,
    *,
    strict: bool = True,
    resolution_provider: ResolutionProvider | None = None,
) -> RootNode:
    """Parse a hierarchy dump from a file.  See :func:`load_hierarchy`."""
    with open(path, "rb") as f:
        data = f.read()
    return load_hierarchy(data, strict=strict, resolution_provider=resolution_provider)

"""
uidump -- Android UI hierarchy dumps as queryable node trees.

Loads ``uiautomator dump`` XML and derives display labels, XPath-like
selectors and screen positions for every node.

Quick start::

    import uidump

    session = uidump.Session(resolution="1080x1920")
    session.load("window_dump.xml")
    text = session.snapshot()                 # compact text, one line per node
    matches = session.find(query="login button")
    xpath = session.xpath("n12")              # /android.widget.Button[@text="Log in"]
    xpath = session.xpath("n12", indexed=True)
    where = session.position("n12")           # "(540,1650) (0.50,0.86)"

    # Without a session
    root = uidump.load_file("window_dump.xml")
    for node in uidump.iter_nodes(root):
        print(node.display_name)
"""

from __future__ import annotations

import os

from uidump._base import Rect, ResolutionProvider, TreeNode
from uidump.errors import (
    HierarchyParseError,
    InvalidBoundsError,
    MissingAttributeError,
    ResolutionUnavailableError,
    UiDumpError,
)
from uidump.format import build_envelope, node_to_dict, serialize_compact
from uidump.loader import RootNode, iter_nodes, load_file, load_hierarchy
from uidump.node import AttributePair, UiNode, parse_bounds, parse_resolution
from uidump.resolution import AdbResolutionProvider, StaticResolutionProvider, get_provider

__all__ = [
    "Session",
    "load_file",
    "load_hierarchy",
    "iter_nodes",
    "UiNode",
    "RootNode",
    "TreeNode",
    "Rect",
    "AttributePair",
    "parse_bounds",
    # Resolution
    "ResolutionProvider",
    "AdbResolutionProvider",
    "StaticResolutionProvider",
    "get_provider",
    # Output
    "build_envelope",
    "node_to_dict",
    "serialize_compact",
    # Errors
    "UiDumpError",
    "InvalidBoundsError",
    "MissingAttributeError",
    "ResolutionUnavailableError",
    "HierarchyParseError",
]


# ---------------------------------------------------------------------------
# Session -- one loaded hierarchy with node references
# ---------------------------------------------------------------------------


class Session:
    """Holds the most recently loaded hierarchy and resolves node IDs.

    Node IDs (e.g. "n12") are assigned in document order at load time and
    are only valid for the hierarchy they came from.  Loading another dump
    replaces them.

    Example::

        session = uidump.Session(resolution="adb")
        session.load("window_dump.xml")
        session.position("n3")
    """

    def __init__(self, *, resolution: str | ResolutionProvider | None = None) -> None:
        """
        Args:
            resolution: Provider instance, ``"adb"`` for the connected device,
                        ``"WIDTHxHEIGHT"`` for a fixed screen, or None to skip
                        resolution-dependent features until one is set.
        """
        if isinstance(resolution, str):
            resolution = get_provider(resolution)
        self._provider: ResolutionProvider | None = resolution
        self._root: RootNode | None = None
        self._refs: dict[str, UiNode] = {}
        self._source: str | None = None

    # -- loading -----------------------------------------------------------

    def load(self, dump: str | bytes | os.PathLike, *, strict: bool = True) -> RootNode:
        """Load a hierarchy from a file path or from XML text.

        Strings starting with ``<`` are treated as XML, anything else as a path.
        """
        if isinstance(dump, bytes) or (isinstance(dump, str) and dump.lstrip().startswith("<")):
            root = load_hierarchy(dump, strict=strict, resolution_provider=self._provider)
            self._source = None
        else:
            root = load_file(dump, strict=strict, resolution_provider=self._provider)
            self._source = os.fspath(dump)
        self._root = root
        self._refs = {node.node_id: node for node in iter_nodes(root)}
        return root

    @property
    def root(self) -> RootNode:
        if self._root is None:
            raise RuntimeError("No hierarchy loaded. Call load() first.")
        return self._root

    def node(self, node_id: str) -> UiNode:
        """Return the node with the given ID from the last load.

        Raises:
            KeyError: If the ID is unknown.
        """
        if self._root is None:
            raise RuntimeError("No hierarchy loaded. Call load() first.")
        try:
            return self._refs[node_id]
        except KeyError:
            raise KeyError(f"Unknown node ID '{node_id}'") from None

    # -- output ------------------------------------------------------------

    def _resolution_text(self) -> str | None:
        """Provider answer normalized to ``"<w> x <h>"``, or None if unusable."""
        if self._provider is None:
            return None
        try:
            w, h = parse_resolution(self._provider.get_resolution())
        except ResolutionUnavailableError:
            return None
        return f"{w} x {h}"

    def snapshot(self, *, compact: bool = True) -> str | dict:
        """Return the loaded tree as compact text or as the JSON envelope dict."""
        resolution = self._resolution_text()
        if compact:
            return serialize_compact(self.root, resolution=resolution)
        return build_envelope(self.root, source=self._source, resolution=resolution)

    # -- per-node queries --------------------------------------------------

    def xpath(self, node_id: str, *, indexed: bool = False) -> str:
        node = self.node(node_id)
        return node.get_xpath_with_index() if indexed else node.get_xpath()

    def position(self, node_id: str) -> str:
        """Center and relative screen position of a node, ``"(X,Y) (xPct,yPct)"``."""
        return self.node(node_id).get_bounds_center(self._provider)

    def nodes_at(self, x: int, y: int) -> list[UiNode]:
        """Return the deepest nodes covering a screen point."""
        return [
            n for n in self.root.find_leaf_most_nodes_at_point(x, y) if isinstance(n, UiNode)
        ]

    def find(
        self,
        *,
        query: str | None = None,
        class_name: str | None = None,
        text: str | None = None,
        clickable: bool | None = None,
        limit: int = 5,
    ) -> list[UiNode]:
        """Search the loaded tree.  See :func:`uidump.search.search_tree`."""
        from uidump.search import search_tree

        results = search_tree(
            self.root,
            query=query,
            class_name=class_name,
            text=text,
            clickable=clickable,
            limit=limit,
        )
        return [r.node for r in results]

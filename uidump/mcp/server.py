"""uidump MCP Server -- Android UI hierarchy tools for AI agents.

Exposes tools to load a hierarchy dump, view it compactly, search it and
derive selectors and screen positions for its nodes.
"""

from __future__ import annotations

import json

from mcp.server.fastmcp import FastMCP

import uidump
from uidump.errors import UiDumpError
from uidump.format import _format_line

mcp = FastMCP(
    name="uidump",
    instructions=(
        "uidump gives you access to Android UI hierarchy dumps "
        "(uiautomator dump XML).\n\n"
        "WORKFLOW:\n"
        "1. load_dump(path) to load a dump file\n"
        "2. find(query) to locate nodes (PREFERRED over re-reading the tree)\n"
        "3. xpath(node_id) / position(node_id) to address a node\n\n"
        "TOOLS:\n"
        "- load_dump(path, lenient): load a dump and return its compact tree\n"
        "- snapshot(): compact tree of the loaded dump\n"
        "- find(query/class_name/text): ranked search of the loaded dump\n"
        "- xpath(node_id, indexed): XPath-like selector for a node\n"
        "- position(node_id): center point and relative screen position\n"
        "- nodes_at(x, y): deepest nodes covering a screen point\n\n"
        "Node IDs (e.g., 'n14') are only valid for the most recently loaded dump."
    ),
)

# ---------------------------------------------------------------------------
# Session state (one per MCP server process)
# ---------------------------------------------------------------------------

_session: uidump.Session | None = None


def _get_session() -> uidump.Session:
    global _session
    if _session is None:
        _session = uidump.Session(resolution="adb")
    return _session


def _error(message: str) -> str:
    return json.dumps({"success": False, "message": "", "error": message})


def _ok(message: str, **extra) -> str:
    return json.dumps({"success": True, "message": message, "error": None, **extra})


# ---------------------------------------------------------------------------
# Tree tools
# ---------------------------------------------------------------------------


@mcp.tool()
def load_dump(path: str, lenient: bool = False) -> str:
    """Load a uiautomator hierarchy dump and return its compact tree.

    Each line of the result is one node:

        [id] (index) Class:text {content-desc} [x1,y1][x2,y2] #resource-id {flags}

    Indentation shows the hierarchy.

    Args:
        path: Path to the XML dump on this machine.
        lenient: Keep nodes whose bounds cannot be parsed instead of failing.
    """
    session = _get_session()
    try:
        session.load(path, strict=not lenient)
        return session.snapshot(compact=True)
    except (UiDumpError, OSError) as e:
        return _error(str(e))


@mcp.tool()
def snapshot() -> str:
    """Return the compact tree of the most recently loaded dump."""
    try:
        return _get_session().snapshot(compact=True)
    except RuntimeError as e:
        return _error(str(e))


@mcp.tool()
def find(
    query: str | None = None,
    class_name: str | None = None,
    text: str | None = None,
) -> str:
    """Search the loaded dump for nodes, best matches first.

    QUERY MODE (recommended):
        query="login button"  -> Button nodes labelled "login"
        query="search bar"    -> EditText-like nodes
        query="Settings"      -> nodes whose text/description says "Settings"

    STRUCTURED MODE:
        class_name: widget kind or class ("button", "EditText")
        text:       fuzzy match on text, content-desc and resource id

    Args:
        query: Freeform query.
        class_name: Widget kind or class filter.
        text: Label filter.
    """
    if query is None and class_name is None and text is None:
        return _error("At least one search parameter (query, class_name, or text) must be provided.")

    try:
        matches = _get_session().find(query=query, class_name=class_name, text=text)
    except RuntimeError as e:
        return _error(str(e))

    if not matches:
        return _ok("No matching nodes found.", matches=0)

    lines = [_format_line(node) for node in matches]
    return (
        "\n".join(
            [f"# {len(matches)} match{'es' if len(matches) != 1 else ''} found", ""] + lines
        )
        + "\n"
    )


# ---------------------------------------------------------------------------
# Node tools
# ---------------------------------------------------------------------------


@mcp.tool()
def xpath(node_id: str, indexed: bool = False) -> str:
    """Build an XPath-like selector for a node.

    Args:
        node_id: Node ID from the loaded dump (e.g., "n14").
        indexed: Add the sibling index to disambiguate identical siblings.
    """
    try:
        return _ok(_get_session().xpath(node_id, indexed=indexed), node_id=node_id)
    except (UiDumpError, KeyError, RuntimeError) as e:
        return _error(str(e))


@mcp.tool()
def position(node_id: str) -> str:
    """Return a node's center and its position as a fraction of the screen.

    Format: "(X,Y) (xPct,yPct)".  Needs a connected device (adb) to read
    the screen resolution.

    Args:
        node_id: Node ID from the loaded dump (e.g., "n14").
    """
    try:
        return _ok(_get_session().position(node_id), node_id=node_id)
    except (UiDumpError, KeyError, RuntimeError) as e:
        return _error(str(e))


@mcp.tool()
def nodes_at(x: int, y: int) -> str:
    """List the deepest nodes covering screen point (x, y).

    Args:
        x: Horizontal pixel coordinate.
        y: Vertical pixel coordinate.
    """
    try:
        nodes = _get_session().nodes_at(x, y)
    except RuntimeError as e:
        return _error(str(e))
    if not nodes:
        return _ok(f"No node covers ({x},{y}).", matches=0)
    return "\n".join(_format_line(n) for n in nodes) + "\n"


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()

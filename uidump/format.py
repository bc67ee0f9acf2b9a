"""
uidump format utilities: node dicts, envelope builder, and compact text serializer.

Shared by the Session, the CLI and the MCP server.
"""

from __future__ import annotations

import time

from uidump._base import TreeNode
from uidump.loader import RootNode, iter_nodes
from uidump.node import UiNode, parse_resolution

FORMAT_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Node dicts
# ---------------------------------------------------------------------------


def node_to_dict(node: UiNode) -> dict:
    """Convert a UiNode (and its subtree) to a JSON-ready dict."""
    data: dict = {
        "id": node.node_id,
        "displayName": node.display_name,
        "attributes": dict(node.get_attributes()),
    }
    rect = node.rect
    if rect is not None:
        data["bounds"] = {"x": rect.x, "y": rect.y, "w": rect.width, "h": rect.height}
    children = [node_to_dict(c) for c in node.children if isinstance(c, UiNode)]
    if children:
        data["children"] = children
    return data


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


def build_envelope(
    root: TreeNode,
    *,
    source: str | None = None,
    resolution: str | None = None,
) -> dict:
    """Wrap a loaded tree in the uidump envelope with metadata.

    Args:
        root: Tree root returned by the loader.
        source: Where the dump came from (file path), if known.
        resolution: ``"<w> x <h>"`` text from a resolution provider.
    """
    envelope: dict = {
        "version": FORMAT_VERSION,
        "timestamp": int(time.time() * 1000),
    }
    if isinstance(root, RootNode) and root.rotation is not None:
        envelope["rotation"] = root.rotation
    if source:
        envelope["source"] = source
    if resolution:
        w, h = parse_resolution(resolution)
        envelope["screen"] = {"w": w, "h": h}
    envelope["tree"] = [node_to_dict(c) for c in root.children if isinstance(c, UiNode)]
    return envelope


# ---------------------------------------------------------------------------
# Compact text serializer
# ---------------------------------------------------------------------------


def _count_nodes(root: TreeNode) -> int:
    return sum(1 for _ in iter_nodes(root))


def _format_line(node: UiNode) -> str:
    """Format a single node as a compact one-liner."""
    parts = [f"[{node.node_id}]", node.display_name.replace("\n", " ")]
    resource_id = node.get_attribute("resource-id")
    if resource_id:
        parts.append(f"#{resource_id.rsplit('/', 1)[-1]}")
    flags = [
        flag
        for flag in ("clickable", "checked", "focused", "selected", "scrollable")
        if node.get_attribute(flag) == "true"
    ]
    if flags:
        parts.append("{" + ",".join(flags) + "}")
    return " ".join(parts)


def _emit_compact(node: UiNode, depth: int, lines: list[str]) -> None:
    lines.append(f"{'  ' * depth}{_format_line(node)}")
    for child in node.children:
        if isinstance(child, UiNode):
            _emit_compact(child, depth + 1, lines)


# Keeps tool output well under typical MCP host limits.
MAX_OUTPUT_CHARS = 40_000


def serialize_compact(
    root: TreeNode,
    *,
    resolution: str | None = None,
    max_chars: int = MAX_OUTPUT_CHARS,
) -> str:
    """Serialize a loaded tree to compact text, one indented line per node.

    Args:
        root: Tree root returned by the loader.
        resolution: Optional ``"<w> x <h>"`` text for the header.
        max_chars: Hard character limit.  When exceeded, the output is cut
                   at a line boundary and a diagnostic is appended.
    """
    lines: list[str] = []
    for child in root.children:
        if isinstance(child, UiNode):
            _emit_compact(child, 0, lines)

    header = f"# uidump {FORMAT_VERSION} | {_count_nodes(root)} nodes"
    if resolution:
        w, h = parse_resolution(resolution)
        header += f" | {w}x{h}"
    header_lines = [header]
    if isinstance(root, RootNode) and root.rotation is not None:
        header_lines.append(f"# rotation: {root.rotation}")
    header_lines.append("")

    output = "\n".join(header_lines + lines) + "\n"

    if max_chars > 0 and len(output) > max_chars:
        truncated = output[:max_chars]
        last_nl = truncated.rfind("\n")
        if last_nl > 0:
            truncated = truncated[:last_nl]
        truncated += (
            "\n\n# OUTPUT TRUNCATED - exceeded character limit.\n"
            "# Use find(query=...) to locate specific nodes instead.\n"
        )
        return truncated

    return output

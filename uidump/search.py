"""Search over a loaded UI hierarchy.

Scores every node with:
- Widget-kind matching (natural-language synonyms for Android classes)
- Fuzzy label matching over text, content description and resource id
- Small context bonuses (clickable, enabled, matching ancestor)
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

from uidump._base import TreeNode
from uidump.node import UiNode, shorten_class_name

# ---------------------------------------------------------------------------
# Widget-kind synonyms -> short class names
# ---------------------------------------------------------------------------

_BUTTONS = frozenset({"Button", "ImageButton", "FloatingActionButton", "MaterialButton"})
_INPUTS = frozenset({"EditText", "AutoCompleteTextView", "TextInputEditText", "SearchView"})
_TOGGLES = frozenset({"Switch", "SwitchCompat", "ToggleButton", "CheckBox", "RadioButton"})
_LISTS = frozenset({"ListView", "RecyclerView", "GridView", "ScrollView"})

CLASS_SYNONYMS: dict[str, frozenset[str]] = {
    "button": _BUTTONS,
    "btn": _BUTTONS,
    "fab": frozenset({"FloatingActionButton"}),
    "input": _INPUTS,
    "field": _INPUTS,
    "text field": _INPUTS,
    "textbox": _INPUTS,
    "search box": _INPUTS,
    "search bar": _INPUTS,
    "edit": _INPUTS,
    "switch": _TOGGLES,
    "toggle": _TOGGLES,
    "checkbox": frozenset({"CheckBox"}),
    "radio": frozenset({"RadioButton"}),
    "label": frozenset({"TextView"}),
    "text": frozenset({"TextView"}),
    "image": frozenset({"ImageView", "ImageButton"}),
    "icon": frozenset({"ImageView", "ImageButton"}),
    "list": _LISTS,
    "scroll": _LISTS,
    "tab": frozenset({"TabWidget", "TabLayout", "TabView"}),
    "web": frozenset({"WebView"}),
    "webview": frozenset({"WebView"}),
}

_NOISE_WORDS = frozenset({"the", "a", "an", "this", "that", "on", "in", "for", "of", "to"})


# ---------------------------------------------------------------------------
# Tokenization
# ---------------------------------------------------------------------------

_SPLIT_RE = re.compile(r"[^a-z0-9]+")


def _tokenize(text: str) -> list[str]:
    """Split text into lowercase tokens, stripping accents and punctuation."""
    normalized = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(c for c in normalized if unicodedata.category(c) != "Mn")
    return [t for t in _SPLIT_RE.split(stripped) if t]


def _short_class(node: UiNode) -> str:
    """Class name without its package, e.g. ``Button``."""
    return shorten_class_name(node.get_attribute("class") or "").rsplit(".", 1)[-1]


# ---------------------------------------------------------------------------
# Class resolution
# ---------------------------------------------------------------------------


def resolve_classes(class_query: str) -> frozenset[str] | None:
    """Resolve a widget-kind query to a set of short class names.

    Exact class names (``"EditText"`` or ``"android.widget.EditText"``)
    resolve to themselves.  Returns None if the query doesn't constrain
    the class at all.
    """
    q = class_query.strip()
    if not q:
        return None
    lowered = q.lower()
    if lowered in CLASS_SYNONYMS:
        return CLASS_SYNONYMS[lowered]
    for token in _tokenize(lowered):
        if token in CLASS_SYNONYMS:
            return CLASS_SYNONYMS[token]
    return frozenset({q.rsplit(".", 1)[-1]})


def _parse_query(query: str) -> tuple[str | None, list[str]]:
    """Parse a freeform query into (class_hint, label_tokens).

    Examples:
        "the login button"  -> ("button", ["login"])
        "search bar"        -> ("search bar", [])
        "Settings"          -> (None, ["settings"])
    """
    tokens = _tokenize(query)
    if not tokens:
        return None, []

    best: str | None = None
    span = (0, 0)
    for length in range(min(len(tokens), 2), 0, -1):
        for start in range(len(tokens) - length + 1):
            candidate = " ".join(tokens[start : start + length])
            if candidate in CLASS_SYNONYMS:
                best = candidate
                span = (start, start + length)
                break
        if best:
            break

    label_tokens = tokens[: span[0]] + tokens[span[1] :]
    label_tokens = [t for t in label_tokens if t not in _NOISE_WORDS]
    return best, label_tokens


# ---------------------------------------------------------------------------
# Label scoring
# ---------------------------------------------------------------------------


def _score_label(query_tokens: list[str], label: str) -> float:
    """Score how well one text field matches the query tokens, in [0.0, 1.0]."""
    if not label:
        return 0.0

    query_joined = " ".join(query_tokens)
    label_lower = label.lower()

    full_substr = 0.0
    if query_joined in label_lower:
        full_substr = 1.0 if query_joined == label_lower else 0.85

    label_tokens = set(_tokenize(label))
    token_score = 0.0
    if label_tokens:
        matched = 0.0
        for qt in query_tokens:
            if qt in label_tokens:
                matched += 1.0
            elif any(lt.startswith(qt) for lt in label_tokens):
                matched += 0.7  # prefix: "sett" matches "settings"
            elif any(qt in lt for lt in label_tokens):
                matched += 0.6
        token_score = matched / len(query_tokens)

    score = max(full_substr, token_score)
    if label_tokens and score > 0:
        overlap = len(set(query_tokens) & label_tokens) / len(label_tokens)
        score *= 0.85 + 0.15 * overlap
    return score


def _score_node_labels(query_tokens: list[str], node: UiNode) -> float:
    if not query_tokens:
        return 1.0
    text = _score_label(query_tokens, node.get_attribute("text") or "")
    desc = _score_label(query_tokens, node.get_attribute("content-desc") or "")
    resource_id = (node.get_attribute("resource-id") or "").rsplit("/", 1)[-1]
    rid = _score_label(query_tokens, resource_id)
    # Visible text beats descriptions, which beat ids.
    return max(text, desc * 0.95, rid * 0.8)


def _score_node(
    node: UiNode,
    parent_chain: list[UiNode],
    target_classes: frozenset[str] | None,
    label_tokens: list[str],
    clickable: bool | None,
) -> float:
    """Score a single node.  Returns 0.0 if hard-filtered out.

    Weight budget: class=0.35, label=0.50, context<=0.20
    """
    if clickable is not None and (node.get_attribute("clickable") == "true") != clickable:
        return 0.0

    class_score = 0.0
    if target_classes is not None:
        if _short_class(node) in target_classes:
            class_score = 0.35
        else:
            return 0.0

    if label_tokens:
        raw = _score_node_labels(label_tokens, node)
        if raw == 0.0:
            return 0.0
        label_score = raw * 0.50
    else:
        label_score = 0.15 if target_classes else 0.0

    context = 0.0
    if label_tokens:
        qt_set = set(label_tokens)
        for ancestor in parent_chain:
            ancestor_text = " ".join(
                ancestor.get_attribute(k) or "" for k in ("text", "content-desc")
            )
            if set(_tokenize(ancestor_text)) & qt_set:
                context += 0.1
                break
    if node.get_attribute("clickable") == "true":
        context += 0.05
    if node.get_attribute("enabled") != "false":
        context += 0.05

    return class_score + label_score + context


# ---------------------------------------------------------------------------
# Tree walking
# ---------------------------------------------------------------------------


@dataclass
class SearchResult:
    """A scored search result."""

    node: UiNode
    score: float


def _walk_and_score(
    node: TreeNode,
    parent_chain: list[UiNode],
    target_classes: frozenset[str] | None,
    label_tokens: list[str],
    clickable: bool | None,
    results: list[SearchResult],
    threshold: float,
) -> None:
    chain = parent_chain
    if isinstance(node, UiNode):
        score = _score_node(node, parent_chain, target_classes, label_tokens, clickable)
        if score >= threshold:
            results.append(SearchResult(node=node, score=score))
        chain = parent_chain + [node]
    for child in node.children:
        _walk_and_score(
            child, chain, target_classes, label_tokens, clickable, results, threshold
        )


def search_tree(
    root: TreeNode,
    *,
    query: str | None = None,
    class_name: str | None = None,
    text: str | None = None,
    clickable: bool | None = None,
    limit: int = 5,
    threshold: float = 0.15,
) -> list[SearchResult]:
    """Search a loaded hierarchy with fuzzy matching and relevance ranking.

    Args:
        root: Tree root returned by the loader.
        query: Freeform query ("login button", "search bar").  Parsed into
               a widget-kind hint and label tokens.
        class_name: Widget kind or class name filter.
        text: Label filter, matched against text, content-desc and resource id.
        clickable: If set, only nodes whose ``clickable`` attribute matches.
        limit: Max results to return.
        threshold: Minimum score to include.

    Returns:
        List of SearchResult sorted by descending score, tree order for ties.
    """
    effective_class = class_name
    label_tokens: list[str] = []

    if query:
        parsed_class, parsed_tokens = _parse_query(query)
        effective_class = class_name or parsed_class
        label_tokens = _tokenize(text) if text else parsed_tokens
    elif text:
        label_tokens = _tokenize(text)

    target_classes = resolve_classes(effective_class) if effective_class else None

    results: list[SearchResult] = []
    _walk_and_score(root, [], target_classes, label_tokens, clickable, results, threshold)
    results.sort(key=lambda r: -r.score)
    return results[:limit]

"""A single node of a captured Android UI hierarchy.

The node stores the raw attributes of one ``<node>`` element from a
``uiautomator`` dump and derives from them:

- the on-screen rectangle (parsed from ``bounds``),
- a one-line display label,
- XPath-like selectors (with or without the sibling index),
- the center point and its position relative to the screen.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Mapping

from uidump._base import Rect, ResolutionProvider, TreeNode
from uidump.errors import InvalidBoundsError, MissingAttributeError, ResolutionUnavailableError

DISPLAY_NAME_PLACEHOLDER = "ShouldNotSeeMe"

# Attributes that must all be present before a display label is built.
DISPLAY_NAME_ATTRIBUTES = ("class", "text", "content-desc", "index", "bounds")

# Stripped from class names in labels, otherwise they take up too much room.
_CLASS_PREFIXES = ("android.widget.", "android.view.")

_BOUNDS_RE = re.compile(r"\[(-?\d+),(-?\d+)\]\[(-?\d+),(-?\d+)\]")
_INT_RE = re.compile(r"-?\d+")

_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class AttributePair:
    """One (name, value) entry of a node's attribute list."""

    key: str
    value: str


def parse_bounds(bounds: str) -> Rect:
    """Parse ``"[x1,y1][x2,y2]"`` into a Rect.

    Raises:
        InvalidBoundsError: If the whole string does not match the grammar.
    """
    m = _BOUNDS_RE.fullmatch(bounds)
    if m is None:
        raise InvalidBoundsError(bounds)
    x1, y1, x2, y2 = (int(g) for g in m.groups())
    return Rect(x1, y1, x2 - x1, y2 - y1)


def shorten_class_name(class_name: str) -> str:
    for prefix in _CLASS_PREFIXES:
        class_name = class_name.replace(prefix, "")
    return class_name


def _strict_int(piece: str) -> int:
    # int() would also accept surrounding whitespace and "+" signs.
    if not _INT_RE.fullmatch(piece):
        raise ValueError(piece)
    return int(piece)


def _trunc_half(n: int) -> int:
    """Halve an int, truncating toward zero."""
    return -(-n // 2) if n < 0 else n // 2


def _format_fraction(numerator: int, denominator: int) -> str:
    return str((Decimal(numerator) / Decimal(denominator)).quantize(_TWO_PLACES, ROUND_HALF_UP))


class UiNode(TreeNode):
    """One UI element of a hierarchy dump.

    Nodes are filled by repeated :meth:`add_attribute` calls while a dump
    is parsed and are treated as read-only afterwards.  Nothing enforces
    that; the cached attribute array in particular is computed once and
    never refreshed.
    """

    def __init__(self, *, resolution_provider: ResolutionProvider | None = None) -> None:
        super().__init__()
        self._attributes: dict[str, str] = {}
        self._display_name = DISPLAY_NAME_PLACEHOLDER
        self._cached_attributes_array: tuple[AttributePair, ...] | None = None
        self._resolution_provider = resolution_provider
        self.node_id: str | None = None

    def __str__(self) -> str:
        return self._display_name

    def __repr__(self) -> str:
        return f"UiNode({self.node_id or '?'}: {self._display_name!r})"

    # -- attribute store -----------------------------------------------------

    def add_attribute(self, key: str, value: str) -> None:
        """Insert or overwrite an attribute.

        Re-adding a key keeps its original position.  The display label is
        rebuilt on every call; a ``bounds`` key also updates the rectangle.

        Raises:
            InvalidBoundsError: If ``key`` is ``"bounds"`` and ``value`` does
                not parse.  The value is still stored, the rectangle is not.
        """
        self._attributes[key] = value
        self._update_display_name()
        if key == "bounds":
            self._update_bounds(value)

    set_attribute = add_attribute

    def get_attribute(self, key: str) -> str | None:
        return self._attributes.get(key)

    def get_attributes(self) -> Mapping[str, str]:
        """Return a read-only live view of all attributes, in insertion order."""
        return MappingProxyType(self._attributes)

    get_all_attributes = get_attributes

    def get_attributes_array(self) -> tuple[AttributePair, ...]:
        # Computed once: attributes added after the first call are not
        # reflected.  The tree is read-only once loaded.
        if self._cached_attributes_array is None:
            self._cached_attributes_array = tuple(
                AttributePair(key, value) for key, value in self._attributes.items()
            )
        return self._cached_attributes_array

    get_attributes_snapshot = get_attributes_array

    def _require(self, key: str) -> str:
        value = self._attributes.get(key)
        if value is None:
            raise MissingAttributeError(key)
        return value

    # -- geometry ------------------------------------------------------------

    def _update_bounds(self, bounds: str) -> None:
        rect = parse_bounds(bounds)
        self.x = rect.x
        self.y = rect.y
        self.width = rect.width
        self.height = rect.height
        self.has_bounds = True

    # -- display name --------------------------------------------------------

    @property
    def display_name(self) -> str:
        return self._display_name

    def _update_display_name(self) -> None:
        values = [self._attributes.get(key) for key in DISPLAY_NAME_ATTRIBUTES]
        if any(v is None for v in values):
            return
        class_name, text, content_desc, index, bounds = values

        parts = [f"({index}) {shorten_class_name(class_name)}"]
        if text:
            parts.append(f":{text}")
        if content_desc:
            parts.append(f" {{{content_desc}}}")
        parts.append(f" {bounds}")
        self._display_name = "".join(parts)

    # -- selectors -----------------------------------------------------------

    def _xpath_clauses(self) -> list[str]:
        clauses = []
        text = self._attributes.get("text")
        if text:
            text = text.replace('"', '\\"')
            clauses.append(f'@text="{text}"')
        content_desc = self._require("content-desc")
        if content_desc:
            content_desc = content_desc.replace("'", "\\'")
            clauses.append(f'@content-desc="{content_desc}"')
        return clauses

    @staticmethod
    def _join_xpath(class_name: str, clauses: list[str]) -> str:
        xpath = "/" + class_name
        if clauses:
            xpath += "[" + " and ".join(clauses) + "]"
        return xpath

    def get_xpath(self) -> str:
        """Build a selector from class, text and content description.

        ``/android.widget.Button[@text="Go" and @content-desc="submit"]``

        Double quotes in ``text`` and single quotes in ``content-desc`` are
        prefixed with a backslash.

        Raises:
            MissingAttributeError: If ``class`` or ``content-desc`` is absent.
        """
        class_name = self._require("class")
        return self._join_xpath(class_name, self._xpath_clauses())

    def get_xpath_with_index(self) -> str:
        """Like :meth:`get_xpath`, with an ``@index`` clause for disambiguating siblings.

        Raises:
            MissingAttributeError: If ``class``, ``content-desc`` or ``index``
                is absent.
        """
        class_name = self._require("class")
        clauses = self._xpath_clauses()
        index = self._require("index")
        if index:
            clauses.append(f'@index="{index}"')
        return self._join_xpath(class_name, clauses)

    get_xpath2 = get_xpath_with_index

    # -- position ------------------------------------------------------------

    def get_center(self) -> tuple[int, int]:
        """Return the center of the ``bounds`` attribute.

        The string is re-read rather than taken from the cached rectangle.

        Raises:
            MissingAttributeError: If the node has no ``bounds`` attribute.
            InvalidBoundsError: If the attribute cannot be split into four ints.
        """
        bounds = self._require("bounds")
        try:
            first, second = bounds.split("]")[:2]
            x_str, y_str = first.split(",")
            x2_str, y2_str = second.split(",")
            x, y, x2, y2 = (_strict_int(s) for s in (x_str[1:], y_str, x2_str[1:], y2_str))
        except ValueError:
            raise InvalidBoundsError(bounds) from None
        return x + _trunc_half(x2 - x), y + _trunc_half(y2 - y)

    def get_bounds_center(self, provider: ResolutionProvider | None = None) -> str:
        """Return ``"(X,Y) (xPct,yPct)"`` for the node's center.

        ``xPct``/``yPct`` are the center divided by the screen width/height,
        rounded half-up to two decimals.

        Args:
            provider: Resolution source.  Defaults to the provider passed to
                the constructor.

        Raises:
            MissingAttributeError: If the node has no ``bounds`` attribute.
            InvalidBoundsError: If ``bounds`` is malformed.
            ResolutionUnavailableError: If no provider is available or the
                resolution cannot be read.
        """
        cx, cy = self.get_center()
        provider = provider or self._resolution_provider
        if provider is None:
            raise ResolutionUnavailableError("No resolution provider configured")
        screen_w, screen_h = parse_resolution(provider.get_resolution())
        x_pct = _format_fraction(cx, screen_w)
        y_pct = _format_fraction(cy, screen_h)
        return f"({cx},{cy}) ({x_pct},{y_pct})"


def parse_resolution(resolution: str | None) -> tuple[int, int]:
    """Parse ``"<width> x <height>"`` into a (width, height) tuple.

    Raises:
        ResolutionUnavailableError: On missing, malformed or zero dimensions.
    """
    if not resolution:
        raise ResolutionUnavailableError("Empty screen resolution")
    parts = resolution.split("x")
    if len(parts) != 2:
        raise ResolutionUnavailableError(f"Unparsable screen resolution: {resolution!r}")
    try:
        width, height = int(parts[0].strip()), int(parts[1].strip())
    except ValueError:
        raise ResolutionUnavailableError(
            f"Unparsable screen resolution: {resolution!r}"
        ) from None
    if width <= 0 or height <= 0:
        raise ResolutionUnavailableError(f"Invalid screen resolution: {resolution!r}")
    return width, height

"""Tests for UiNode: attribute store, bounds, display name, selectors and position."""

from __future__ import annotations

import pytest

from uidump._base import Rect, ResolutionProvider
from uidump.errors import InvalidBoundsError, MissingAttributeError, ResolutionUnavailableError
from uidump.node import (
    DISPLAY_NAME_PLACEHOLDER,
    AttributePair,
    UiNode,
    parse_bounds,
    parse_resolution,
    shorten_class_name,
)
from uidump.resolution import StaticResolutionProvider

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_node(**attrs: str) -> UiNode:
    """Create a UiNode; keyword names use underscores for dashes (content_desc)."""
    node = UiNode()
    for key, value in attrs.items():
        node.add_attribute(key.replace("_", "-"), value)
    return node


def _full_node(
    class_name: str = "android.widget.Button",
    text: str = "OK",
    content_desc: str = "",
    index: str = "2",
    bounds: str = "[0,0][100,50]",
) -> UiNode:
    node = UiNode()
    node.add_attribute("class", class_name)
    node.add_attribute("text", text)
    node.add_attribute("content-desc", content_desc)
    node.add_attribute("index", index)
    node.add_attribute("bounds", bounds)
    return node


class _FixedProvider(ResolutionProvider):
    def __init__(self, value: str) -> None:
        self.value = value
        self.calls = 0

    def get_resolution(self) -> str:
        self.calls += 1
        return self.value


class _FailingProvider(ResolutionProvider):
    def get_resolution(self) -> str:
        raise ResolutionUnavailableError("adb not found")


# ---------------------------------------------------------------------------
# Attribute store
# ---------------------------------------------------------------------------


class TestAttributeStore:
    def test_get_missing_returns_none(self):
        assert UiNode().get_attribute("text") is None

    def test_empty_value_is_stored(self):
        node = _make_node(text="")
        assert node.get_attribute("text") == ""

    def test_insertion_order_preserved(self):
        node = _make_node(index="0", text="a", resource_id="r")
        assert list(node.get_attributes()) == ["index", "text", "resource-id"]

    def test_overwrite_keeps_position(self):
        node = _make_node(a="1", b="2", c="3")
        node.add_attribute("a", "9")
        assert list(node.get_attributes().items()) == [("a", "9"), ("b", "2"), ("c", "3")]

    def test_repeated_identical_insert_is_idempotent(self):
        node = _make_node(a="1", b="2")
        node.add_attribute("a", "1")
        node.add_attribute("a", "1")
        assert list(node.get_attributes().items()) == [("a", "1"), ("b", "2")]

    def test_mapping_view_is_read_only(self):
        node = _make_node(text="x")
        view = node.get_all_attributes()
        with pytest.raises(TypeError):
            view["text"] = "y"
        assert node.get_attribute("text") == "x"

    def test_mapping_view_is_live(self):
        node = _make_node(text="x")
        view = node.get_attributes()
        node.add_attribute("text", "y")
        assert view["text"] == "y"

    def test_set_attribute_alias(self):
        node = UiNode()
        node.set_attribute("text", "hi")
        assert node.get_attribute("text") == "hi"


class TestAttributesSnapshot:
    def test_pairs_in_order(self):
        node = _make_node(index="0", text="a")
        assert node.get_attributes_snapshot() == (
            AttributePair("index", "0"),
            AttributePair("text", "a"),
        )

    def test_same_object_on_repeat(self):
        node = _make_node(text="a")
        assert node.get_attributes_array() is node.get_attributes_array()

    def test_snapshot_is_stale_after_mutation(self):
        """Once computed, the snapshot ignores later inserts and overwrites."""
        node = _make_node(text="a")
        first = node.get_attributes_snapshot()

        node.add_attribute("index", "4")
        node.add_attribute("text", "changed")

        assert node.get_attributes_snapshot() is first
        assert node.get_attributes_snapshot() == (AttributePair("text", "a"),)
        # The live mapping does see the changes
        assert dict(node.get_attributes()) == {"text": "changed", "index": "4"}

    def test_empty_node_snapshot(self):
        assert UiNode().get_attributes_array() == ()


# ---------------------------------------------------------------------------
# Bounds
# ---------------------------------------------------------------------------


class TestParseBounds:
    def test_basic(self):
        assert parse_bounds("[0,0][100,50]") == Rect(0, 0, 100, 50)

    def test_offset(self):
        assert parse_bounds("[40,300][1040,400]") == Rect(40, 300, 1000, 100)

    def test_negative_coordinates(self):
        assert parse_bounds("[-10,-20][100,50]") == Rect(-10, -20, 110, 70)

    @pytest.mark.parametrize(
        "bounds",
        [
            "",
            "[0,0][100]",
            "0,0,100,50",
            "[0,0][100,50",
            "[a,0][100,50]",
            "[0.5,0][100,50]",
            "]0,0[]100,50[",
            "[0,0][100,50] ",
            "[0, 0][100, 50]",
        ],
    )
    def test_malformed(self, bounds):
        with pytest.raises(InvalidBoundsError) as excinfo:
            parse_bounds(bounds)
        assert excinfo.value.bounds == bounds

    def test_error_is_value_error(self):
        with pytest.raises(ValueError, match="Invalid bounds"):
            parse_bounds("nope")


class TestNodeBounds:
    def test_no_bounds_by_default(self):
        node = UiNode()
        assert node.has_bounds is False
        assert node.rect is None

    def test_bounds_attribute_sets_rect(self):
        node = _make_node(bounds="[10,20][110,70]")
        assert node.has_bounds is True
        assert (node.x, node.y, node.width, node.height) == (10, 20, 100, 50)
        assert node.rect == Rect(10, 20, 100, 50)

    def test_invalid_bounds_raises_and_leaves_flag(self):
        node = UiNode()
        with pytest.raises(InvalidBoundsError):
            node.add_attribute("bounds", "[0,0]")
        assert node.has_bounds is False
        assert node.rect is None
        # The raw value is still recorded
        assert node.get_attribute("bounds") == "[0,0]"

    def test_invalid_bounds_keeps_previous_rect(self):
        node = _make_node(bounds="[0,0][10,10]")
        with pytest.raises(InvalidBoundsError):
            node.add_attribute("bounds", "garbage")
        assert node.rect == Rect(0, 0, 10, 10)

    def test_other_keys_do_not_touch_bounds(self):
        node = _make_node(text="[0,0][10,10]")
        assert node.has_bounds is False


# ---------------------------------------------------------------------------
# Display name
# ---------------------------------------------------------------------------


class TestDisplayName:
    def test_placeholder_initially(self):
        node = UiNode()
        assert node.display_name == DISPLAY_NAME_PLACEHOLDER
        assert str(node) == "ShouldNotSeeMe"

    def test_documented_example(self):
        node = _full_node()
        assert node.display_name == "(2) Button:OK [0,0][100,50]"
        assert str(node) == node.display_name

    @pytest.mark.parametrize("missing", ["class", "text", "content-desc", "index", "bounds"])
    def test_placeholder_until_all_required_present(self, missing):
        node = UiNode()
        values = {
            "class": "android.widget.Button",
            "text": "OK",
            "content-desc": "",
            "index": "2",
            "bounds": "[0,0][100,50]",
        }
        for key, value in values.items():
            if key != missing:
                node.add_attribute(key, value)
        assert node.display_name == DISPLAY_NAME_PLACEHOLDER

        node.add_attribute(missing, values[missing])
        assert node.display_name == "(2) Button:OK [0,0][100,50]"

    def test_content_desc_appended_in_braces(self):
        node = _full_node(class_name="android.view.View", text="", content_desc="Help", index="3")
        assert node.display_name == "(3) View {Help} [0,0][100,50]"

    def test_text_and_content_desc(self):
        node = _full_node(class_name="android.widget.ImageButton", text="Go", content_desc="submit")
        assert node.display_name == "(2) ImageButton:Go {submit} [0,0][100,50]"

    def test_all_empty_strings_count_as_present(self):
        node = _full_node(class_name="", text="", content_desc="", index="", bounds="[0,0][1,1]")
        assert node.display_name == "()  [0,0][1,1]"

    def test_non_android_class_kept(self):
        node = _full_node(class_name="androidx.recyclerview.widget.RecyclerView", text="")
        assert node.display_name == "(2) androidx.recyclerview.widget.RecyclerView [0,0][100,50]"

    def test_recomputed_on_later_insert(self):
        node = _full_node()
        node.add_attribute("text", "Cancel")
        assert node.display_name == "(2) Button:Cancel [0,0][100,50]"

    def test_unrelated_insert_keeps_label(self):
        node = _full_node()
        node.add_attribute("clickable", "true")
        assert node.display_name == "(2) Button:OK [0,0][100,50]"

    def test_bounds_shown_raw(self):
        node = _full_node(bounds="[-5,0][10,10]")
        assert node.display_name.endswith(" [-5,0][10,10]")


class TestShortenClassName:
    def test_widget_prefix(self):
        assert shorten_class_name("android.widget.TextView") == "TextView"

    def test_view_prefix(self):
        assert shorten_class_name("android.view.ViewGroup") == "ViewGroup"

    def test_prefix_stripped_anywhere(self):
        assert shorten_class_name("com.foo.android.widget.Thing") == "com.foo.Thing"

    def test_both_prefixes_stripped(self):
        assert shorten_class_name("android.widget.android.view.Foo") == "Foo"

    def test_other_packages_untouched(self):
        assert shorten_class_name("android.webkit.WebView") == "android.webkit.WebView"


# ---------------------------------------------------------------------------
# Selectors
# ---------------------------------------------------------------------------


class TestXpath:
    def test_text_and_content_desc(self):
        node = _make_node(**{"class": "Button"}, text="Go", content_desc="submit")
        assert node.get_xpath() == '/Button[@text="Go" and @content-desc="submit"]'

    def test_class_only(self):
        node = _make_node(**{"class": "android.widget.FrameLayout"}, text="", content_desc="")
        assert node.get_xpath() == "/android.widget.FrameLayout"

    def test_class_not_shortened(self):
        node = _make_node(**{"class": "android.widget.Button"}, text="OK", content_desc="")
        assert node.get_xpath() == '/android.widget.Button[@text="OK"]'

    def test_content_desc_only(self):
        node = _make_node(**{"class": "View"}, text="", content_desc="Help")
        assert node.get_xpath() == '/View[@content-desc="Help"]'

    def test_missing_text_treated_as_empty(self):
        node = _make_node(**{"class": "View"}, content_desc="Help")
        assert node.get_xpath() == '/View[@content-desc="Help"]'

    def test_double_quotes_in_text_escaped(self):
        node = _make_node(**{"class": "T"}, text='Say "hi"', content_desc="")
        assert node.get_xpath() == '/T[@text="Say \\"hi\\""]'

    def test_single_quotes_in_text_untouched(self):
        node = _make_node(**{"class": "T"}, text="Don't", content_desc="")
        assert node.get_xpath() == '/T[@text="Don\'t"]'

    def test_single_quotes_in_content_desc_escaped(self):
        node = _make_node(**{"class": "V"}, text="", content_desc="Don't")
        assert node.get_xpath() == '/V[@content-desc="Don\\\'t"]'

    def test_double_quotes_in_content_desc_untouched(self):
        node = _make_node(**{"class": "V"}, text="", content_desc='a"b')
        assert node.get_xpath() == '/V[@content-desc="a"b"]'

    def test_missing_content_desc_raises(self):
        node = _make_node(**{"class": "Button"}, text="Go")
        with pytest.raises(MissingAttributeError, match="content-desc") as excinfo:
            node.get_xpath()
        assert excinfo.value.attribute == "content-desc"

    def test_missing_class_raises(self):
        node = _make_node(text="Go", content_desc="")
        with pytest.raises(MissingAttributeError, match="class"):
            node.get_xpath()

    def test_missing_attribute_is_key_error(self):
        with pytest.raises(KeyError):
            UiNode().get_xpath()


class TestXpathWithIndex:
    def test_index_joined_to_existing_predicate(self):
        node = _make_node(**{"class": "Button"}, text="Go", content_desc="submit", index="1")
        assert (
            node.get_xpath_with_index()
            == '/Button[@text="Go" and @content-desc="submit" and @index="1"]'
        )

    def test_index_opens_predicate(self):
        node = _make_node(**{"class": "Button"}, text="", content_desc="", index="4")
        assert node.get_xpath_with_index() == '/Button[@index="4"]'

    def test_index_after_text_only(self):
        node = _make_node(**{"class": "Button"}, text="OK", content_desc="", index="0")
        assert node.get_xpath_with_index() == '/Button[@text="OK" and @index="0"]'

    def test_empty_index_skipped(self):
        node = _make_node(**{"class": "Button"}, text="OK", content_desc="", index="")
        assert node.get_xpath_with_index() == node.get_xpath()

    def test_missing_index_raises(self):
        node = _make_node(**{"class": "Button"}, text="OK", content_desc="")
        with pytest.raises(MissingAttributeError, match="index"):
            node.get_xpath_with_index()

    def test_missing_content_desc_raises(self):
        node = _make_node(**{"class": "Button"}, text="OK", index="0")
        with pytest.raises(MissingAttributeError, match="content-desc"):
            node.get_xpath_with_index()

    def test_xpath2_alias(self):
        node = _make_node(**{"class": "Button"}, text="", content_desc="", index="4")
        assert node.get_xpath2() == node.get_xpath_with_index()


# ---------------------------------------------------------------------------
# Position
# ---------------------------------------------------------------------------


class TestCenter:
    def test_simple(self):
        assert _make_node(bounds="[0,0][100,200]").get_center() == (50, 100)

    def test_offset(self):
        assert _make_node(bounds="[10,20][30,60]").get_center() == (20, 40)

    def test_odd_size_truncates(self):
        assert _make_node(bounds="[0,0][101,51]").get_center() == (50, 25)

    def test_negative_span_truncates_toward_zero(self):
        node = UiNode()
        node.add_attribute("bounds", "[10,0][3,10]")
        assert node.get_center() == (7, 5)

    def test_reads_attribute_not_rect(self):
        node = _make_node(bounds="[0,0][100,200]")
        node.x = 999
        node.width = 1
        assert node.get_center() == (50, 100)

    def test_missing_bounds(self):
        with pytest.raises(MissingAttributeError, match="bounds"):
            UiNode().get_center()

    def test_malformed_bounds(self):
        node = UiNode()
        with pytest.raises(InvalidBoundsError):
            node.add_attribute("bounds", "[0,0]")
        with pytest.raises(InvalidBoundsError):
            node.get_center()

    @pytest.mark.parametrize("bounds", ["[0, 0][100, 200]", "[0,0][+100,200]", "[0,0][100,200 ]"])
    def test_rejects_padded_or_signed_numbers(self, bounds):
        node = UiNode()
        with pytest.raises(InvalidBoundsError):
            node.add_attribute("bounds", bounds)
        with pytest.raises(InvalidBoundsError):
            node.get_center()


class TestBoundsCenter:
    def test_documented_example(self):
        node = _make_node(bounds="[0,0][100,200]")
        assert node.get_bounds_center(StaticResolutionProvider(1000, 2000)) == "(50,100) (0.05,0.05)"

    def test_compact_resolution_string(self):
        node = _make_node(bounds="[0,0][100,200]")
        assert node.get_bounds_center(_FixedProvider("1000x2000")) == "(50,100) (0.05,0.05)"

    def test_two_decimals_always(self):
        node = _make_node(bounds="[0,0][2000,2000]")
        assert node.get_bounds_center(_FixedProvider("1000 x 1000")) == "(1000,1000) (1.00,1.00)"

    def test_half_up_rounding(self):
        node = _make_node(bounds="[0,0][250,250]")
        assert node.get_bounds_center(_FixedProvider("1000x1000")) == "(125,125) (0.13,0.13)"

    def test_realistic_screen(self):
        node = _make_node(bounds="[40,1600][1040,1700]")
        assert node.get_bounds_center(_FixedProvider("1080 x 1920")) == "(540,1650) (0.50,0.86)"

    def test_constructor_provider_used(self):
        provider = _FixedProvider("1000x2000")
        node = UiNode(resolution_provider=provider)
        node.add_attribute("bounds", "[0,0][100,200]")
        assert node.get_bounds_center() == "(50,100) (0.05,0.05)"
        assert provider.calls == 1

    def test_argument_overrides_constructor_provider(self):
        node = UiNode(resolution_provider=_FailingProvider())
        node.add_attribute("bounds", "[0,0][100,200]")
        assert node.get_bounds_center(_FixedProvider("100x200")) == "(50,100) (0.50,0.50)"

    def test_no_provider(self):
        node = _make_node(bounds="[0,0][100,200]")
        with pytest.raises(ResolutionUnavailableError, match="No resolution provider"):
            node.get_bounds_center()

    def test_provider_failure_propagates(self):
        node = _make_node(bounds="[0,0][100,200]")
        with pytest.raises(ResolutionUnavailableError, match="adb not found"):
            node.get_bounds_center(_FailingProvider())

    @pytest.mark.parametrize("resolution", ["", "garbage", "1000", "axb", "0x100", "100x0"])
    def test_bad_resolution(self, resolution):
        node = _make_node(bounds="[0,0][100,200]")
        with pytest.raises(ResolutionUnavailableError):
            node.get_bounds_center(_FixedProvider(resolution))

    def test_missing_bounds_checked_before_provider(self):
        provider = _FixedProvider("1000x2000")
        with pytest.raises(MissingAttributeError):
            UiNode().get_bounds_center(provider)
        assert provider.calls == 0


class TestParseResolution:
    def test_spaced(self):
        assert parse_resolution("1080 x 1920") == (1080, 1920)

    def test_compact(self):
        assert parse_resolution("720x1280") == (720, 1280)

    def test_none(self):
        with pytest.raises(ResolutionUnavailableError):
            parse_resolution(None)

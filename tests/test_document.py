import pytest

from elementpicker.document import (
    InvalidExpression,
    LiveDocument,
    detect_dialect,
    direct_text,
    same_tag_position,
)
from elementpicker.models import Box

LAYOUT_HTML = """
<html><body>
<div id="card" style="position: absolute; left: 100px; top: 100px; width: 400px; height: 200px">
  <span id="label" style="left: 120px; top: 110px; width: 100px; height: 20px">Name</span>
</div>
<div id="cover" style="position: absolute; left: 0; top: 0; width: 50%; height: 50vh; z-index: 10"></div>
<div id="hidden" style="display: none"><p id="inner" style="position: fixed; left: 0; top: 600px; width: 10px; height: 10px">x</p></div>
<div id="ghost" style="pointer-events: none"><a id="link" style="position: fixed; left: 700px; top: 600px; width: 40px; height: 20px">go</a></div>
</body></html>
"""


def _document() -> LiveDocument:
    return LiveDocument.from_html(LAYOUT_HTML, viewport=(1280, 720))


def test_detect_dialect() -> None:
    assert detect_dialect("//div") == "path"
    assert detect_dialect("(//li)[2]") == "path"
    assert detect_dialect("div > span") == "structural"


def test_query_supports_both_dialects_and_contains() -> None:
    document = LiveDocument.from_html("<html><body><ul><li>Alpha</li><li>Beta</li></ul></body></html>")
    assert [node.text for node in document.query("li")] == ["Alpha", "Beta"]
    assert [node.text for node in document.query("//li[2]")] == ["Beta"]
    assert [node.text for node in document.query('li:contains("Bet")')] == ["Beta"]


def test_query_raises_invalid_expression() -> None:
    document = _document()
    with pytest.raises(InvalidExpression):
        document.query("div[")
    with pytest.raises(InvalidExpression):
        document.query("//div[", "path")
    with pytest.raises(InvalidExpression):
        document.query("   ")


def test_box_resolves_lengths() -> None:
    document = _document()
    assert document.box(document.query("#card")[0]) == Box(100.0, 100.0, 400.0, 200.0)
    assert document.box(document.query("#label")[0]) == Box(120.0, 110.0, 100.0, 20.0)
    assert document.box(document.query("#cover")[0]) == Box(0.0, 0.0, 640.0, 360.0)
    assert document.box(document.body) == Box(0.0, 0.0, 1280.0, 720.0)


def test_elements_from_point_orders_by_stacking_then_document_order() -> None:
    document = _document()
    ids = [node.get("id") or node.tag for node in document.elements_from_point(150, 120)]
    assert ids == ["cover", "label", "card", "body", "html"]
    assert document.element_from_point(700, 400).tag == "body"
    assert document.elements_from_point(-1, 10) == []
    assert document.elements_from_point(1280, 10) == []


def test_hidden_and_pointer_transparent_nodes_are_not_hit() -> None:
    document = _document()
    assert document.element_from_point(5, 605).tag == "body"
    assert document.element_from_point(710, 605).tag == "body"
    assert not document.is_hit_testable(document.query("#inner")[0])
    assert document.pointer_events(document.query("#link")[0]) == "none"


def test_overridden_style_restores_on_error() -> None:
    document = _document()
    card = document.query("#card")[0]
    original = card.get("style")
    with pytest.raises(RuntimeError):
        with document.suppressed_hit_testing(card):
            assert document.pointer_events(card) == "none"
            raise RuntimeError("boom")
    assert card.get("style") == original

    label_parent = document.body
    assert label_parent.get("style") is None
    with document.suppressed_hit_testing(label_parent):
        assert "pointer-events: none" in label_parent.get("style")
    assert label_parent.get("style") is None


def test_outlined_marks_and_restores_every_node() -> None:
    document = _document()
    nodes = document.query("div")
    originals = [node.get("style") for node in nodes]
    with document.outlined(nodes) as marked:
        assert len(marked) == 4
        assert all("outline: 3px solid red" in node.get("style") for node in nodes)
    assert [node.get("style") for node in nodes] == originals


def test_text_and_position_helpers() -> None:
    document = LiveDocument.from_html("<html><body><p>One <b>two</b> three</p><p></p><p></p></body></html>")
    first, _second, third = document.query("p")
    assert direct_text(first) == "One three"
    assert same_tag_position(third) == (3, 3)
    assert document.document_index(first) == 2

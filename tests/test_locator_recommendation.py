from elementpicker.document import LiveDocument
from elementpicker.locator_recommendation import rank_candidates, synthesize
from elementpicker.models import NO_MATCHES, ScoredCandidate

SHOP_HTML = """
<html><body>
<main id="app">
  <section data-testid="cart">
    <ul><li class="item">A</li><li class="item">B</li><li class="item">C</li></ul>
  </section>
  <button id="checkout" data-testid="checkout-btn" class="btn primary">Checkout now</button>
</main>
</body></html>
"""

NESTED_HTML = "<html><body><div><div><div></div><div></div><div></div></div></div></body></html>"


def test_synthesize_ranks_test_hooks_first() -> None:
    document = LiveDocument.from_html(SHOP_HTML)
    button = document.query("button")[0]
    result = synthesize(button, document)

    assert [item.expression for item in result.best] == [
        'button[data-testid="checkout-btn"]',
        'button.btn[data-testid="checkout-btn"]',
        "//button[@data-testid='checkout-btn']",
    ]
    assert result.hybrid == result.best[0].expression
    assert result.by_id == "#checkout"
    assert result.by_class == "button.btn"
    assert result.by_text == 'button:contains("Checkout now")'
    assert result.by_library is None
    assert result.xpath_by_attribute == "//button[@data-testid='checkout-btn']"
    assert result.xpath_absolute == "/html[1]/body[1]/main[1]/button[1]"
    assert result.preferred_path() == "//button[@data-testid='checkout-btn']"
    assert result.preferred_structural() == 'button[data-testid="checkout-btn"]'
    assert result.fallback_only is False


def test_synthesize_is_deterministic() -> None:
    document = LiveDocument.from_html(SHOP_HTML)
    item = document.query("li")[2]
    assert synthesize(item, document).to_dict() == synthesize(item, document).to_dict()


def test_every_filled_slot_matches_the_tree() -> None:
    document = LiveDocument.from_html(SHOP_HTML)
    for node in (document.query("button")[0], document.query("li")[2], document.query("section")[0]):
        result = synthesize(node, document)
        for category, expression in result.slots().items():
            if expression is None:
                continue
            assert document.query(expression), category


def test_bare_nested_div_still_gets_positional_locator() -> None:
    document = LiveDocument.from_html(NESTED_HTML)
    target = document.query("div")[4]
    result = synthesize(target, document)

    assert result.best
    best = result.best[0]
    assert document.query(best.expression, best.dialect) == [target]
    assert best.uniqueness.is_unique
    assert result.fallback == "/html[1]/body[1]/div[1]/div[1]/div[3]"


def _no_candidates(_node, _profile, _policy):
    return []


def test_fallback_is_substituted_when_nothing_scores() -> None:
    document = LiveDocument.from_html(NESTED_HTML)
    target = document.query("div")[4]
    result = synthesize(target, document, generators=(_no_candidates,))

    assert result.fallback_only is True
    assert result.low_confidence is True
    assert result.all == []
    assert [item.expression for item in result.best] == [result.fallback]
    assert result.hybrid == result.fallback
    assert document.query(result.fallback) == [target]
    assert all(value is None for value in result.slots().values())


def test_rank_candidates_keeps_generation_order_on_ties() -> None:
    first = ScoredCandidate("a", "class", "by_class", 70, 90, NO_MATCHES)
    second = ScoredCandidate("b", "class", "by_class", 70, 90, NO_MATCHES)
    top = ScoredCandidate("c", "id", "by_id", 100, 120, NO_MATCHES)
    assert [item.expression for item in rank_candidates([first, second, top])] == ["c", "a", "b"]


def test_multiline_text_fills_text_slot() -> None:
    document = LiveDocument.from_html("<html><body><button>Save\n   changes</button></body></html>")
    button = document.query("button")[0]
    result = synthesize(button, document)

    assert result.by_text is not None
    assert document.query(result.by_text) == [button]


def test_prefixed_tag_gets_executable_locator() -> None:
    document = LiveDocument.from_html("<html><body><p>Intro<o:p></o:p></p></body></html>")
    target = next(node for node in document.iter_nodes() if node.tag == "o:p")
    result = synthesize(target, document)

    assert result.fallback_only is False
    best = result.best[0]
    assert best.score > 0
    assert document.query(best.expression, best.dialect) == [target]
    assert document.query(result.fallback) == [target]

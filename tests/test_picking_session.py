import lxml.html

from elementpicker.document import LiveDocument
from elementpicker.engine import LocatorEngine
from elementpicker.models import Committed, CommitRejected, ExpressionError
from elementpicker.picking_session import Phase

PAGE_HTML = """
<html><body>
<button id="submit" style="position: absolute; left: 100px; top: 100px; width: 200px; height: 50px">Submit</button>
<div id="__ep_panel" style="position: fixed; left: 900px; top: 0; width: 300px; height: 200px; z-index: 70">
  <button id="copy" style="position: absolute; left: 910px; top: 10px; width: 80px; height: 30px">Copy</button>
</div>
</body></html>
"""

TOAST_HTML = '<div class="toast" style="position: fixed; left: 650px; top: 550px; width: 200px; height: 100px">Saved</div>'


class _Recorder:
    def __init__(self) -> None:
        self.hovered = []
        self.commits = []
        self.statuses = []
        self.scheduled = []

    def engine(self, document: LiveDocument, with_scheduler: bool = False) -> LocatorEngine:
        return LocatorEngine(
            document,
            on_hover=self.hovered.append,
            on_commit=self.commits.append,
            on_status=self.statuses.append,
            scheduler=(lambda delay, callback: self.scheduled.append((delay, callback))) if with_scheduler else None,
        )


def _document() -> LiveDocument:
    return LiveDocument.from_html(PAGE_HTML)


def _add_toast(document: LiveDocument) -> None:
    document.body.append(lxml.html.fragment_fromstring(TOAST_HTML))


def test_idle_engine_ignores_pointer_events() -> None:
    recorder = _Recorder()
    engine = recorder.engine(_document())

    engine.on_pointer_move(150, 120)
    assert engine.phase is Phase.IDLE
    assert engine.hovered_node is None
    assert engine.on_commit_click(150, 120) == CommitRejected("inactive")
    assert recorder.hovered == []


def test_repeated_hover_is_idempotent() -> None:
    recorder = _Recorder()
    engine = recorder.engine(_document())
    engine.start_session()

    engine.on_pointer_move(150, 120)
    first = engine.hovered_node
    engine.on_pointer_move(150, 120)

    assert first is not None and first.get("id") == "submit"
    assert engine.hovered_node is first
    assert recorder.hovered == [first]


def test_hover_ignores_engine_nodes_and_empty_points() -> None:
    recorder = _Recorder()
    engine = recorder.engine(_document())
    engine.start_session()
    engine.on_pointer_move(150, 120)
    submit = engine.hovered_node

    engine.on_pointer_move(950, 100)
    engine.on_pointer_move(700, 600)
    assert engine.hovered_node is submit
    assert engine.session.last_pointer_position == (700, 600)


def test_commit_on_engine_node_is_rejected_and_keeps_hovering() -> None:
    recorder = _Recorder()
    engine = recorder.engine(_document())
    engine.start_session()

    result = engine.on_commit_click(920, 20)
    assert result == CommitRejected("engine-node")
    assert result.rejected is True
    assert engine.phase is Phase.HOVERING
    assert recorder.commits == []


def test_commit_synthesizes_locators() -> None:
    recorder = _Recorder()
    document = _document()
    engine = recorder.engine(document)
    engine.start_session()

    result = engine.on_commit_click(150, 120)
    assert isinstance(result, Committed)
    assert result.node.get("id") == "submit"
    assert engine.phase is Phase.COMMITTED
    assert engine.selected_node is result.node
    assert recorder.commits == [result.locator_set]
    assert document.query(result.locator_set.hybrid) == [result.node]
    assert engine.on_commit_click(150, 120) == CommitRejected("inactive")


def test_starting_again_forces_previous_session_idle() -> None:
    recorder = _Recorder()
    engine = recorder.engine(_document())
    engine.start_session()
    previous = engine.session

    engine.start_session()
    assert previous.phase is Phase.IDLE
    assert engine.session is not previous
    assert engine.phase is Phase.HOVERING
    assert recorder.statuses == ["Picking started.", "Picking stopped.", "Picking started."]


def test_escape_cancels_and_stop_is_quiet_when_idle() -> None:
    recorder = _Recorder()
    engine = recorder.engine(_document())
    engine.stop_session()
    assert recorder.statuses == []

    engine.start_session()
    assert engine.on_key("a") is False
    assert engine.on_key("Escape") is True
    assert engine.phase is Phase.IDLE
    assert recorder.statuses[-1] == "Picking cancelled."
    assert engine.on_key("Escape") is False


def test_commit_falls_back_to_hovered_node() -> None:
    recorder = _Recorder()
    engine = recorder.engine(_document())
    engine.start_session()
    engine.on_pointer_move(150, 120)

    result = engine.on_commit_click(700, 600)
    assert isinstance(result, Committed)
    assert result.node.get("id") == "submit"


def test_commit_retries_last_pointer_position() -> None:
    recorder = _Recorder()
    document = _document()
    engine = recorder.engine(document)
    engine.start_session()
    engine.on_pointer_move(700, 600)
    assert engine.hovered_node is None

    _add_toast(document)
    result = engine.on_commit_click(5, 700)
    assert isinstance(result, Committed)
    assert result.node.get("class") == "toast"


def test_delayed_recheck_commits_late_content() -> None:
    recorder = _Recorder()
    document = _document()
    engine = recorder.engine(document, with_scheduler=True)
    engine.start_session()

    assert engine.on_commit_click(700, 600) == CommitRejected("no-match")
    assert len(recorder.scheduled) == 1
    delay, recheck = recorder.scheduled[0]
    assert delay == engine.policy.settle_delay

    _add_toast(document)
    recheck()
    assert engine.phase is Phase.COMMITTED
    assert engine.selected_node.get("class") == "toast"
    assert len(recorder.commits) == 1


def test_stale_recheck_is_dropped() -> None:
    recorder = _Recorder()
    document = _document()
    engine = recorder.engine(document, with_scheduler=True)
    engine.start_session()
    engine.on_commit_click(700, 600)
    engine.cancel_session()

    _add_toast(document)
    _delay, recheck = recorder.scheduled[0]
    recheck()
    assert engine.phase is Phase.IDLE
    assert recorder.commits == []


def test_rebind_drops_old_nodes() -> None:
    recorder = _Recorder()
    engine = recorder.engine(_document())
    engine.start_session()
    engine.on_pointer_move(150, 120)

    replacement = _document()
    engine.rebind(replacement)
    assert engine.document is replacement
    assert engine.hovered_node is None
    assert engine.phase is Phase.HOVERING


def test_highlight_expression_outlines_temporarily() -> None:
    document = _document()
    engine = LocatorEngine(document)
    buttons = document.query("button")
    originals = [node.get("style") for node in buttons]

    with engine.highlight_expression("button") as result:
        assert result.match_count == 2
        assert all("outline" in node.get("style") for node in buttons)
    assert [node.get("style") for node in buttons] == originals

    with engine.highlight_expression("button[") as failed:
        assert isinstance(failed, ExpressionError)


def test_engine_expression_test_and_direct_synthesis() -> None:
    document = _document()
    engine = LocatorEngine(document)
    assert engine.test_expression("//button").match_count == 2
    assert isinstance(engine.test_expression("//button[", "path"), ExpressionError)

    submit = document.query("#submit")[0]
    locator_set = engine.synthesize_for_node(submit)
    assert locator_set.by_id == "#submit"

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Iterator

from .document import InvalidExpression, LiveDocument
from .locator_recommendation import synthesize
from .models import CommitResult, Dialect, ExpressionError, ExpressionResult, ExpressionTest, LocatorSet, Node
from .picking_session import (
    CommitCallback,
    HoverCallback,
    Phase,
    PickingController,
    PickingSession,
    Scheduler,
    StatusCallback,
)
from .point_resolver import is_engine_node, resolve_point
from .policy import DEFAULT_POLICY, EnginePolicy
from .validation import test_expression


class LocatorEngine:
    """Synchronous call surface used by the presentation layer."""

    def __init__(
        self,
        document: LiveDocument,
        policy: EnginePolicy | None = None,
        on_hover: HoverCallback | None = None,
        on_commit: CommitCallback | None = None,
        on_status: StatusCallback | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.document = document
        self.policy = policy or DEFAULT_POLICY
        self.logger = logging.getLogger("elementpicker.engine")
        self._picking = PickingController(
            resolve=self.resolve_point,
            synthesize=self.synthesize_for_node,
            is_engine_node=self.is_engine_node,
            on_hover=on_hover,
            on_commit=on_commit,
            on_status=on_status,
            scheduler=scheduler,
            settle_delay=self.policy.settle_delay,
        )

    @property
    def phase(self) -> Phase:
        return self._picking.phase

    @property
    def hovered_node(self) -> Node | None:
        return self._picking.session.hovered_node

    @property
    def selected_node(self) -> Node | None:
        return self._picking.session.selected_node

    @property
    def session(self) -> PickingSession:
        return self._picking.session

    def rebind(self, document: LiveDocument) -> None:
        self.document = document
        self._picking.forget_nodes()
        self.logger.info("Engine rebound to a new document snapshot.")

    # -- session lifecycle ----------------------------------------------------

    def start_session(self) -> None:
        self._picking.start()

    def stop_session(self) -> None:
        self._picking.stop()

    def cancel_session(self) -> None:
        self._picking.cancel()

    def on_key(self, key: str) -> bool:
        return self._picking.on_key(key)

    def on_pointer_move(self, x: float, y: float) -> None:
        self._picking.on_pointer_move(x, y)

    def on_commit_click(self, x: float, y: float) -> CommitResult:
        return self._picking.on_commit_click(x, y)

    # -- direct entry points --------------------------------------------------

    def resolve_point(self, x: float, y: float) -> Node | None:
        return resolve_point(self.document, x, y, self.policy)

    def is_engine_node(self, node: Node) -> bool:
        return is_engine_node(node, self.policy)

    def synthesize_for_node(self, node: Node) -> LocatorSet:
        return synthesize(node, self.document, self.policy)

    def test_expression(self, expression: str, dialect: Dialect | None = None) -> ExpressionResult:
        return test_expression(self.document, expression, dialect)

    @contextmanager
    def highlight_expression(self, expression: str, dialect: Dialect | None = None) -> Iterator[ExpressionResult]:
        try:
            matches = self.document.query(expression, dialect)
        except InvalidExpression as exc:
            self.logger.info("Highlight skipped: %s", exc)
            yield ExpressionError(message=str(exc))
            return

        with self.document.outlined(matches):
            yield ExpressionTest(match_count=len(matches), matched=bool(matches))

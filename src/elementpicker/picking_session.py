from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable

from .models import CommitRejected, CommitResult, Committed, LocatorSet, Node

Resolver = Callable[[float, float], "Node | None"]
Synthesizer = Callable[[Node], LocatorSet]
EngineNodeCheck = Callable[[Node], bool]
HoverCallback = Callable[[Node], None]
CommitCallback = Callable[[LocatorSet], None]
StatusCallback = Callable[[str], None]
Scheduler = Callable[[float, Callable[[], None]], None]

CANCEL_KEYS = frozenset({"Escape", "Esc"})


class Phase(Enum):
    IDLE = "idle"
    HOVERING = "hovering"
    COMMITTED = "committed"


@dataclass(slots=True)
class PickingSession:
    phase: Phase = Phase.IDLE
    hovered_node: Node | None = None
    last_pointer_position: tuple[float, float] | None = None
    selected_node: Node | None = None
    locator_set: LocatorSet | None = None


class PickingController:
    """Owns the single picking session and its guarded transitions."""

    def __init__(
        self,
        resolve: Resolver,
        synthesize: Synthesizer,
        is_engine_node: EngineNodeCheck,
        on_hover: HoverCallback | None = None,
        on_commit: CommitCallback | None = None,
        on_status: StatusCallback | None = None,
        scheduler: Scheduler | None = None,
        settle_delay: float = 0.05,
    ) -> None:
        self._resolve = resolve
        self._synthesize = synthesize
        self._is_engine_node = is_engine_node
        self._on_hover = on_hover or (lambda _node: None)
        self._on_commit = on_commit or (lambda _locator_set: None)
        self._on_status = on_status or (lambda _message: None)
        self._scheduler = scheduler
        self._settle_delay = settle_delay
        self.logger = logging.getLogger("elementpicker.engine")
        self.session = PickingSession()

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def is_active(self) -> bool:
        return self.session.phase is not Phase.IDLE

    def start(self) -> None:
        if self.is_active:
            self._to_idle("Picking stopped.")
        self.session = PickingSession(phase=Phase.HOVERING)
        self.logger.info("Picking session started.")
        self._on_status("Picking started.")

    def stop(self) -> None:
        if self.is_active:
            self._to_idle("Picking stopped.")

    def cancel(self) -> None:
        if self.is_active:
            self._to_idle("Picking cancelled.")

    def on_key(self, key: str) -> bool:
        if key in CANCEL_KEYS and self.is_active:
            self.cancel()
            return True
        return False

    def forget_nodes(self) -> None:
        """Drop node references after the tree they belong to was replaced."""
        self.session.hovered_node = None
        self.session.selected_node = None

    def on_pointer_move(self, x: float, y: float) -> Node | None:
        session = self.session
        if session.phase is not Phase.HOVERING:
            return None

        session.last_pointer_position = (x, y)
        node = self._safe_resolve(x, y)
        if node is None or self._is_engine_node(node):
            return session.hovered_node
        if node is session.hovered_node:
            return node

        session.hovered_node = node
        self._on_hover(node)
        return node

    def on_commit_click(self, x: float, y: float) -> CommitResult:
        session = self.session
        if session.phase is not Phase.HOVERING:
            return CommitRejected("inactive")

        previous_position = session.last_pointer_position
        session.last_pointer_position = (x, y)

        node = self._safe_resolve(x, y)
        if node is not None and self._is_engine_node(node):
            self.logger.info("Commit at (%s, %s) rejected: engine-owned node.", x, y)
            self._on_status("Click landed on the picker itself; still picking.")
            return CommitRejected("engine-node")

        if node is None:
            node = self._fallback_target(previous_position, (x, y))
        if node is None:
            self._schedule_recheck(session, x, y)
            self.logger.info("Commit at (%s, %s) found no element.", x, y)
            return CommitRejected("no-match")

        return self._commit(session, node)

    def _fallback_target(
        self,
        previous_position: tuple[float, float] | None,
        click_position: tuple[float, float],
    ) -> Node | None:
        hovered = self.session.hovered_node
        if hovered is not None and not self._is_engine_node(hovered):
            self.logger.info("Commit fell back to the hovered element.")
            return hovered

        if previous_position is None or previous_position == click_position:
            return None
        node = self._safe_resolve(*previous_position)
        if node is None or self._is_engine_node(node):
            return None
        self.logger.info("Commit fell back to the last pointer position %s.", previous_position)
        return node

    def _schedule_recheck(self, session: PickingSession, x: float, y: float) -> None:
        if self._scheduler is None:
            return

        def recheck() -> None:
            # a newer session or a finished commit makes this stale
            if self.session is not session or session.phase is not Phase.HOVERING:
                return
            node = self._safe_resolve(x, y)
            if node is None or self._is_engine_node(node):
                self.logger.info("Delayed re-check at (%s, %s) found nothing.", x, y)
                return
            self._commit(session, node)

        self._scheduler(self._settle_delay, recheck)

    def _commit(self, session: PickingSession, node: Node) -> Committed:
        locator_set = self._synthesize(node)
        session.phase = Phase.COMMITTED
        session.selected_node = node
        session.locator_set = locator_set
        self.logger.info("Committed <%s>: %s", node.tag, locator_set.hybrid)
        self._on_status(f"Selected: {locator_set.hybrid}")
        self._on_commit(locator_set)
        return Committed(locator_set=locator_set, node=node)

    def _safe_resolve(self, x: float, y: float) -> Node | None:
        try:
            return self._resolve(x, y)
        except Exception as exc:
            self.logger.exception("Point resolution failed at (%s, %s)", x, y, exc_info=exc)
            return None

    def _to_idle(self, message: str) -> None:
        previous = self.session.phase
        self.session.phase = Phase.IDLE
        self.session = PickingSession()
        self.logger.info("Picking session %s -> idle.", previous.value)
        self._on_status(message)

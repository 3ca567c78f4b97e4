from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from .draw import DrawEngine, DrawOutcome
from .errors import PersistenceError, PoolExhausted, SelectionExhausted
from .project_constants import MAX_PRIZE_TIER, MIN_PRIZE_TIER

log = logging.getLogger(__name__)


class GameState(str, Enum):
    IDLE = "Idle"
    DRAWING = "Drawing"
    SHOWING_RESULT = "ShowingResult"
    TRANSITIONING = "Transitioning"


class LotteryListener:
    """
    Receives notifications from the state machine. Subclass and override what
    you need; every hook is a no-op by default.
    """

    def state_changed(self, new_state: GameState) -> None:
        pass

    def prize_tier_updated(self, prize_tier: int) -> None:
        pass

    def ready_to_show_result(self) -> None:
        pass

    def transition_complete(self) -> None:
        pass


class LotteryStateMachine:
    """
    Idle -> Drawing -> ShowingResult -> Transitioning -> Idle.

    Triggers received in the wrong state are logged and ignored. Each trigger
    returns True when it took effect.
    """

    def __init__(self, engine: DrawEngine, prize_tier: int = MIN_PRIZE_TIER) -> None:
        self.engine = engine
        self.state = GameState.IDLE
        self.active_prize_tier = prize_tier
        self.last_outcome: Optional[DrawOutcome] = None
        self._listeners: List[LotteryListener] = []

    @property
    def last_winner_id(self) -> Optional[int]:
        return self.last_outcome.winner_id if self.last_outcome else None

    def subscribe(self, listener: LotteryListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: LotteryListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def start(self) -> None:
        """Load every store. Call once before the first trigger."""
        self.engine.reload()

    # -- triggers -----------------------------------------------------------

    def request_draw(self, prize_tier: Optional[int] = None) -> bool:
        if not self._require(GameState.IDLE, "draw"):
            return False
        tier = self.active_prize_tier if prize_tier is None else prize_tier
        if not _valid_tier(tier):
            log.warning("Invalid prize tier: %s", tier)
            return False

        try:
            outcome = self.engine.draw(tier)
        except PoolExhausted as e:
            log.warning("Draw had no effect: %s", e)
            return False
        except SelectionExhausted as e:
            log.error("Draw aborted: %s", e)
            return False

        self.last_outcome = outcome
        self._change_state(GameState.DRAWING)
        return True

    def request_prize_tier_change(self, prize_tier: int) -> bool:
        if not self._require(GameState.IDLE, "change prize tier"):
            return False
        if not _valid_tier(prize_tier):
            log.warning("Invalid prize tier: %s", prize_tier)
            return False

        self.active_prize_tier = prize_tier
        log.info("Prize tier set to %d", prize_tier)
        self._notify("prize_tier_updated", prize_tier)
        return True

    def request_reload_config(self) -> bool:
        if not self._require(GameState.IDLE, "reload config"):
            return False
        self.engine.reload()
        log.info("Config reloaded.")
        return True

    def request_clear_history(self) -> bool:
        if not self._require(GameState.IDLE, "clear draw history"):
            return False
        self.last_outcome = None
        try:
            self.engine.ledger.clear()
        except PersistenceError as e:
            log.error("Failed to clear draw history: %s", e)
        return True

    def notify_drawing_animation_threshold_reached(self) -> bool:
        if not self._require(GameState.DRAWING, "show result"):
            return False
        self._change_state(GameState.SHOWING_RESULT)
        self._notify("ready_to_show_result")
        return True

    def request_restart(self) -> bool:
        if not self._require(GameState.SHOWING_RESULT, "restart"):
            return False
        self._change_state(GameState.TRANSITIONING)
        return True

    def notify_transition_animation_complete(self) -> bool:
        if not self._require(GameState.TRANSITIONING, "finish transition"):
            return False
        self._change_state(GameState.IDLE)
        self._notify("transition_complete")
        return True

    # -- internals ----------------------------------------------------------

    def _require(self, expected: GameState, action: str) -> bool:
        if self.state is expected:
            return True
        log.warning("Current state is %s, cannot %s.", self.state.value, action)
        return False

    def _change_state(self, new_state: GameState) -> None:
        if self.state is new_state:
            return
        log.debug("State change: %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        self._notify("state_changed", new_state)

    def _notify(self, hook: str, *args: object) -> None:
        # Copy: a listener may unsubscribe itself while being notified.
        for listener in list(self._listeners):
            try:
                getattr(listener, hook)(*args)
            except Exception:
                log.exception("Listener %r failed in %s", listener, hook)


def _valid_tier(prize_tier: object) -> bool:
    return (
        isinstance(prize_tier, int)
        and not isinstance(prize_tier, bool)
        and MIN_PRIZE_TIER <= prize_tier <= MAX_PRIZE_TIER
    )

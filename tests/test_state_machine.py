from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from typing import Any, List, Tuple

from kiosk_lottery.config import ConfigStore, PoolConfig, Settings
from kiosk_lottery.draw import DrawEngine
from kiosk_lottery.state import GameState, LotteryListener, LotteryStateMachine


class RecordingListener(LotteryListener):
    def __init__(self) -> None:
        self.events: List[Tuple[str, Any]] = []

    def state_changed(self, new_state: GameState) -> None:
        self.events.append(("state", new_state))

    def prize_tier_updated(self, prize_tier: int) -> None:
        self.events.append(("tier", prize_tier))

    def ready_to_show_result(self) -> None:
        self.events.append(("result", None))

    def transition_complete(self) -> None:
        self.events.append(("transition", None))


class ExplodingListener(LotteryListener):
    def state_changed(self, new_state: GameState) -> None:
        raise RuntimeError("screen unplugged")


class LotteryStateMachineTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.settings = Settings(data_dir=Path(self._tmp.name), seed=99)
        ConfigStore(self.settings.config_path).save(PoolConfig(1, 3, 1, 2, 4))
        self.machine = LotteryStateMachine(DrawEngine.from_settings(self.settings))
        self.machine.start()
        self.listener = RecordingListener()
        self.machine.subscribe(self.listener)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _full_cycle(self, prize_tier: int = 1) -> int:
        self.assertTrue(self.machine.request_draw(prize_tier))
        self.assertTrue(self.machine.notify_drawing_animation_threshold_reached())
        self.assertTrue(self.machine.request_restart())
        self.assertTrue(self.machine.notify_transition_animation_complete())
        return self.machine.last_winner_id

    def test_full_cycle_emits_events_in_order(self) -> None:
        winner = self._full_cycle()
        self.assertIn(winner, (1, 2, 3))
        self.assertEqual(
            self.listener.events,
            [
                ("state", GameState.DRAWING),
                ("state", GameState.SHOWING_RESULT),
                ("result", None),
                ("state", GameState.TRANSITIONING),
                ("state", GameState.IDLE),
                ("transition", None),
            ],
        )
        self.assertIs(self.machine.state, GameState.IDLE)

    def test_draw_uses_active_prize_tier(self) -> None:
        self.assertTrue(self.machine.request_prize_tier_change(4))
        self.assertEqual(self.listener.events, [("tier", 4)])
        self.machine.request_draw()
        self.assertEqual(self.machine.last_outcome.prize_tier, 4)
        self.assertEqual(self.machine.last_outcome.pool, "special")

    def test_triggers_in_wrong_state_are_ignored(self) -> None:
        with self.assertLogs("kiosk_lottery.state", level="WARNING"):
            self.assertFalse(self.machine.request_restart())
            self.assertFalse(self.machine.notify_drawing_animation_threshold_reached())
            self.assertFalse(self.machine.notify_transition_animation_complete())
        self.assertEqual(self.listener.events, [])

        self.machine.request_draw(1)
        winners_before = set(self.machine.engine.ledger.common_winner_ids)
        with self.assertLogs("kiosk_lottery.state", level="WARNING"):
            self.assertFalse(self.machine.request_draw(1))
            self.assertFalse(self.machine.request_prize_tier_change(2))
            self.assertFalse(self.machine.request_reload_config())
            self.assertFalse(self.machine.request_clear_history())
            self.assertFalse(self.machine.request_restart())
        self.assertIs(self.machine.state, GameState.DRAWING)
        self.assertEqual(self.machine.engine.ledger.common_winner_ids, winners_before)
        self.assertEqual(self.machine.active_prize_tier, 1)

    def test_invalid_prize_tier_is_rejected(self) -> None:
        with self.assertLogs("kiosk_lottery.state", level="WARNING"):
            self.assertFalse(self.machine.request_prize_tier_change(0))
            self.assertFalse(self.machine.request_prize_tier_change(5))
            self.assertFalse(self.machine.request_draw(7))
        self.assertEqual(self.machine.active_prize_tier, 1)
        self.assertIs(self.machine.state, GameState.IDLE)
        self.assertEqual(self.listener.events, [])

    def test_exhausted_pool_stays_idle(self) -> None:
        for _ in range(3):
            self._full_cycle(1)
        self.listener.events.clear()

        with self.assertLogs("kiosk_lottery.state", level="WARNING"):
            self.assertFalse(self.machine.request_draw(2))
        self.assertIs(self.machine.state, GameState.IDLE)
        self.assertEqual(self.listener.events, [])

    def test_clear_history_only_when_idle(self) -> None:
        self._full_cycle(1)
        self.assertTrue(self.settings.ledger_path.exists())
        self.assertTrue(self.machine.request_clear_history())
        self.assertFalse(self.settings.ledger_path.exists())
        self.assertIsNone(self.machine.last_winner_id)
        self.assertEqual(self.machine.engine.ledger.total_winners, 0)

    def test_reload_picks_up_new_blacklist(self) -> None:
        self.settings.blacklist_path.write_text("1\n2\n", encoding="utf-8")
        self.assertTrue(self.machine.request_reload_config())
        self.assertEqual(self.machine.engine.available_count, 1)
        self.assertEqual(self._full_cycle(1), 3)

    def test_unsubscribed_listener_hears_nothing(self) -> None:
        self.machine.unsubscribe(self.listener)
        self._full_cycle(1)
        self.assertEqual(self.listener.events, [])

    def test_failing_listener_does_not_break_the_machine(self) -> None:
        self.machine.subscribe(ExplodingListener())
        with self.assertLogs("kiosk_lottery.state", level="ERROR"):
            self._full_cycle(1)
        self.assertIs(self.machine.state, GameState.IDLE)
        self.assertEqual(len(self.listener.events), 6)

    def test_subscribe_twice_notifies_once(self) -> None:
        self.machine.subscribe(self.listener)
        self.machine.request_prize_tier_change(2)
        self.assertEqual(self.listener.events, [("tier", 2)])

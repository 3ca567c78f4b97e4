from __future__ import annotations

import argparse
import logging
from typing import Callable, Dict, Optional

from .config import Settings
from .draw import DrawEngine
from .errors import VerificationError
from .project_constants import MAX_PRIZE_TIER, MIN_PRIZE_TIER
from .state import GameState, LotteryListener, LotteryStateMachine
from .verify import verify_ledger


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


class ConsolePresenter(LotteryListener):
    """Stands in for the kiosk screen: prints what it would animate."""

    def __init__(self, machine: LotteryStateMachine) -> None:
        self.machine = machine

    def state_changed(self, new_state: GameState) -> None:
        print(f"[state] {new_state.value}")

    def prize_tier_updated(self, prize_tier: int) -> None:
        print(f"[prize] tier {prize_tier} selected")

    def ready_to_show_result(self) -> None:
        outcome = self.machine.last_outcome
        if outcome is None:
            return
        print("========================================")
        print(f"🏆 TIER {outcome.prize_tier} WINNER: {outcome.winner_id}")
        print("========================================")
        if not outcome.persisted:
            print("⚠️  Result could not be saved to disk!")

    def transition_complete(self) -> None:
        print("[ready] press Enter to draw")


def build_machine(args: argparse.Namespace) -> LotteryStateMachine:
    settings = Settings.from_env(data_dir_override=args.data_dir, seed_override=args.seed)
    machine = LotteryStateMachine(DrawEngine.from_settings(settings))
    machine.start()
    return machine


def play_cycle(machine: LotteryStateMachine, prize_tier: Optional[int] = None) -> bool:
    """Draw, then play the result and transition as an instant animation."""
    if not machine.request_draw(prize_tier):
        return False
    machine.notify_drawing_animation_threshold_reached()
    machine.request_restart()
    machine.notify_transition_animation_complete()
    return True


def cmd_run(args: argparse.Namespace) -> int:
    machine = build_machine(args)
    presenter = ConsolePresenter(machine)
    machine.subscribe(presenter)

    def draw() -> None:
        if machine.request_draw():
            # No animation on a terminal: the threshold is reached at once.
            machine.notify_drawing_animation_threshold_reached()

    def restart() -> None:
        if machine.request_restart():
            machine.notify_transition_animation_complete()

    actions: Dict[str, Callable[[], object]] = {
        "": draw,
        "d": draw,
        "r": restart,
        "c": machine.request_reload_config,
        "x": machine.request_clear_history,
    }
    for tier in range(MIN_PRIZE_TIER, MAX_PRIZE_TIER + 1):
        actions[str(tier)] = lambda tier=tier: machine.request_prize_tier_change(tier)

    print("Keys: 1-4 prize tier | Enter draw | r restart | c reload | x clear | q quit")
    print(f"Prize tier {machine.active_prize_tier} selected.")
    try:
        while True:
            try:
                key = input("> ").strip().lower()
            except EOFError:
                break
            if key == "q":
                break
            action = actions.get(key)
            if action is None:
                print(f"Unknown key: {key!r}")
                continue
            action()
    finally:
        machine.unsubscribe(presenter)
    return 0


def cmd_draw(args: argparse.Namespace) -> int:
    machine = build_machine(args)
    log = logging.getLogger("draw")

    winners = []
    for _ in range(args.count):
        if not play_cycle(machine, args.tier):
            break
        winners.append(machine.last_winner_id)

    if not winners:
        log.warning("No winner drawn for tier %d.", args.tier)
        return 1

    print("========================================")
    print(f"🏆 PRIZE TIER {args.tier}")
    print("========================================")
    for winner_id in winners:
        print(f"Winner        : {winner_id}")
    print("----------------------------------------")
    print(f"Remaining     : {machine.engine.remaining(args.tier)}")
    return 0 if len(winners) == args.count else 1


def cmd_status(args: argparse.Namespace) -> int:
    machine = build_machine(args)
    engine = machine.engine
    config = engine.config

    print("--- LOTTERY STATUS ---")
    print(f"Common pool   : {config.common_min_id} - {config.common_max_id}")
    print(f"Special pool  : {config.special_min_id} - {config.special_max_id}")
    print(f"Special tier  : {config.special_prize_tier}")
    print(f"Blacklisted   : {len(engine.blacklist)}")
    print(f"Must-win      : {len(engine.must_win.load())}")
    print("-" * 22)
    for tier in range(MIN_PRIZE_TIER, MAX_PRIZE_TIER + 1):
        winners = engine.ledger.winners_for(tier)
        shown = ", ".join(str(w) for w in winners) or "-"
        print(f"Tier {tier} ({len(winners)} won, {engine.remaining(tier)} left): {shown}")
    return 0


def cmd_clear(args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input("Delete all draw results? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Aborted.")
            return 1
    machine = build_machine(args)
    machine.request_clear_history()
    print("Draw history cleared.")
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    machine = build_machine(args)
    engine = machine.engine
    ledger_path = args.ledger or engine.ledger.path

    try:
        result = verify_ledger(ledger_path, engine.config, engine.blacklist.ids)
    except VerificationError as e:
        print(f"❌ LEDGER REJECTED: {e}")
        return 1

    print("✅ LEDGER VERIFIED")
    for tier, winners in sorted(result["winners_by_tier"].items()):
        print(f"Tier {tier}        : {len(winners)} winners")
    print(f"Common winners : {result['common_winners']}")
    print(f"Special winners: {result['special_winners']}")
    return 0


def _prize_tier(value: str) -> int:
    tier = int(value)
    if not MIN_PRIZE_TIER <= tier <= MAX_PRIZE_TIER:
        raise argparse.ArgumentTypeError(
            f"prize tier must be between {MIN_PRIZE_TIER} and {MAX_PRIZE_TIER}"
        )
    return tier


def _positive_count(value: str) -> int:
    count = int(value)
    if count < 1:
        raise argparse.ArgumentTypeError("count must be at least 1")
    return count


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="kiosk-lottery",
        description="Kiosk prize draw with blacklist, must-win list and persistent results.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding config/blacklist/must-win/result files (else env).",
    )
    p.add_argument(
        "--seed", type=int, default=None, help="Seed the random generator (drills only)."
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("run", help="Interactive operator console.")
    r.set_defaults(func=cmd_run)

    d = sub.add_parser("draw", help="Draw winners for a prize tier and exit.")
    d.add_argument("--tier", required=True, type=_prize_tier, help="Prize tier (1-4).")
    d.add_argument(
        "--count", type=_positive_count, default=1, help="Number of winners to draw."
    )
    d.set_defaults(func=cmd_draw)

    s = sub.add_parser("status", help="Show pools and winners so far.")
    s.set_defaults(func=cmd_status)

    c = sub.add_parser("clear", help="Delete every recorded winner.")
    c.add_argument("--yes", action="store_true", help="Do not ask for confirmation.")
    c.set_defaults(func=cmd_clear)

    v = sub.add_parser("verify", help="Check the result file against the pool rules.")
    v.add_argument("--ledger", default=None, help="Path to draw_result.json.")
    v.set_defaults(func=cmd_verify)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    raise SystemExit(args.func(args))

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Set

from .config import PoolConfig
from .errors import VerificationError
from .ledger import WinnerRecord


def verify_ledger(
    ledger_path: Path,
    config: PoolConfig,
    blacklist: Set[int],
) -> Dict[str, Any]:
    """
    Re-check a draw_result.json against the pool rules.

    Every winner must sit in the range of its pool, appear at most once per
    pool, and common winners must not be blacklisted. The first violation
    raises VerificationError.
    """
    try:
        with open(ledger_path, "r", encoding="utf-8") as f:
            record = WinnerRecord.from_json(json.load(f))
    except (OSError, ValueError) as e:
        raise VerificationError(f"Cannot read ledger {ledger_path}: {e}") from e

    seen_common: Set[int] = set()
    seen_special: Set[int] = set()
    per_tier: Dict[int, List[int]] = {}

    for entry in record.entries:
        special = entry.prize_tier == config.special_prize_tier
        seen = seen_special if special else seen_common
        for winner_id in entry.winner_ids:
            if special and not config.in_special_range(winner_id):
                raise VerificationError(
                    f"Tier {entry.prize_tier}: winner {winner_id} outside special range "
                    f"{config.special_min_id}-{config.special_max_id}"
                )
            if not special and not config.in_common_range(winner_id):
                raise VerificationError(
                    f"Tier {entry.prize_tier}: winner {winner_id} outside common range "
                    f"{config.common_min_id}-{config.common_max_id}"
                )
            if not special and winner_id in blacklist:
                raise VerificationError(
                    f"Tier {entry.prize_tier}: winner {winner_id} is blacklisted"
                )
            if winner_id in seen:
                raise VerificationError(
                    f"Tier {entry.prize_tier}: winner {winner_id} already won in the "
                    f"{'special' if special else 'common'} pool"
                )
            seen.add(winner_id)
        per_tier[entry.prize_tier] = list(entry.winner_ids)

    return {
        "ok": True,
        "winners_by_tier": per_tier,
        "common_winners": len(seen_common),
        "special_winners": len(seen_special),
    }

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Set

from .errors import PersistenceError

log = logging.getLogger(__name__)


@dataclass
class PrizeWinnerEntry:
    prize_tier: int
    winner_ids: List[int] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {"prizeTier": self.prize_tier, "winnerIds": list(self.winner_ids)}


@dataclass
class WinnerRecord:
    entries: List[PrizeWinnerEntry] = field(default_factory=list)

    def entry_for(self, prize_tier: int) -> PrizeWinnerEntry | None:
        for entry in self.entries:
            if entry.prize_tier == prize_tier:
                return entry
        return None

    def to_json(self) -> Dict[str, Any]:
        return {"prizeWinners": [e.to_json() for e in self.entries]}

    @staticmethod
    def from_json(data: Any) -> "WinnerRecord":
        """
        Parse the decoded ledger file. Entries with a missing or non-integer
        tier or a winnerIds value that is not a list are dropped, as are
        non-integer winner IDs.
        """
        if not isinstance(data, dict) or not isinstance(data.get("prizeWinners"), list):
            raise ValueError("ledger must be an object with a 'prizeWinners' list")

        record = WinnerRecord()
        for item in data["prizeWinners"]:
            if not isinstance(item, dict) or not _is_int(item.get("prizeTier")):
                log.warning("Ledger entry without a prize tier skipped: %r", item)
                continue
            raw_ids = item.get("winnerIds")
            if raw_ids is None:
                raw_ids = []
            if not isinstance(raw_ids, list):
                log.warning("Ledger entry with malformed winnerIds skipped: %r", item)
                continue
            ids = [i for i in raw_ids if _is_int(i)]
            existing = record.entry_for(item["prizeTier"])
            if existing is not None:
                existing.winner_ids.extend(ids)
            else:
                record.entries.append(PrizeWinnerEntry(item["prizeTier"], ids))
        return record


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class DrawLedger:
    """
    Winners per prize tier, persisted to draw_result.json after every draw.

    Common and special winners are tracked in separate sets: the two pools
    may share raw IDs but are different groups of people.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.record = WinnerRecord()
        self.common_winner_ids: Set[int] = set()
        self.special_winner_ids: Set[int] = set()

    @property
    def total_winners(self) -> int:
        return len(self.common_winner_ids) + len(self.special_winner_ids)

    def winners_for(self, prize_tier: int) -> List[int]:
        entry = self.record.entry_for(prize_tier)
        return list(entry.winner_ids) if entry else []

    def load(self, special_prize_tier: int) -> WinnerRecord:
        self.record = WinnerRecord()
        self.common_winner_ids.clear()
        self.special_winner_ids.clear()

        if not self.path.exists():
            log.info("No draw results found, starting fresh.")
            return self.record

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                self.record = WinnerRecord.from_json(json.load(f))
        except (OSError, ValueError) as e:
            log.error("Failed to load draw results %s: %s. Starting fresh.", self.path, e)
            return self.record

        for entry in self.record.entries:
            target = (
                self.special_winner_ids
                if entry.prize_tier == special_prize_tier
                else self.common_winner_ids
            )
            target.update(entry.winner_ids)

        log.info("Draw results loaded. Winners so far: %d", self.total_winners)
        return self.record

    def record_winner(self, prize_tier: int, winner_id: int, special: bool) -> None:
        if special:
            self.special_winner_ids.add(winner_id)
        else:
            self.common_winner_ids.add(winner_id)

        entry = self.record.entry_for(prize_tier)
        if entry is None:
            self.record.entries.append(PrizeWinnerEntry(prize_tier, [winner_id]))
        else:
            entry.winner_ids.append(winner_id)

    def save(self) -> None:
        """Rewrite the whole ledger file. Raises PersistenceError on I/O failure."""
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self.record.to_json(), f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Could not write {self.path}: {e}") from e

    def clear(self) -> None:
        """
        Forget every winner and delete the ledger file. The in-memory state is
        cleared even when the delete fails (PersistenceError).
        """
        self.common_winner_ids.clear()
        self.special_winner_ids.clear()
        self.record = WinnerRecord()

        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not delete {self.path}: {e}") from e
        log.info("Draw history cleared.")

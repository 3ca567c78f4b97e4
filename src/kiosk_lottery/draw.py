from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .config import ConfigStore, PoolConfig, Settings
from .errors import PersistenceError, PoolExhausted, SelectionExhausted
from .ledger import DrawLedger
from .participants import BlacklistStore, MustWinStore, filter_must_win
from .project_constants import MAX_DRAW_ATTEMPTS

log = logging.getLogger(__name__)

COMMON_POOL = "common"
SPECIAL_POOL = "special"


@dataclass(frozen=True)
class DrawOutcome:
    prize_tier: int
    winner_id: int
    pool: str
    from_must_win: bool = False
    persisted: bool = True


def sample_until(
    rng: random.Random,
    min_id: int,
    max_id: int,
    is_taken: Callable[[int], bool],
    prize_tier: int,
    max_attempts: int = MAX_DRAW_ATTEMPTS,
) -> int:
    """
    Rejection sampling: draw uniform IDs in [min_id, max_id] until one is not
    taken. Raises SelectionExhausted after ``max_attempts`` misses.
    """
    for _ in range(max_attempts):
        candidate = rng.randint(min_id, max_id)
        if not is_taken(candidate):
            return candidate
    raise SelectionExhausted(
        f"No free participant found in {min_id}-{max_id} after {max_attempts} attempts; "
        "winner accounting and exclusions disagree.",
        prize_tier,
    )


class DrawEngine:
    """
    Picks winners for a prize tier and keeps the ledger up to date.

    Every store is owned here and lives as long as the engine; ``reload``
    refreshes their contents without replacing them.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        blacklist: BlacklistStore,
        must_win: MustWinStore,
        ledger: DrawLedger,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config_store = config_store
        self.blacklist = blacklist
        self.must_win = must_win
        self.ledger = ledger
        self.rng = rng or random.Random()
        self.available_count = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "DrawEngine":
        return cls(
            config_store=ConfigStore(settings.config_path),
            blacklist=BlacklistStore(settings.blacklist_path),
            must_win=MustWinStore(settings.must_win_path),
            ledger=DrawLedger(settings.ledger_path),
            rng=random.Random(settings.seed),
        )

    @property
    def config(self) -> PoolConfig:
        return self.config_store.config

    def reload(self) -> None:
        config = self.config_store.load()
        self.blacklist.load(config.common_min_id, config.common_max_id)
        self.ledger.load(config.special_prize_tier)
        self.available_count = self._count_available()
        log.info(
            "Lottery ready. Participants: %d - %d. Blacklisted: %d. Winners so far: %d.",
            config.common_min_id,
            config.common_max_id,
            len(self.blacklist),
            self.ledger.total_winners,
        )

    def _count_available(self) -> int:
        config = self.config
        if config.common_pool_size == 0:
            return 0
        # The blacklist only ever holds in-range IDs.
        available = config.common_pool_size - len(self.blacklist)
        if available <= 0:
            log.warning(
                "No participant can win a common prize: every ID in range is blacklisted."
            )
        return available

    def is_special(self, prize_tier: int) -> bool:
        return prize_tier == self.config.special_prize_tier

    def remaining(self, prize_tier: int) -> int:
        """Participants still eligible for the pool serving ``prize_tier``."""
        if self.is_special(prize_tier):
            left = self.config.special_pool_size - len(self.ledger.special_winner_ids)
        else:
            left = self.available_count - len(self.ledger.common_winner_ids)
        return max(left, 0)

    def draw(self, prize_tier: int) -> DrawOutcome:
        """
        Draw one winner for ``prize_tier``, record it and persist the ledger.

        Raises
        ------
        PoolExhausted
            Nobody eligible is left; winner sets are untouched.
        SelectionExhausted
            Rejection sampling hit the attempt cap; winner sets are untouched.
        """
        if self.is_special(prize_tier):
            winner_id = self._draw_special(prize_tier)
            pool, from_must_win = SPECIAL_POOL, False
        else:
            winner_id, from_must_win = self._draw_common(prize_tier)
            pool = COMMON_POOL

        self.ledger.record_winner(prize_tier, winner_id, special=pool == SPECIAL_POOL)
        persisted = True
        try:
            self.ledger.save()
        except PersistenceError as e:
            persisted = False
            log.error("%s Winner kept in memory only for this session.", e)

        log.info(
            "Prize tier %d drawn, winner: %d (%s pool%s). Winners so far: %d",
            prize_tier,
            winner_id,
            pool,
            ", must-win" if from_must_win else "",
            self.ledger.total_winners,
        )
        return DrawOutcome(
            prize_tier=prize_tier,
            winner_id=winner_id,
            pool=pool,
            from_must_win=from_must_win,
            persisted=persisted,
        )

    def _draw_special(self, prize_tier: int) -> int:
        config = self.config
        winners = self.ledger.special_winner_ids
        if config.special_pool_size - len(winners) <= 0:
            raise PoolExhausted(
                f"Every special participant has already won (tier {prize_tier}).",
                prize_tier,
            )
        # Special eligibility ignores the blacklist.
        return sample_until(
            self.rng,
            config.special_min_id,
            config.special_max_id,
            winners.__contains__,
            prize_tier,
        )

    def _draw_common(self, prize_tier: int) -> Tuple[int, bool]:
        config = self.config
        winners = self.ledger.common_winner_ids
        blacklist = self.blacklist.ids
        if self.available_count <= 0 or self.available_count - len(winners) <= 0:
            raise PoolExhausted(
                f"Every eligible participant has already won (tier {prize_tier}).",
                prize_tier,
            )

        # Re-read on every draw: operators edit this file during the event.
        must_win = filter_must_win(
            self.must_win.load(),
            config.common_min_id,
            config.common_max_id,
            (winners, blacklist),
        )
        if must_win:
            log.debug("Must-win candidates: %s", must_win)
            return self.rng.choice(must_win), True

        winner_id = sample_until(
            self.rng,
            config.common_min_id,
            config.common_max_id,
            lambda i: i in winners or i in blacklist,
            prize_tier,
        )
        return winner_id, False

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigError, ValidationError
from .project_constants import (
    BLACKLIST_FILE,
    CONFIG_FILE,
    DEFAULT_COMMON_MAX_ID,
    DEFAULT_COMMON_MIN_ID,
    DEFAULT_DATA_DIR,
    DEFAULT_SPECIAL_MAX_ID,
    DEFAULT_SPECIAL_MIN_ID,
    DEFAULT_SPECIAL_PRIZE_TIER,
    DRAW_RESULT_FILE,
    MAX_PRIZE_TIER,
    MIN_PRIZE_TIER,
    MUST_WIN_FILE,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    seed: Optional[int] = None

    @staticmethod
    def from_env(
        data_dir_override: str | None = None,
        seed_override: int | None = None,
    ) -> "Settings":
        load_dotenv()

        # CLI flags win over the environment.
        data_dir = data_dir_override or os.getenv("LOTTERY_DATA_DIR", "").strip()
        if not data_dir:
            data_dir = DEFAULT_DATA_DIR

        seed = seed_override
        if seed is None:
            env_seed = os.getenv("LOTTERY_SEED", "").strip()
            if env_seed:
                try:
                    seed = int(env_seed)
                except ValueError:
                    raise RuntimeError(
                        f"LOTTERY_SEED must be an integer, got {env_seed!r}."
                    )

        return Settings(data_dir=Path(data_dir), seed=seed)

    @property
    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILE

    @property
    def blacklist_path(self) -> Path:
        return self.data_dir / BLACKLIST_FILE

    @property
    def must_win_path(self) -> Path:
        return self.data_dir / MUST_WIN_FILE

    @property
    def ledger_path(self) -> Path:
        return self.data_dir / DRAW_RESULT_FILE


@dataclass(frozen=True)
class PoolConfig:
    common_min_id: int = DEFAULT_COMMON_MIN_ID
    common_max_id: int = DEFAULT_COMMON_MAX_ID
    special_min_id: int = DEFAULT_SPECIAL_MIN_ID
    special_max_id: int = DEFAULT_SPECIAL_MAX_ID
    special_prize_tier: int = DEFAULT_SPECIAL_PRIZE_TIER

    @property
    def common_pool_size(self) -> int:
        return _range_size(self.common_min_id, self.common_max_id)

    @property
    def special_pool_size(self) -> int:
        return _range_size(self.special_min_id, self.special_max_id)

    def in_common_range(self, participant_id: int) -> bool:
        return self.common_min_id <= participant_id <= self.common_max_id

    def in_special_range(self, participant_id: int) -> bool:
        return self.special_min_id <= participant_id <= self.special_max_id

    def to_json(self) -> Dict[str, int]:
        return {json_key: getattr(self, attr) for json_key, attr in _FIELD_MAP.items()}

    @staticmethod
    def from_json(data: Any) -> "PoolConfig":
        """
        Build a config from the decoded config.json object.

        Absent keys keep their defaults. Values of the wrong type raise
        ConfigError; an unknown special prize tier raises ValidationError.
        """
        if not isinstance(data, dict):
            raise ConfigError("config.json must contain a JSON object.")

        values: Dict[str, int] = {}
        for json_key, attr in _FIELD_MAP.items():
            if json_key not in data:
                continue
            raw = data[json_key]
            # bool is an int subclass; true/false in the file is a mistake
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise ConfigError(f"{json_key} must be an integer, got {raw!r}.")
            values[attr] = raw

        tier = values.get("special_prize_tier", DEFAULT_SPECIAL_PRIZE_TIER)
        if not MIN_PRIZE_TIER <= tier <= MAX_PRIZE_TIER:
            raise ValidationError(
                f"specialPrizeIndex {tier} is outside {MIN_PRIZE_TIER}-{MAX_PRIZE_TIER}."
            )
        return PoolConfig(**values)


_FIELD_MAP = {
    "commonMinPeopleIndex": "common_min_id",
    "commonMaxPeopleIndex": "common_max_id",
    "specialMinPeopleIndex": "special_min_id",
    "specialMaxPeopleIndex": "special_max_id",
    "specialPrizeIndex": "special_prize_tier",
}


def _range_size(min_id: int, max_id: int) -> int:
    if min_id > max_id:
        return 0
    return max_id - min_id + 1


class ConfigStore:
    """Loads and persists the pool definitions kept in config.json."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.config = PoolConfig()

    def load(self) -> PoolConfig:
        """
        Read config.json into ``self.config`` and return it.

        A missing file is created with the defaults. Anything unreadable is
        logged and replaced by the defaults; this never raises.
        """
        if not self.path.exists():
            self.config = PoolConfig()
            try:
                self.save(self.config)
                log.info("Config file not found, wrote defaults: %s", self.path)
            except OSError as e:
                log.error("Could not create default config %s: %s", self.path, e)
            return self.config

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            config = PoolConfig.from_json(data)
        except ValidationError as e:
            log.warning("%s Using special prize tier %d.", e, DEFAULT_SPECIAL_PRIZE_TIER)
            config = PoolConfig.from_json(
                {**data, "specialPrizeIndex": DEFAULT_SPECIAL_PRIZE_TIER}
            )
        except (OSError, ValueError, ConfigError) as e:
            log.error("Failed to read config %s: %s. Using defaults.", self.path, e)
            config = PoolConfig()

        self.config = config
        log.info(
            "Config loaded: common %d-%d, special %d-%d, special prize tier %d",
            config.common_min_id,
            config.common_max_id,
            config.special_min_id,
            config.special_max_id,
            config.special_prize_tier,
        )
        if config.common_pool_size == 0:
            log.error(
                "Config error: commonMinPeopleIndex > commonMaxPeopleIndex. "
                "Common prizes cannot be drawn; check %s.",
                self.path,
            )
        if config.special_pool_size == 0:
            log.error(
                "Config error: specialMinPeopleIndex > specialMaxPeopleIndex. "
                "The special prize cannot be drawn; check %s.",
                self.path,
            )
        return config

    def save(self, config: PoolConfig) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(config.to_json(), f, indent=2)
        self.config = config


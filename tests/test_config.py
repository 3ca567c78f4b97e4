from __future__ import annotations

import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from kiosk_lottery.config import ConfigStore, PoolConfig, Settings
from kiosk_lottery.errors import ConfigError, ValidationError


class PoolConfigTests(unittest.TestCase):
    def test_pool_sizes(self) -> None:
        config = PoolConfig(1, 100, 5, 9, 4)
        self.assertEqual(config.common_pool_size, 100)
        self.assertEqual(config.special_pool_size, 5)

    def test_inverted_range_has_no_participants(self) -> None:
        self.assertEqual(PoolConfig(common_min_id=10, common_max_id=9).common_pool_size, 0)

    def test_from_json_keeps_defaults_for_absent_keys(self) -> None:
        config = PoolConfig.from_json({"commonMaxPeopleIndex": 30})
        self.assertEqual(config, PoolConfig(common_max_id=30))

    def test_from_json_rejects_non_integers(self) -> None:
        with self.assertRaises(ConfigError):
            PoolConfig.from_json({"commonMinPeopleIndex": "1"})
        with self.assertRaises(ConfigError):
            PoolConfig.from_json({"specialPrizeIndex": True})
        with self.assertRaises(ConfigError):
            PoolConfig.from_json([1, 2, 3])

    def test_from_json_rejects_unknown_special_tier(self) -> None:
        with self.assertRaises(ValidationError):
            PoolConfig.from_json({"specialPrizeIndex": 5})

    def test_json_keys_round_trip(self) -> None:
        config = PoolConfig(3, 30, 7, 70, 1)
        self.assertEqual(
            config.to_json(),
            {
                "commonMinPeopleIndex": 3,
                "commonMaxPeopleIndex": 30,
                "specialMinPeopleIndex": 7,
                "specialMaxPeopleIndex": 70,
                "specialPrizeIndex": 1,
            },
        )
        self.assertEqual(PoolConfig.from_json(config.to_json()), config)


class ConfigStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "config.json"
        self.store = ConfigStore(self.path)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_file_is_created_with_defaults(self) -> None:
        config = self.store.load()
        self.assertEqual(config, PoolConfig())
        self.assertTrue(self.path.exists())
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data["commonMinPeopleIndex"], 1)
        self.assertEqual(data["commonMaxPeopleIndex"], 100)
        self.assertEqual(data["specialPrizeIndex"], 4)

    def test_corrupt_file_falls_back_to_defaults(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertLogs("kiosk_lottery.config", level="ERROR"):
            config = self.store.load()
        self.assertEqual(config, PoolConfig())
        # The broken file is left for the operator to fix.
        self.assertEqual(self.path.read_text(encoding="utf-8"), "{not json")

    def test_bad_special_tier_uses_default_tier_only(self) -> None:
        self.path.write_text(
            json.dumps({"commonMaxPeopleIndex": 20, "specialPrizeIndex": 9}),
            encoding="utf-8",
        )
        with self.assertLogs("kiosk_lottery.config", level="WARNING"):
            config = self.store.load()
        self.assertEqual(config.common_max_id, 20)
        self.assertEqual(config.special_prize_tier, 4)

    def test_load_replaces_config_but_not_store(self) -> None:
        self.store.save(PoolConfig(1, 5, 1, 2, 3))
        store_before = self.store
        self.assertEqual(self.store.load().special_prize_tier, 3)
        self.path.write_text(json.dumps({"specialPrizeIndex": 2}), encoding="utf-8")
        self.store.load()
        self.assertIs(self.store, store_before)
        self.assertEqual(self.store.config.special_prize_tier, 2)


class SettingsTests(unittest.TestCase):
    def test_overrides_win_over_environment(self) -> None:
        env = {"LOTTERY_DATA_DIR": "/srv/lottery", "LOTTERY_SEED": "5"}
        with mock.patch.dict(os.environ, env), mock.patch(
            "kiosk_lottery.config.load_dotenv"
        ):
            settings = Settings.from_env(data_dir_override="/tmp/x", seed_override=9)
        self.assertEqual(settings.data_dir, Path("/tmp/x"))
        self.assertEqual(settings.seed, 9)

    def test_reads_environment(self) -> None:
        env = {"LOTTERY_DATA_DIR": "/srv/lottery", "LOTTERY_SEED": "5"}
        with mock.patch.dict(os.environ, env), mock.patch(
            "kiosk_lottery.config.load_dotenv"
        ):
            settings = Settings.from_env()
        self.assertEqual(settings.data_dir, Path("/srv/lottery"))
        self.assertEqual(settings.seed, 5)
        self.assertEqual(settings.ledger_path, Path("/srv/lottery/draw_result.json"))

    def test_defaults_without_environment(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True), mock.patch(
            "kiosk_lottery.config.load_dotenv"
        ):
            settings = Settings.from_env()
        self.assertEqual(settings.data_dir, Path("data"))
        self.assertIsNone(settings.seed)

    def test_bad_seed_is_rejected(self) -> None:
        with mock.patch.dict(os.environ, {"LOTTERY_SEED": "abc"}), mock.patch(
            "kiosk_lottery.config.load_dotenv"
        ):
            with self.assertRaises(RuntimeError):
                Settings.from_env()

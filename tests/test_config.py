import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from retarget.config import ConfigError, RetargetConfig, load_config
from retarget.core.params import MAINNET, TESTNET


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.data_dir = Path(self.tmpdir.name)
        self.cfg_path = self.data_dir / "config.json"
        env = {key: value for key, value in os.environ.items() if not key.startswith("RETARGET_")}
        env["RETARGET_DATA"] = str(self.data_dir)
        self.env = mock.patch.dict(os.environ, env, clear=True)
        self.env.start()

    def tearDown(self) -> None:
        self.env.stop()
        self.tmpdir.cleanup()

    def _write(self, data: dict) -> None:
        self.cfg_path.write_text(json.dumps(data), encoding="utf-8")

    def test_defaults(self) -> None:
        config = load_config(self.cfg_path)
        self.assertEqual(config.network, "mainnet")
        self.assertEqual(config.data_dir, self.data_dir.resolve())
        self.assertIsNone(config.log_file)
        self.assertIs(config.network_params(), MAINNET)

    def test_file_and_env_merge(self) -> None:
        self._write({"network": "testnet", "log_level": "debug", "log_file": "~/retarget.log"})
        os.environ["RETARGET_LOG_LEVEL"] = "warning"
        config = load_config(self.cfg_path)
        self.assertIs(config.network_params(), TESTNET)
        self.assertEqual(config.log_level, "warning")
        self.assertEqual(config.log_file, Path("~/retarget.log").expanduser().resolve())

    def test_explicit_overrides_win(self) -> None:
        os.environ["RETARGET_NETWORK"] = "testnet"
        config = load_config(self.cfg_path, overrides={"network": "regtest"})
        self.assertEqual(config.network_params().name, "regtest")

    def test_consensus_overrides_require_opt_in(self) -> None:
        self._write({"consensus": {"averaging_window": 60}})
        self.assertEqual(load_config(self.cfg_path).network_params().averaging_window, 45)

        os.environ["RETARGET_CONSENSUS__ALLOW_OVERRIDES"] = "yes"
        os.environ["RETARGET_CONSENSUS__SOLVE_TIME_LIMITATION"] = "false"
        params = load_config(self.cfg_path).network_params()
        self.assertEqual(params.averaging_window, 60)
        self.assertEqual(params.adjust_weight, MAINNET.adjust_weight)
        self.assertFalse(params.solve_time_limitation)
        self.assertEqual(MAINNET.averaging_window, 45)

    def test_consensus_overrides_log_divergence_warning(self) -> None:
        config = RetargetConfig(data_dir=self.data_dir)
        config.consensus.allow_overrides = True
        config.consensus.averaging_window = 60
        with self.assertLogs("retarget.config", level="WARNING") as logs:
            params = config.network_params()
        self.assertEqual(params.averaging_window, 60)
        self.assertIn("may diverge from mainnet", logs.output[0])

    def test_preset_parameters_log_nothing(self) -> None:
        config = RetargetConfig(data_dir=self.data_dir)
        with self.assertNoLogs("retarget.config", level="WARNING"):
            config.network_params()

    def test_rejects_bad_values(self) -> None:
        for data in (
            {"network": "signet"},
            {"log_level": "loud"},
            {"unknown": 1},
            {"consensus": 5},
            {"consensus": {"averaging_window": "many"}},
            {"consensus": {"allow_overrides": "maybe"}},
            {"consensus": {"min_denominator": -1}},
        ):
            self._write(data)
            with self.subTest(data=data), self.assertRaises(ConfigError):
                load_config(self.cfg_path)

    def test_rejects_malformed_file(self) -> None:
        self.cfg_path.write_text("[1, 2", encoding="utf-8")
        with self.assertRaises(ConfigError):
            load_config(self.cfg_path)

    def test_to_dict(self) -> None:
        data = RetargetConfig(data_dir=self.data_dir).to_dict()
        self.assertEqual(data["data_dir"], str(self.data_dir))
        self.assertEqual(data["consensus"]["allow_overrides"], False)

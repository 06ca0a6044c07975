#!/usr/bin/env python3
"""Tests for configuration loading"""

import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from fpgen_etl.utils.config_manager import ConfigManager, get_dir
from fpgen_etl.utils.robot_list import DEFAULT_ROBOTS_LIST_URL


class TestConfigManager(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.config_dir = self.test_dir / "config"
        self.config_dir.mkdir()

        # Keep the process environment out of the loaded values
        self.env = patch.dict(os.environ, {}, clear=True)
        self.env.start()

    def tearDown(self):
        self.env.stop()
        if self.test_dir.exists():
            shutil.rmtree(self.test_dir)

    def write_env(self, name, lines):
        (self.config_dir / name).write_text("\n".join(lines) + "\n")

    def test_defaults(self):
        config = ConfigManager(self.config_dir)

        self.assertEqual(config.get("ARTIFACTS_DIR"), "artifacts")
        self.assertEqual(config.get("RESULTS_DIR"), "./artifacts/{version_id}/networks")
        self.assertEqual(config.get("ROBOTS_LIST_URL"), DEFAULT_ROBOTS_LIST_URL)
        self.assertEqual(config.get("ROBOTS_REQUEST_TIMEOUT"), 60.0)
        self.assertEqual(config.get("PROGRESS_LOG_INTERVAL"), 1000)
        self.assertEqual(config.get("LOG_LEVEL"), "INFO")

    def test_later_files_override_earlier_ones(self):
        self.write_env(".env.base", ["INPUT_DATASET=base.json", "LOG_LEVEL=WARNING"])
        self.write_env(".env.shared", ["INPUT_DATASET=shared.json"])
        self.write_env(".env.local", ["INPUT_DATASET=local.json", "PROGRESS_LOG_INTERVAL=50"])

        config = ConfigManager(self.config_dir)

        self.assertEqual(config.get("INPUT_DATASET"), "local.json")
        self.assertEqual(config.get("LOG_LEVEL"), "WARNING")
        self.assertEqual(config.get("PROGRESS_LOG_INTERVAL"), 50)

    def test_environment_wins_over_base_file(self):
        os.environ["NETWORK_STRUCTURES_DIR"] = "/opt/structures"
        self.write_env(".env.base", ["NETWORK_STRUCTURES_DIR=structures"])

        config = ConfigManager(self.config_dir)
        self.assertEqual(config.get("NETWORK_STRUCTURES_DIR"), "/opt/structures")

    def test_get_dir_substitutes_version(self):
        config = ConfigManager(self.config_dir).get_all()

        self.assertEqual(get_dir(config, "RESULTS_DIR", "v1"), Path("artifacts/v1/networks"))
        with self.assertRaises(ValueError):
            get_dir(config, "UNKNOWN_DIR", "v1")

    def test_get_dir_follows_overrides(self):
        config = {"RESULTS_DIR": "/data/{version_id}/out"}
        self.assertEqual(get_dir(config, "RESULTS_DIR", "v2"), Path("/data/v2/out"))

    def test_get_all_is_a_copy(self):
        config = ConfigManager(self.config_dir)
        values = config.get_all()
        values["LOG_LEVEL"] = "DEBUG"

        self.assertEqual(config.get("LOG_LEVEL"), "INFO")

    def test_save_run_config(self):
        config = ConfigManager(self.config_dir)
        overrides = {**config.get_all(), "INPUT_DATASET": "cli.json"}

        output_dir = self.test_dir / "artifacts" / "v1"
        config.save_run_config("v1", output_dir, overrides)

        with open(output_dir / "run_config.json") as f:
            saved = json.load(f)
        self.assertEqual(saved["version_id"], "v1")
        self.assertEqual(saved["config"]["INPUT_DATASET"], "cli.json")


if __name__ == '__main__':
    unittest.main()

import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

from fix_lfp import config


class TestConfig(unittest.TestCase):
    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            self.assertEqual(config.get_threshold(), 376)
            self.assertEqual(config.get_max_retries(), 5)
            self.assertEqual(config.get_base_delay(), 2.0)

    def test_environment_overrides(self):
        env = {"LFP_THRESHOLD": "250", "LFP_MAX_RETRIES": "3", "LFP_BASE_DELAY": "0.5"}
        with patch.dict("os.environ", env, clear=True):
            self.assertEqual(config.get_threshold(), 250)
            self.assertEqual(config.get_max_retries(), 3)
            self.assertEqual(config.get_base_delay(), 0.5)

    def test_bad_environment_value(self):
        with patch.dict("os.environ", {"LFP_THRESHOLD": "long"}, clear=True):
            with self.assertRaises(ValueError):
                config.get_threshold()

    def test_out_of_range_retry_environment(self):
        with patch.dict("os.environ", {"LFP_BASE_DELAY": "-1"}, clear=True):
            with self.assertRaises(ValueError):
                config.get_base_delay()
        with patch.dict("os.environ", {"LFP_MAX_RETRIES": "0"}, clear=True):
            with self.assertRaises(ValueError):
                config.get_max_retries()
        with patch.dict("os.environ", {"LFP_BASE_DELAY": "0"}, clear=True):
            self.assertEqual(config.get_base_delay(), 0.0)

    def test_validate_retry_settings(self):
        with self.assertRaises(ValueError):
            config.validate_retry_settings(0, 2.0)
        with self.assertRaises(ValueError):
            config.validate_retry_settings(5, -1.0)
        config.validate_retry_settings(1, 0)

    def test_relocation_root(self):
        with patch.dict("os.environ", {}, clear=True), \
             patch("fix_lfp.config.Path.home", return_value=Path("/home/user")):
            self.assertEqual(config.get_relocation_root(), Path("/home/user/LFP"))
        with patch.dict("os.environ", {"LFP_RELOCATION_ROOT": "/srv/lfp"}, clear=True):
            self.assertEqual(config.get_relocation_root(), Path("/srv/lfp"))

    def test_timestamp_suffix(self):
        self.assertEqual(config.timestamp_suffix(datetime(2026, 1, 2, 3, 4)), "010226-0304")


if __name__ == "__main__":
    unittest.main()

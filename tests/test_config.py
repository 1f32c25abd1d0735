"""Tests for the configuration module."""

import os
import tempfile
import unittest
from unittest.mock import patch

import yaml

from youtube_scraper.config import Config, RateLimitConfig, RetryConfig


class TestConfig(unittest.TestCase):
    """Test cases for the Config class."""

    def setUp(self):
        """Set up test environment."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.temp_dir.name, "config.yaml")
        self.env_path = os.path.join(self.temp_dir.name, ".env")

        self.sample_config = {
            "page_size": 50,
            "analysis_url": "http://analysis.local/analyze",
            "request_timeout_sec": 10,
            "unknown_key": "ignored",
            "retry": {"max_attempts": 5},
            "rate_limit": {"page_delay_sec": 0.5},
            "monitoring": {"enable_prometheus": True, "prometheus_port": 9100},
        }
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(self.sample_config, f)

        with open(self.env_path, "w", encoding="utf-8") as f:
            f.write("YOUTUBE_API_KEY=test_api_key\n")
            f.write("STORE_PATH=/tmp/yt/store.json\n")

        # load_dotenv writes into os.environ; keep it local to each test
        self.env_patcher = patch.dict(os.environ, {}, clear=False)
        self.env_patcher.start()
        for name in ("YOUTUBE_API_KEY", "ANALYSIS_URL", "STORE_PATH"):
            os.environ.pop(name, None)

    def tearDown(self):
        """Clean up test environment."""
        self.env_patcher.stop()
        self.temp_dir.cleanup()

    def test_load_from_files(self):
        config = Config.from_files(self.config_path, self.env_path)

        # Env values
        self.assertEqual(config.youtube_api_key, "test_api_key")
        self.assertEqual(config.store_path, "/tmp/yt/store.json")

        # YAML values
        self.assertEqual(config.page_size, 50)
        self.assertEqual(config.analysis_url, "http://analysis.local/analyze")
        self.assertEqual(config.request_timeout_sec, 10)
        self.assertFalse(hasattr(config, "unknown_key"))

        # Nested sections merge over defaults
        self.assertEqual(config.retry.max_attempts, 5)
        self.assertEqual(config.retry.base_delay_sec, RetryConfig().base_delay_sec)
        self.assertEqual(config.rate_limit.page_delay_sec, 0.5)
        self.assertEqual(config.rate_limit.max_requests_per_minute, RateLimitConfig().max_requests_per_minute)
        self.assertTrue(config.monitoring.enable_prometheus)
        self.assertEqual(config.monitoring.prometheus_port, 9100)

    def test_missing_config_file_uses_defaults(self):
        config = Config.from_files(os.path.join(self.temp_dir.name, "nope.yaml"), self.env_path)

        self.assertEqual(config.page_size, 100)
        self.assertEqual(config.retry.max_attempts, 3)
        self.assertEqual(config.retry.base_delay_sec, 1.0)
        self.assertEqual(config.validate(), [])

    def test_validate(self):
        config = Config()
        config.page_size = 0
        config.retry = RetryConfig(max_attempts=0, base_delay_sec=-1)
        config.rate_limit = RateLimitConfig(max_requests_per_minute=0, page_delay_sec=-1)
        config.request_timeout_sec = 0
        config.analysis_url = ""

        errors = config.validate()

        self.assertEqual(len(errors), 7)
        self.assertIn("page_size must be between 1 and 100", errors)
        self.assertIn("analysis_url must be set", errors)

    def test_page_size_upper_bound(self):
        config = Config()
        config.page_size = 101
        self.assertEqual(config.validate(), ["page_size must be between 1 and 100"])


if __name__ == "__main__":
    unittest.main()

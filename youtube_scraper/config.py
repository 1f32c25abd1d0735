"""Configuration handling for the YouTube comment scraper."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml
from dotenv import load_dotenv


@dataclass
class RetryConfig:
    """Retry configuration for remote requests."""

    max_attempts: int = 3
    base_delay_sec: float = 1.0


@dataclass
class RateLimitConfig:
    """Request pacing configuration."""

    max_requests_per_minute: int = 600
    page_delay_sec: float = 0.2  # pause between outer pages


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""

    enable_prometheus: bool = False
    prometheus_port: int = 8000


@dataclass
class Config:
    """Application configuration combining environment variables and YAML config."""

    # Only used to seed the credential store; the scraper itself reads the key from the store
    youtube_api_key: str = ""

    comment_threads_url: str = "https://www.googleapis.com/youtube/v3/commentThreads"
    comments_url: str = "https://www.googleapis.com/youtube/v3/comments"
    analysis_url: str = "http://127.0.0.1:8000/analyze"
    page_size: int = 100
    request_timeout_sec: float = 30.0
    store_path: str = "data/store.json"
    retry: RetryConfig = field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_files(cls, config_path: str, env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from YAML file and environment variables.

        Args:
            config_path: Path to YAML configuration file
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with merged configuration
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        config = cls()
        config.youtube_api_key = os.getenv("YOUTUBE_API_KEY", "")
        config.analysis_url = os.getenv("ANALYSIS_URL", config.analysis_url)
        config.store_path = os.getenv("STORE_PATH", config.store_path)

        if os.path.exists(config_path):
            with open(config_path, "r", encoding="utf-8") as file:
                yaml_config = yaml.safe_load(file)

            if yaml_config:
                nested = {
                    "retry": RetryConfig,
                    "rate_limit": RateLimitConfig,
                    "monitoring": MonitoringConfig,
                }

                # Update top-level attributes
                for key, value in yaml_config.items():
                    if key not in nested and hasattr(config, key):
                        setattr(config, key, value)

                # Merge nested sections key by key over their defaults
                for section, section_cls in nested.items():
                    if isinstance(yaml_config.get(section), dict):
                        section_config = section_cls()
                        for key, value in yaml_config[section].items():
                            if hasattr(section_config, key):
                                setattr(section_config, key, value)
                        setattr(config, section, section_config)

        return config

    def validate(self) -> List[str]:
        """
        Validate configuration and return a list of validation errors.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.comment_threads_url:
            errors.append("comment_threads_url must be set")
        if not self.comments_url:
            errors.append("comments_url must be set")
        if not self.analysis_url:
            errors.append("analysis_url must be set")

        # The Data API caps maxResults at 100
        if not 1 <= self.page_size <= 100:
            errors.append("page_size must be between 1 and 100")

        if self.retry.max_attempts < 1:
            errors.append("retry.max_attempts must be at least 1")
        if self.retry.base_delay_sec < 0:
            errors.append("retry.base_delay_sec must not be negative")

        if self.rate_limit.page_delay_sec < 0:
            errors.append("rate_limit.page_delay_sec must not be negative")
        if self.rate_limit.max_requests_per_minute <= 0:
            errors.append("rate_limit.max_requests_per_minute must be greater than 0")

        if self.request_timeout_sec <= 0:
            errors.append("request_timeout_sec must be greater than 0")

        return errors

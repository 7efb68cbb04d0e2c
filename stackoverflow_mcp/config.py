"""Configuration handling for the Stack Overflow MCP server."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_API_BASE_URL = "https://api.stackexchange.com/2.3"


@dataclass
class RateLimitConfig:
    """Rate limiting configuration."""

    max_requests_per_window: int = 30
    window_sec: float = 60.0
    backoff_sec: float = 2.0
    max_retries: int = 3
    max_local_wait_sec: float = 300.0


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""

    enable_prometheus: bool = False
    prometheus_port: int = 8000


@dataclass(frozen=True)
class Credentials:
    """Stack Exchange credentials loaded once at startup."""

    api_key: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def can_write(self) -> bool:
        """Writes need both the app key and a user access token."""
        return bool(self.api_key and self.access_token)

    def missing_for_write(self) -> List[str]:
        """
        List the environment variables a write operation still needs.

        Returns:
            Names of the missing variables (empty if writes are possible)
        """
        missing = []
        if not self.access_token:
            missing.append("STACKOVERFLOW_ACCESS_TOKEN")
        if not self.api_key:
            missing.append("STACKOVERFLOW_API_KEY")
        return missing


@dataclass
class Config:
    """Application configuration combining environment variables and YAML config."""

    credentials: Credentials = field(default_factory=Credentials)

    # YAML config values with defaults
    api_base_url: str = DEFAULT_API_BASE_URL
    site: str = "stackoverflow"
    request_timeout_sec: float = 30.0
    log_level: str = "INFO"
    log_file: Optional[str] = "logs/stackoverflow_mcp.log"
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_env(cls, env_path: Optional[str] = None) -> "Config":
        """
        Build a configuration from environment variables only.

        Args:
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with defaults and credentials from the environment
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        config = cls()
        config.credentials = Credentials(
            api_key=os.getenv("STACKOVERFLOW_API_KEY") or None,
            access_token=os.getenv("STACKOVERFLOW_ACCESS_TOKEN") or None,
        )
        return config

    @classmethod
    def from_files(cls, config_path: Optional[str], env_path: Optional[str] = None) -> "Config":
        """
        Load configuration from YAML file and environment variables.

        Args:
            config_path: Path to YAML configuration file (may be missing)
            env_path: Optional path to .env file (defaults to .env in current directory)

        Returns:
            Config instance with merged configuration
        """
        config = cls.from_env(env_path)

        if not config_path or not os.path.exists(config_path):
            return config

        with open(config_path, "r", encoding="utf-8") as file:
            yaml_config = yaml.safe_load(file)

        if not yaml_config:
            return config

        # Credentials only ever come from the environment
        for key, value in yaml_config.items():
            if key in ("rate_limit", "monitoring", "credentials"):
                continue
            if hasattr(config, key):
                setattr(config, key, value)

        if isinstance(yaml_config.get("rate_limit"), dict):
            rate_limit_config = RateLimitConfig()
            for key, value in yaml_config["rate_limit"].items():
                if hasattr(rate_limit_config, key):
                    setattr(rate_limit_config, key, value)
            config.rate_limit = rate_limit_config

        if isinstance(yaml_config.get("monitoring"), dict):
            monitoring_config = MonitoringConfig()
            for key, value in yaml_config["monitoring"].items():
                if hasattr(monitoring_config, key):
                    setattr(monitoring_config, key, value)
            config.monitoring = monitoring_config

        return config

    def validate(self) -> List[str]:
        """
        Validate configuration and return a list of validation errors.

        Missing credentials are not an error: read-only operation is valid.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not self.api_base_url:
            errors.append("api_base_url must not be empty")
        if not self.site:
            errors.append("site must not be empty")
        if self.request_timeout_sec <= 0:
            errors.append("request_timeout_sec must be greater than 0")

        if self.rate_limit.max_requests_per_window <= 0:
            errors.append("rate_limit.max_requests_per_window must be greater than 0")
        if self.rate_limit.window_sec <= 0:
            errors.append("rate_limit.window_sec must be greater than 0")
        if self.rate_limit.backoff_sec < 0:
            errors.append("rate_limit.backoff_sec must not be negative")
        if self.rate_limit.max_retries < 0:
            errors.append("rate_limit.max_retries must not be negative")
        if self.rate_limit.max_local_wait_sec < self.rate_limit.backoff_sec:
            errors.append("rate_limit.max_local_wait_sec must be at least backoff_sec")

        if self.monitoring.enable_prometheus and self.monitoring.prometheus_port <= 0:
            errors.append("monitoring.prometheus_port must be a positive integer")

        return errors

"""Configuration module for Recall.

This module provides configuration loading and profile management.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


@dataclass
class StorageConfig:
    """Local store configuration."""

    data_dir: str = "~/.recall"
    db_name: str = "recall_people.db"
    history_file: str = "question_history.json"
    notifications_file: str = "notifications.json"
    recordings_dir: str = "recordings"

    @property
    def base_path(self) -> Path:
        """Expanded data directory."""
        return Path(self.data_dir).expanduser()

    @property
    def db_path(self) -> Path:
        """Path to the SQLite database."""
        return self.base_path / self.db_name

    @property
    def history_path(self) -> Path:
        """Path to the question history file."""
        return self.base_path / self.history_file

    @property
    def notifications_path(self) -> Path:
        """Path to the local notifications file."""
        return self.base_path / self.notifications_file

    @property
    def recordings_path(self) -> Path:
        """Directory for captured audio."""
        return self.base_path / self.recordings_dir


@dataclass
class ApiConfig:
    """Recall backend API configuration."""

    base_url: str = "http://localhost:8787"
    timeout_seconds: float = 30.0
    token: str | None = None


@dataclass
class ExtractionConfig:
    """Fact extraction configuration."""

    provider: str = "api"
    claude_model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1024


@dataclass
class CaptureConfig:
    """Capture state machine configuration."""

    error_timeout_seconds: float | None = None


@dataclass
class PollerConfig:
    """Enrichment completion poller configuration."""

    interval_seconds: float = 1.5
    backoff_factor: float = 2.0
    max_interval_seconds: float = 30.0
    max_consecutive_failures: int = 5
    activity_window_seconds: float | None = None


@dataclass
class ReminderConfig:
    """Event reminder configuration."""

    hour: int = 19
    minute: int = 0
    notification_title: str = "Recall People"
    timezone: str | None = None


@dataclass
class HistoryConfig:
    """Question history configuration."""

    max_entries: int = 50
    answer_max_length: int = 150


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class FeatureFlags:
    """Feature switches resolved once at startup."""

    allowlisted_identities: set[str] = field(default_factory=set)
    admin_identity: str | None = None
    development_override: bool = False


@dataclass
class RecallConfig:
    """Main Recall configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    poller: PollerConfig = field(default_factory=PollerConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    features: FeatureFlags = field(default_factory=FeatureFlags)


class ConfigLoader(Protocol):
    """Protocol for configuration loading."""

    def load(self, path: Path) -> RecallConfig:
        """Load configuration from file path."""
        ...

    def load_profile(self, profile: str) -> RecallConfig:
        """Load configuration by profile name (dev, prod, test)."""
        ...

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        ...


# Public API
__all__ = [
    "ApiConfig",
    "CaptureConfig",
    "ConfigLoader",
    "ExtractionConfig",
    "FeatureFlags",
    "HistoryConfig",
    "LoggingConfig",
    "PollerConfig",
    "RecallConfig",
    "ReminderConfig",
    "StorageConfig",
]

"""YAML configuration loader with inheritance support.

Supports:
- Loading YAML config files
- Config inheritance via 'extends' key
- Deep merging of nested config
- Environment overrides applied once, at load time
"""

import os
from pathlib import Path
from typing import Any

import yaml

from . import (
    ApiConfig,
    CaptureConfig,
    ExtractionConfig,
    FeatureFlags,
    HistoryConfig,
    LoggingConfig,
    PollerConfig,
    RecallConfig,
    ReminderConfig,
    StorageConfig,
)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Values from override take precedence. Nested dicts are merged recursively.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_yaml_with_inheritance(path: Path) -> dict[str, Any]:
    """Load YAML file with inheritance support.

    If the file contains an 'extends' key, the base config is loaded first
    and merged with the current config.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    if "extends" in config:
        base_name = config.pop("extends")
        base_path = path.parent / base_name
        base_config = load_yaml_with_inheritance(base_path)
        config = deep_merge(base_config, config)

    return config


def apply_env_overrides(data: dict[str, Any], env: dict[str, str] | None = None) -> dict[str, Any]:
    """Overlay recognised environment variables onto raw config.

    Only RECALL_API_URL, RECALL_API_TOKEN and RECALL_ADMIN_IDENTITY are read.
    """
    env = dict(os.environ) if env is None else env
    recall_data = dict(data.get("recall", {}) or {})

    overrides: dict[str, Any] = {}
    if env.get("RECALL_API_URL", "").strip():
        overrides.setdefault("api", {})["base_url"] = env["RECALL_API_URL"].strip()
    if env.get("RECALL_API_TOKEN", "").strip():
        overrides.setdefault("api", {})["token"] = env["RECALL_API_TOKEN"].strip()
    if env.get("RECALL_ADMIN_IDENTITY", "").strip():
        overrides.setdefault("features", {})["admin_identity"] = env[
            "RECALL_ADMIN_IDENTITY"
        ].strip()

    return {**data, "recall": deep_merge(recall_data, overrides)}


def dict_to_config(data: dict[str, Any]) -> RecallConfig:
    """Convert raw dict to typed RecallConfig dataclass."""
    recall_data = data.get("recall", {}) or {}

    # Helper to safely get dict values (handles None from YAML)
    def safe_get(key: str) -> dict[str, Any]:
        value = recall_data.get(key, {})
        return value if value is not None else {}

    return RecallConfig(
        storage=StorageConfig(**safe_get("storage")),
        api=ApiConfig(**safe_get("api")),
        extraction=ExtractionConfig(**safe_get("extraction")),
        capture=CaptureConfig(**safe_get("capture")),
        poller=PollerConfig(**safe_get("poller")),
        reminders=ReminderConfig(**safe_get("reminders")),
        history=HistoryConfig(**safe_get("history")),
        logging=LoggingConfig(**safe_get("logging")),
        features=_parse_feature_flags(safe_get("features")),
    )


def _parse_feature_flags(data: dict[str, Any]) -> FeatureFlags:
    """Parse feature flags, normalising the allowlist to lowercase."""
    identities = data.get("allowlisted_identities") or []
    return FeatureFlags(
        allowlisted_identities={str(i).strip().lower() for i in identities if str(i).strip()},
        admin_identity=data.get("admin_identity") or None,
        development_override=bool(data.get("development_override", False)),
    )


class YAMLConfigLoader:
    """YAML configuration loader implementation."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize loader with optional config directory.

        Args:
            config_dir: Directory containing config files.
                        Defaults to 'config' relative to project root.
        """
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent.parent / "config"
        self._config_dir = config_dir

    def load(self, path: Path) -> RecallConfig:
        """Load configuration from file path.

        Args:
            path: Path to YAML config file

        Returns:
            Parsed RecallConfig
        """
        raw_config = load_yaml_with_inheritance(path)
        return dict_to_config(apply_env_overrides(raw_config))

    def load_profile(self, profile: str) -> RecallConfig:
        """Load configuration by profile name.

        Args:
            profile: Profile name (e.g., 'dev', 'prod')

        Returns:
            Parsed RecallConfig for the profile
        """
        config_path = self._config_dir / f"{profile}.yaml"
        return self.load(config_path)

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        return self._config_dir


def load_config(path: str | Path | None = None, profile: str | None = None) -> RecallConfig:
    """Load Recall configuration.

    Args:
        path: Direct path to config file (takes precedence)
        profile: Profile name ('dev', 'prod', 'test') if path not given

    Returns:
        Parsed RecallConfig

    Examples:
        >>> config = load_config(profile="dev")
        >>> config = load_config(path="/path/to/config.yaml")
    """
    loader = YAMLConfigLoader()

    if path is not None:
        return loader.load(Path(path))
    elif profile is not None:
        return loader.load_profile(profile)
    else:
        return loader.load_profile("dev")


__all__ = [
    "YAMLConfigLoader",
    "apply_env_overrides",
    "deep_merge",
    "dict_to_config",
    "load_config",
    "load_yaml_with_inheritance",
]

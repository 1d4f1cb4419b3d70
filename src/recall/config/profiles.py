"""Configuration profile management and feature gating.

Profiles are picked once at startup. Feature decisions read only the
resolved FeatureFlags, never the environment.
"""

import os
from enum import Enum
from pathlib import Path

from . import FeatureFlags


class Profile(Enum):
    """Available configuration profiles."""

    DEV = "dev"
    PROD = "prod"
    TEST = "test"


def detect_profile() -> Profile:
    """Detect appropriate configuration profile.

    Checks the RECALL_PROFILE environment variable, defaulting to dev.

    Returns:
        Profile enum value
    """
    env_profile = os.environ.get("RECALL_PROFILE", "").lower()
    profile_map = {
        "prod": Profile.PROD,
        "dev": Profile.DEV,
        "test": Profile.TEST,
    }
    return profile_map.get(env_profile, Profile.DEV)


def get_profile_path(profile: Profile | None = None, config_dir: Path | None = None) -> Path:
    """Get path to profile configuration file.

    Args:
        profile: Profile to use, or None to auto-detect
        config_dir: Configuration directory, or None for default

    Returns:
        Path to profile YAML file
    """
    if profile is None:
        profile = detect_profile()

    if config_dir is None:
        config_dir = Path(__file__).parent.parent.parent.parent / "config"

    return config_dir / f"{profile.value}.yaml"


def can_activate_pro(
    flags: FeatureFlags,
    identity: str | None,
    is_test_pro: bool = False,
) -> bool:
    """Check if an identity may manually activate Pro status.

    Allowed for the development override, the admin identity, allowlisted
    identities, and identities already marked as test Pro.

    Args:
        flags: Feature flags resolved at startup.
        identity: User identity (usually an email address).
        is_test_pro: Whether the backend already flagged the user.

    Returns:
        True if activation is allowed.
    """
    if flags.development_override:
        return True

    normalized = (identity or "").strip().lower()
    if normalized:
        if flags.admin_identity and normalized == flags.admin_identity.strip().lower():
            return True
        if normalized in flags.allowlisted_identities:
            return True

    return is_test_pro


__all__ = [
    "Profile",
    "can_activate_pro",
    "detect_profile",
    "get_profile_path",
]

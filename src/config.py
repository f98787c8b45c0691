"""Configuration management for The Janitor (Unity edition).

Loads environment variables and provides centralized config access.
"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Keep in sync with pyproject.toml
__version__ = "1.0.0"

USAGE_POLICIES = ("strict", "legacy")


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_path: Optional[Path] = None):
        """Initialize config by loading .env file.

        Args:
            env_path: Optional explicit .env location (defaults to project root)
        """
        if env_path is None:
            env_path = Path(__file__).parent.parent / ".env"
        load_dotenv(env_path)

        self._validate()

    def _validate(self):
        """Validate environment values that have a closed set of options.

        Raises:
            ValueError: If JANITOR_USAGE_POLICY or JANITOR_MAX_WORKERS is invalid
        """
        if self.usage_policy not in USAGE_POLICIES:
            raise ValueError(
                f"JANITOR_USAGE_POLICY must be one of {', '.join(USAGE_POLICIES)}, "
                f"got '{self.usage_policy}'."
            )
        if self.max_workers < 1:
            raise ValueError("JANITOR_MAX_WORKERS must be a positive integer.")

    @property
    def scene_dir(self) -> str:
        """Subdirectory of the project root that holds scene documents."""
        return os.getenv("JANITOR_SCENE_DIR", "Assets")

    @property
    def scene_extension(self) -> str:
        return os.getenv("JANITOR_SCENE_EXTENSION", ".unity")

    @property
    def script_extension(self) -> str:
        return os.getenv("JANITOR_SCRIPT_EXTENSION", ".cs")

    @property
    def sidecar_suffix(self) -> str:
        """Suffix appended to a script path to locate its metadata sidecar."""
        return os.getenv("JANITOR_SIDECAR_SUFFIX", ".meta")

    @property
    def base_types(self) -> list[str]:
        """Get the allow-list of recognized behaviour base types.

        Returns:
            List of type names matched by exact token against inheritance lists
        """
        raw = os.getenv("JANITOR_BASE_TYPES", "MonoBehaviour")
        return [name.strip() for name in raw.split(",") if name.strip()]

    @property
    def usage_policy(self) -> str:
        """Get the active usage comparison policy.

        Priority:
        1. JANITOR_USAGE_POLICY environment variable
        2. Fallback to 'strict'

        Returns:
            'strict' or 'legacy'
        """
        return os.getenv("JANITOR_USAGE_POLICY", "strict").strip().lower()

    @property
    def max_workers(self) -> int:
        raw = os.getenv("JANITOR_MAX_WORKERS")
        if raw:
            try:
                return int(raw)
            except ValueError:
                return 0
        return min(os.cpu_count() or 4, 8)

    @property
    def exclude_dirs(self) -> set[str]:
        """Directory names skipped while discovering files."""
        raw = os.getenv("JANITOR_EXCLUDE_DIRS", "")
        return {name.strip() for name in raw.split(",") if name.strip()}


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config():
    """Drop the cached singleton so the next get_config() re-reads the environment."""
    global _config
    _config = None

"""Shared fixtures: the sample Unity project and configuration isolation."""
from pathlib import Path

import pytest

from src.config import reset_config

FIXTURES_DIR = Path(__file__).parent / 'fixtures'
UNITY_PROJECT = FIXTURES_DIR / 'unity_project'


@pytest.fixture
def unity_project() -> Path:
    """The checked-in sample project."""
    return UNITY_PROJECT


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch):
    """Isolate every test from JANITOR_* variables and the config singleton."""
    for name in (
        'JANITOR_SCENE_DIR', 'JANITOR_SCENE_EXTENSION', 'JANITOR_SCRIPT_EXTENSION',
        'JANITOR_SIDECAR_SUFFIX', 'JANITOR_BASE_TYPES', 'JANITOR_USAGE_POLICY',
        'JANITOR_MAX_WORKERS', 'JANITOR_EXCLUDE_DIRS',
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()

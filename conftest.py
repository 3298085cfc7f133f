"""Pytest configuration and fixtures for azlaunch tests.

CRITICAL: Protects production configuration and real subscriptions from tests.
"""

import shutil
from pathlib import Path

import pytest


@pytest.fixture(scope="session", autouse=True)
def protect_production_config():
    """Protect ~/.azlaunch/config.toml from being modified by tests.

    Backs up the real config.toml before any tests run and restores it after
    all tests complete.
    """
    config_path = Path.home() / ".azlaunch" / "config.toml"
    backup_path = Path.home() / ".azlaunch" / ".config.toml.pytest-backup"

    config_existed = config_path.exists()
    if config_existed:
        shutil.copy2(config_path, backup_path)
        print(f"\n[PYTEST] Protected config.toml - backup at {backup_path}")

    yield

    if config_existed and backup_path.exists():
        shutil.copy2(backup_path, config_path)
        backup_path.unlink()
        print("\n[PYTEST] Restored config.toml from backup")
    elif backup_path.exists():
        backup_path.unlink()


@pytest.fixture(autouse=True)
def no_real_subscription(monkeypatch):
    """Remove SUBSCRIPTION_ID so no test can reach a real subscription by accident.

    Tests that need a subscription set it explicitly with monkeypatch.setenv.
    """
    monkeypatch.delenv("SUBSCRIPTION_ID", raising=False)

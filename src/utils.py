"""
Shared utility functions for Pocki.

Contains path helpers used across packages.
"""

import os
import sys
from pathlib import Path

ENV_HOME = "POCKI_HOME"


def get_app_dir() -> Path:
    """Get the application data directory."""
    if os.environ.get(ENV_HOME):
        app_dir = Path(os.environ[ENV_HOME])
    elif getattr(sys, 'frozen', False):
        # Running as compiled
        app_dir = Path(sys.executable).parent / "data"
    else:
        # Running as script
        app_dir = Path(__file__).parent.parent / "data"

    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_wallet_store_path() -> Path:
    """Get path to the wallet key-value store."""
    return get_app_dir() / "wallet.json"


def get_settings_path() -> Path:
    """Get path to settings file."""
    return get_app_dir() / "settings.json"


def get_logs_dir() -> Path:
    """Get the logs directory."""
    logs_dir = get_app_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir

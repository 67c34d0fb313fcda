"""File path resolution using platformdirs.

Persistent data (SQLite database, credential key) lives in the per-user
application data directory:
  macOS: ~/Library/Application Support/courier-bridge/
  Linux: ~/.local/share/courier-bridge/
  Windows: %LOCALAPPDATA%/courier-bridge/
"""

from pathlib import Path

import platformdirs

APP_NAME = "courier-bridge"


def get_data_dir() -> Path:
    """Return the directory for persistent data (DB, key file)."""
    return Path(platformdirs.user_data_dir(APP_NAME, appauthor=False))


def get_default_db_path() -> Path:
    """Return the default SQLite database file path, creating its directory."""
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "courier_bridge.db"

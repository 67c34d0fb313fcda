"""Tests for data file path resolution."""

import os
from pathlib import Path
from unittest.mock import patch


def test_get_data_dir_uses_platformdirs(tmp_path):
    from courier_bridge.utils import paths

    with patch.object(paths.platformdirs, "user_data_dir", return_value=str(tmp_path / "cb")) as mock_dir:
        result = paths.get_data_dir()
    mock_dir.assert_called_once_with("courier-bridge", appauthor=False)
    assert result == tmp_path / "cb"


def test_get_default_db_path_creates_directory(tmp_path):
    from courier_bridge.utils import paths

    data_dir = tmp_path / "data"
    with patch.object(paths, "get_data_dir", return_value=data_dir):
        result = paths.get_default_db_path()
    assert result == data_dir / "courier_bridge.db"
    assert data_dir.is_dir()


def test_database_url_env_takes_priority():
    from courier_bridge.db.connection import get_database_url

    with patch.dict(os.environ, {"DATABASE_URL": "sqlite:///custom/path.db"}):
        assert get_database_url() == "sqlite:///custom/path.db"


def test_db_path_env_is_converted_to_url():
    from courier_bridge.db.connection import get_database_url

    with patch.dict(os.environ, {"DATABASE_URL": "", "COURIER_BRIDGE_DB_PATH": "/tmp/cb.db"}):
        assert get_database_url() == "sqlite:////tmp/cb.db"


def test_default_database_url_uses_data_dir(tmp_path):
    from courier_bridge.db.connection import get_database_url
    from courier_bridge.utils import paths

    with patch.dict(os.environ, {"DATABASE_URL": "", "COURIER_BRIDGE_DB_PATH": ""}), \
            patch.object(paths, "get_data_dir", return_value=tmp_path):
        assert get_database_url() == f"sqlite:///{Path(tmp_path) / 'courier_bridge.db'}"

from datetime import datetime
from pathlib import Path

import pytest

from webmedia.config import load_settings


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in ("XMDS_URL", "SERVER_KEY", "HARDWARE_KEY", "CLIENT_VERSION", "LIBRARY_PATH", "LOGS_DIR", "USER_AGENT", "REQUEST_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_env_supplies_player_settings(clean_env, tmp_path):
    clean_env.setenv("XMDS_URL", "https://cms.example.com/xmds.php?v=3")
    clean_env.setenv("SERVER_KEY", "abc")
    clean_env.setenv("HARDWARE_KEY", "display-7")
    clean_env.setenv("LIBRARY_PATH", str(tmp_path / "lib"))
    settings = load_settings({"layout_id": "1", "region_id": "2", "media_id": "42", "logs_dir": str(tmp_path / "logs")})

    assert settings.player.xmds_url == "https://cms.example.com/xmds.php?v=3"
    assert settings.player.library_path == tmp_path / "lib"
    assert (tmp_path / "lib").is_dir()
    identity = settings.media.identity(settings.player)
    assert (identity.server_key, identity.hardware_key, identity.media_id) == ("abc", "display-7", "42")


def test_cli_values_win_over_env(clean_env, tmp_path):
    clean_env.setenv("SERVER_KEY", "from-env")
    settings = load_settings(
        {
            "layout_id": "1",
            "region_id": "2",
            "media_id": "42",
            "server_key": "from-cli",
            "library_path": str(tmp_path / "lib"),
            "logs_dir": str(tmp_path / "logs"),
        }
    )
    assert settings.player.server_key == "from-cli"


def test_media_options_build_core_values(clean_env, tmp_path):
    settings = load_settings(
        {
            "layout_id": "1",
            "region_id": "2",
            "media_id": "42",
            "update_interval": 15,
            "layout_modified": "2024-05-01 10:12:33",
            "width": 1920,
            "background_color": "#111111",
            "background_image": "",
            "options": {"backgroundColor": "#ff00ff"},
            "library_path": str(tmp_path / "lib"),
            "logs_dir": str(tmp_path / "logs"),
        }
    )
    policy = settings.media.cache_policy(settings.player)
    assert policy.file_path == Path(tmp_path / "lib" / "42.htm")
    assert policy.update_interval_minutes == 15
    assert policy.layout_modified_at == datetime(2024, 5, 1, 10, 12, 33)

    presentation = settings.media.presentation()
    assert presentation.background_color == "#ff00ff"
    assert presentation.background_image is None
    assert presentation.viewport_width == 1920


def test_native_mode_path(clean_env, tmp_path):
    settings = load_settings(
        {
            "layout_id": "1",
            "region_id": "2",
            "media_id": "42",
            "mode_id": "1",
            "uri": "http%3A%2F%2Fexample.com%2Fsigns%2Bboard",
            "library_path": str(tmp_path / "lib"),
            "logs_dir": str(tmp_path / "logs"),
        }
    )
    assert settings.media.native_open is True
    assert settings.media.native_path == "http://example.com/signs board"


def test_invalid_configuration_is_reported(clean_env, tmp_path):
    with pytest.raises(RuntimeError, match="Invalid configuration"):
        load_settings({"layout_id": "1", "region_id": "2", "media_id": "42", "width": "wide", "logs_dir": str(tmp_path / "logs")})


def test_log_level_normalised_and_checked(clean_env, tmp_path):
    clean_env.setenv("LOG_LEVEL", "debug")
    base = {"layout_id": "1", "region_id": "2", "media_id": "42", "logs_dir": str(tmp_path / "logs")}
    assert load_settings(base).player.log_level == "DEBUG"

    clean_env.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(RuntimeError, match="Invalid configuration"):
        load_settings(base)

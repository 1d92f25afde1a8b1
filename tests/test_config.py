# Tests for path layout and runtime settings
import logging
from pathlib import Path

from claude_mcp_manager.config import (
    APP_NAME,
    CONFIG_DIR,
    TARGET_CONFIG,
    Paths,
    ensure_config_dir,
    get_app_name,
    get_log_level,
    get_paths,
)


def test_default_paths():
    """Test defaults without overrides."""
    paths = get_paths({})

    assert paths.config_dir == CONFIG_DIR
    assert paths.target_config == TARGET_CONFIG
    assert paths.target_config.name == "claude_desktop_config.json"
    assert CONFIG_DIR.parts[-2:] == (".config", "claude")


def test_path_overrides(tmp_path: Path):
    paths = get_paths(
        {
            "CLAUDE_MCP_CONFIG_DIR": str(tmp_path / "cfg"),
            "CLAUDE_MCP_TARGET_CONFIG": str(tmp_path / "target.json"),
        }
    )

    assert paths.config_dir == tmp_path / "cfg"
    assert paths.target_config == tmp_path / "target.json"


def test_derived_paths(tmp_path: Path):
    paths = Paths(config_dir=tmp_path, target_config=tmp_path / "t.json")

    assert paths.servers_dir == tmp_path / "servers"
    assert paths.profiles_dir == tmp_path / "profiles"
    assert paths.last_file == tmp_path / "last.json"
    assert paths.loaded_file == tmp_path / "loaded"
    assert paths.dotenv_file == tmp_path / ".env"
    assert paths.log_file.name == "claude-mcp-manager.log"


def test_ensure_config_dir(tmp_path: Path):
    paths = Paths(config_dir=tmp_path / "a" / "b", target_config=tmp_path / "t.json")

    result = ensure_config_dir(paths)

    assert result.is_dir()
    assert paths.servers_dir.is_dir()
    assert paths.profiles_dir.is_dir()


def test_app_name():
    assert get_app_name({}) == APP_NAME
    assert get_app_name({"CLAUDE_MCP_APP_NAME": "Claude Beta"}) == "Claude Beta"


def test_log_level_parsing():
    assert get_log_level({}) == (logging.INFO, None)
    assert get_log_level({"MCP_LOG_LEVEL": "debug"}) == (logging.DEBUG, None)
    assert get_log_level({"MCP_LOG_LEVEL": "WARN"}) == (logging.WARNING, None)
    assert get_log_level({"MCP_LOG_LEVEL": "ERROR"}) == (logging.ERROR, None)


def test_invalid_log_level_defaults_to_info():
    level, warning = get_log_level({"MCP_LOG_LEVEL": "LOUD"})

    assert level == logging.INFO
    assert warning is not None
    assert "LOUD" in warning

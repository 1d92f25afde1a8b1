# Path layout and runtime settings for claude-mcp-manager
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

# ABOUTME: Default config directory in user's home
CONFIG_DIR = Path.home() / ".config" / "claude"

# ABOUTME: Claude desktop config file on macOS
TARGET_CONFIG = Path.home() / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json"

# ABOUTME: Process name of the managed desktop application
APP_NAME = "Claude"

# ABOUTME: The only key of the target config this tool reads or writes
MANAGED_KEY = "mcpServers"

# ABOUTME: Profile activated when no name is given
DEFAULT_PROFILE = "default"

LOG_FILE_NAME = "claude-mcp-manager.log"

# ABOUTME: Accepted MCP_LOG_LEVEL values, WARN kept for compatibility
LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


@dataclass(frozen=True)
class Paths:
    """All filesystem locations the tool touches.

    ABOUTME: Injected everywhere so tests can point at tmp_path
    """
    config_dir: Path
    target_config: Path

    @property
    def servers_dir(self) -> Path:
        return self.config_dir / "servers"

    @property
    def profiles_dir(self) -> Path:
        return self.config_dir / "profiles"

    @property
    def last_file(self) -> Path:
        return self.config_dir / "last.json"

    @property
    def loaded_file(self) -> Path:
        return self.config_dir / "loaded"

    @property
    def dotenv_file(self) -> Path:
        return self.config_dir / ".env"

    @property
    def backup_dir(self) -> Path:
        return self.config_dir / "backups"

    @property
    def log_file(self) -> Path:
        return self.config_dir / LOG_FILE_NAME


def get_paths(environ: Mapping[str, str] | None = None) -> Paths:
    """Return the path layout, honouring environment overrides.

    ABOUTME: CLAUDE_MCP_CONFIG_DIR overrides ~/.config/claude
    ABOUTME: CLAUDE_MCP_TARGET_CONFIG overrides the Claude desktop config path

    Args:
        environ: Mapping to read overrides from (defaults to os.environ)

    Returns:
        Paths for this invocation
    """
    env = os.environ if environ is None else environ

    config_dir = Path(env["CLAUDE_MCP_CONFIG_DIR"]).expanduser() if env.get("CLAUDE_MCP_CONFIG_DIR") else CONFIG_DIR
    target = Path(env["CLAUDE_MCP_TARGET_CONFIG"]).expanduser() if env.get("CLAUDE_MCP_TARGET_CONFIG") else TARGET_CONFIG

    return Paths(config_dir=config_dir, target_config=target)


def get_app_name(environ: Mapping[str, str] | None = None) -> str:
    """Return the managed application name (CLAUDE_MCP_APP_NAME or 'Claude')."""
    env = os.environ if environ is None else environ
    return env.get("CLAUDE_MCP_APP_NAME") or APP_NAME


def get_log_level(environ: Mapping[str, str] | None = None) -> tuple[int, str | None]:
    """Resolve MCP_LOG_LEVEL to a logging level.

    Returns:
        Tuple of (level, warning message or None when the value was invalid)
    """
    env = os.environ if environ is None else environ
    raw = env.get("MCP_LOG_LEVEL")
    if not raw:
        return logging.INFO, None

    level = LOG_LEVELS.get(raw.strip().upper())
    if level is None:
        return logging.INFO, f"Invalid MCP_LOG_LEVEL '{raw}'. Defaulting to INFO."
    return level, None


def ensure_config_dir(paths: Paths) -> Path:
    """Create the config directory tree if it doesn't exist.

    ABOUTME: Creates servers/ and profiles/ along with the root

    Returns:
        Path to config directory (guaranteed to exist)
    """
    paths.config_dir.mkdir(parents=True, exist_ok=True)
    paths.servers_dir.mkdir(exist_ok=True)
    paths.profiles_dir.mkdir(exist_ok=True)
    return paths.config_dir

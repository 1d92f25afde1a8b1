# claude-mcp-manager - MCP server profile switcher for Claude desktop
# ABOUTME: Version information
__version__ = "0.2.0"

# ABOUTME: Export core data models and errors
from claude_mcp_manager.activation import ActivationEngine
from claude_mcp_manager.config import Paths, get_paths
from claude_mcp_manager.errors import (
    InvalidJSON,
    InvalidName,
    ManagerError,
    MissingServer,
    NotFound,
    PlaceholderUnresolved,
    ProcessControlFailure,
    TargetMissing,
)
from claude_mcp_manager.models import ActivationResult, ControlResult, Profile, ProcessManager

# ABOUTME: Export the building blocks used by the activation engine
from claude_mcp_manager.placeholders import load_dotenv_file, resolve_placeholders
from claude_mcp_manager.process import ProcessController, SystemProcessManager
from claude_mcp_manager.store import ProfileStore, read_json, write_json

__all__ = [
    "__version__",
    "ActivationEngine",
    "ActivationResult",
    "ControlResult",
    "Paths",
    "Profile",
    "ProcessController",
    "ProcessManager",
    "ProfileStore",
    "SystemProcessManager",
    "get_paths",
    "load_dotenv_file",
    "read_json",
    "resolve_placeholders",
    "write_json",
    "InvalidJSON",
    "InvalidName",
    "ManagerError",
    "MissingServer",
    "NotFound",
    "PlaceholderUnresolved",
    "ProcessControlFailure",
    "TargetMissing",
]

# Core data models for claude-mcp-manager
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Protocol, runtime_checkable

# ABOUTME: Read-only snapshot of environment variables passed into resolution
Environment = Mapping[str, str]

# ABOUTME: JSON object describing one server, stored verbatim under mcpServers
ServerDefinition = dict

ActivationStatus = Literal["activated", "refreshed", "already_active"]

# ABOUTME: Reserved name for the pre-activation snapshot
LAST = "last"


@dataclass
class Profile:
    """Named, ordered list of server references.

    ABOUTME: Order matters, later duplicates overwrite earlier ones on merge
    """
    name: str
    servers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[str]]:
        return {"servers": list(self.servers)}


@dataclass
class ActivationResult:
    """Report from a single activation.

    ABOUTME: Warnings are non-fatal problems (placeholders, process control)
    """
    profile: str
    loaded_name: str
    status: ActivationStatus
    server_names: list[str] = field(default_factory=list)
    snapshot_saved: bool = False
    backup_path: Path | None = None
    restarted: bool = False
    warnings: list[str] = field(default_factory=list)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


@dataclass(frozen=True)
class ControlResult:
    """Outcome of a terminate or launch request."""
    success: bool
    message: str = ""


@runtime_checkable
class ProcessManager(Protocol):
    """Protocol isolating platform process handling.

    ABOUTME: SystemProcessManager is the real implementation
    ABOUTME: Tests substitute an in-memory fake
    """

    def list_pids(self, name: str) -> list[int]:
        """Return pids of processes whose name is exactly `name`."""
        ...

    def signal(self, pid: int, sig: int) -> None:
        """Deliver `sig` to `pid`.

        Raises ProcessLookupError if the process is gone, OSError otherwise.
        """
        ...

    def open_app(self, name: str) -> None:
        """Launch the application; raises ProcessControlFailure on failure."""
        ...

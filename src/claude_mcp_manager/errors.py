# Error kinds for claude-mcp-manager
# ABOUTME: Structural errors abort an activation before anything is written
# ABOUTME: Placeholder problems are warnings, never exceptions
from pathlib import Path


class ManagerError(Exception):
    """Base class for all claude-mcp-manager errors."""


class NotFound(ManagerError):
    """A profile, server definition or document does not exist."""

    def __init__(self, kind: str, name: str, path: Path | None = None) -> None:
        self.kind = kind
        self.name = name
        self.path = path
        super().__init__(f"{kind.capitalize()} '{name}' not found" + (f" ({path})" if path else ""))


class InvalidJSON(ManagerError):
    """A document exists but is not valid JSON (or has the wrong shape)."""

    def __init__(self, path: Path | str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid JSON in {path}: {detail}")


class InvalidName(ManagerError, ValueError):
    """A profile or server name that cannot be used as a file stem."""

    def __init__(self, kind: str, name: str, message: str | None = None) -> None:
        self.kind = kind
        self.name = name
        super().__init__(message or f"Invalid {kind} name: '{name}'")


class MissingServer(ManagerError):
    """A profile references a server that is absent or invalid.

    ABOUTME: Raised for the first offending server; the whole activation aborts
    """

    def __init__(self, name: str, reason: str = "") -> None:
        self.name = name
        self.reason = reason
        message = f"Server '{name}' referenced by profile is missing or invalid"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class TargetMissing(ManagerError):
    """The managed application's config file does not exist yet."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(
            f"Target config not found: {path}. Make sure the application is installed and has run once."
        )


class ProcessControlFailure(ManagerError):
    """Terminating or launching the managed application failed."""


class PlaceholderUnresolved(UserWarning):
    """A placeholder had no value and was replaced with an empty string."""

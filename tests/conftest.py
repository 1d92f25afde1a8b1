# ABOUTME: Shared fixtures for claude-mcp-manager tests
# ABOUTME: Everything points at tmp_path; processes are faked in memory
import json
import logging
import signal
from pathlib import Path
from typing import Any

import pytest

from claude_mcp_manager.activation import ActivationEngine
from claude_mcp_manager.config import Paths
from claude_mcp_manager.errors import ProcessControlFailure
from claude_mcp_manager.process import ProcessController
from claude_mcp_manager.store import ProfileStore


class FakeProcessManager:
    """In-memory ProcessManager.

    `stubborn` processes ignore SIGTERM; `unkillable` ones reject SIGKILL.
    """

    def __init__(self, processes: dict[int, str] | None = None) -> None:
        self.processes: dict[int, str] = dict(processes or {})
        self.stubborn: set[int] = set()
        self.unkillable: set[int] = set()
        self.signals: list[tuple[int, int]] = []
        self.opened: list[str] = []
        self.open_fails = False
        self._next_pid = 1000

    def list_pids(self, name: str) -> list[int]:
        return [pid for pid, proc_name in self.processes.items() if proc_name == name]

    def signal(self, pid: int, sig: int) -> None:
        if pid not in self.processes:
            raise ProcessLookupError(pid)
        if sig == signal.SIGKILL and pid in self.unkillable:
            raise PermissionError(f"cannot kill {pid}")
        self.signals.append((pid, sig))
        if sig == signal.SIGKILL or pid not in self.stubborn:
            del self.processes[pid]

    def open_app(self, name: str) -> None:
        if self.open_fails:
            raise ProcessControlFailure(f"Unable to find application named '{name}'")
        self.opened.append(name)
        self._next_pid += 1
        self.processes[self._next_pid] = name


def write_json_file(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))


@pytest.fixture
def paths(tmp_path: Path) -> Paths:
    return Paths(
        config_dir=tmp_path / "config",
        target_config=tmp_path / "app" / "claude_desktop_config.json",
    )


@pytest.fixture
def store(paths: Paths) -> ProfileStore:
    profile_store = ProfileStore(paths)
    profile_store.ensure_layout()
    return profile_store


@pytest.fixture
def fake_processes() -> FakeProcessManager:
    return FakeProcessManager()


@pytest.fixture
def controller(fake_processes: FakeProcessManager) -> ProcessController:
    return ProcessController(fake_processes, poll_interval=0, sleep=lambda _: None)


@pytest.fixture
def engine(store: ProfileStore, controller: ProcessController) -> ActivationEngine:
    return ActivationEngine(
        store,
        controller=controller,
        environment={},
        dotenv_values={},
    )


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo configure_logging() between tests."""
    yield
    logger = logging.getLogger("claude_mcp_manager")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)

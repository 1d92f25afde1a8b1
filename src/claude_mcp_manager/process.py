# Process control for the managed desktop application
# ABOUTME: Find, terminate and launch the application by process name
# ABOUTME: Failures are reported as ControlResult, never raised to the caller
import logging
import signal
import subprocess
import time
from collections.abc import Callable

import psutil

from claude_mcp_manager.errors import ProcessControlFailure
from claude_mcp_manager.models import ControlResult, ProcessManager

logger = logging.getLogger(__name__)

# ABOUTME: Bounded wait for graceful shutdown, 5 polls half a second apart
POLL_INTERVAL = 0.5
MAX_POLLS = 5


class SystemProcessManager:
    """ProcessManager backed by psutil and macOS `open -a`.

    ABOUTME: Matches processes by exact name, like `pgrep -x`
    """

    def list_pids(self, name: str) -> list[int]:
        pids: list[int] = []
        for proc in psutil.process_iter(["name"]):
            try:
                if proc.info.get("name") == name:
                    pids.append(proc.pid)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return pids

    def signal(self, pid: int, sig: int) -> None:
        try:
            psutil.Process(pid).send_signal(sig)
        except psutil.NoSuchProcess as e:
            raise ProcessLookupError(f"No such process: {pid}") from e
        except psutil.AccessDenied as e:
            raise PermissionError(f"Not permitted to signal process {pid}") from e

    def open_app(self, name: str) -> None:
        try:
            subprocess.run(["open", "-a", name], check=True, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise ProcessControlFailure("'open' command not available (macOS only)") from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip() or f"exit code {e.returncode}"
            raise ProcessControlFailure(f"open -a {name} failed: {detail}") from e


class ProcessController:
    """Terminate/launch/restart sequence for one application.

    ABOUTME: Sleep is injectable so tests don't actually wait
    """

    def __init__(
        self,
        manager: ProcessManager | None = None,
        poll_interval: float = POLL_INTERVAL,
        max_polls: int = MAX_POLLS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.manager = manager if manager is not None else SystemProcessManager()
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._sleep = sleep

    def is_running(self, app_name: str) -> bool:
        running = bool(self.manager.list_pids(app_name))
        logger.debug(f"{app_name} process {'found' if running else 'not found'}")
        return running

    def _signal_all(self, pids: list[int], sig: int) -> list[int]:
        """Send `sig` to each pid; return the pids it could not be delivered to."""
        failed: list[int] = []
        for pid in pids:
            try:
                self.manager.signal(pid, sig)
            except ProcessLookupError:
                # Already gone
                continue
            except OSError as e:
                logger.warning(f"Failed to send signal {sig} to PID {pid}: {e}")
                failed.append(pid)
        return failed

    def terminate(self, app_name: str) -> ControlResult:
        """Stop every process named `app_name`.

        ABOUTME: SIGTERM first, poll up to max_polls, then SIGKILL
        ABOUTME: Only a SIGKILL that cannot be delivered counts as failure
        """
        pids = self.manager.list_pids(app_name)
        if not pids:
            logger.info(f"{app_name} process not running, no need to kill.")
            return ControlResult(True, f"{app_name} is not running")

        logger.debug(f"Found {app_name} PID(s): {pids}. Sending TERM signal.")
        self._signal_all(pids, signal.SIGTERM)

        for attempt in range(self.max_polls):
            if not self.is_running(app_name):
                logger.info(f"{app_name} terminated gracefully.")
                return ControlResult(True, f"{app_name} terminated")
            self._sleep(self.poll_interval)
            logger.debug(f"Still waiting for {app_name} to exit... ({attempt + 1}/{self.max_polls})")

        remaining = self.manager.list_pids(app_name)
        if not remaining:
            logger.info(f"{app_name} terminated gracefully.")
            return ControlResult(True, f"{app_name} terminated")

        logger.warning(f"{app_name} did not terminate gracefully. Sending KILL signal.")
        failed = self._signal_all(remaining, signal.SIGKILL)
        if failed:
            message = (
                f"Failed to send KILL signal to {app_name} PID(s): "
                f"{', '.join(str(pid) for pid in failed)}. Manual intervention might be required."
            )
            logger.error(message)
            return ControlResult(False, message)

        logger.info(f"{app_name} terminated forcefully (KILL signal).")
        return ControlResult(True, f"{app_name} terminated forcefully")

    def launch(self, app_name: str) -> ControlResult:
        """Start the application; a no-op if it is already running."""
        if self.is_running(app_name):
            return ControlResult(True, f"{app_name} is already running")

        try:
            self.manager.open_app(app_name)
        except (OSError, ProcessControlFailure) as e:
            message = f"Failed to start {app_name}: {e}"
            logger.error(message)
            return ControlResult(False, message)

        logger.info(f"{app_name} started.")
        return ControlResult(True, f"{app_name} started")

    def restart(self, app_name: str) -> list[str]:
        """Terminate then launch, always attempting the launch.

        Returns:
            Warning messages; empty when both steps succeeded
        """
        problems: list[str] = []

        stopped = self.terminate(app_name)
        if not stopped.success:
            problems.append(stopped.message)

        started = self.launch(app_name)
        if not started.success:
            problems.append(started.message)

        return problems

# Profile activation: assemble, resolve, write, restart
import json
import logging
import os
import warnings
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from claude_mcp_manager.config import APP_NAME, DEFAULT_PROFILE, MANAGED_KEY
from claude_mcp_manager.errors import (
    InvalidJSON,
    InvalidName,
    ManagerError,
    MissingServer,
    NotFound,
    PlaceholderUnresolved,
)
from claude_mcp_manager.models import LAST, ActivationResult, Profile
from claude_mcp_manager.placeholders import load_dotenv_file, resolve_placeholders
from claude_mcp_manager.process import ProcessController
from claude_mcp_manager.store import ProfileStore, validate_name
from claude_mcp_manager.utils import create_backup

logger = logging.getLogger(__name__)


def canonical(servers: Mapping[str, Any]) -> str:
    """Compact, order-preserving serialization used for content comparison.

    Raises:
        ValueError: For NaN or Infinity, which cannot be written back as JSON
    """
    return json.dumps(servers, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


class ActivationEngine:
    """Swaps profiles into the target config's mcpServers block.

    ABOUTME: Every read, validation and placeholder resolution happens before the first write
    ABOUTME: Structural errors propagate; placeholder and process problems become warnings
    """

    def __init__(
        self,
        store: ProfileStore,
        controller: ProcessController | None = None,
        environment: Mapping[str, str] | None = None,
        app_name: str = APP_NAME,
        dotenv_values: Mapping[str, str] | None = None,
        backup_dir: Path | None = None,
    ) -> None:
        self.store = store
        self.controller = controller if controller is not None else ProcessController()
        self.environment = dict(os.environ) if environment is None else environment
        self.app_name = app_name
        self._dotenv_values = dotenv_values
        self.backup_dir = backup_dir

    @property
    def dotenv_values(self) -> Mapping[str, str]:
        if self._dotenv_values is None:
            self._dotenv_values = load_dotenv_file(self.store.paths.dotenv_file)
        return self._dotenv_values

    def assemble(self, server_names: list[str]) -> dict[str, Any]:
        """Build an mcpServers object from server definitions, in list order.

        ABOUTME: Later duplicates overwrite earlier ones

        Raises:
            MissingServer: For the first server that is absent or invalid
        """
        servers: dict[str, Any] = {}
        for name in server_names:
            try:
                servers[name] = self.store.load_server_definition(name)
            except (NotFound, InvalidJSON, InvalidName) as e:
                raise MissingServer(name, str(e)) from e
        return servers

    def resolve(self, servers: dict[str, Any], record: bool = True) -> tuple[dict[str, Any], list[str]]:
        """Run servers through the placeholder resolver.

        Returns:
            Tuple of (resolved servers, placeholder warning messages)
        """
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", PlaceholderUnresolved)
            text = resolve_placeholders(json.dumps(servers), self.environment, self.dotenv_values)

        messages: list[str] = []
        for warning in caught:
            if issubclass(warning.category, PlaceholderUnresolved):
                messages.append(str(warning.message))
            else:
                warnings.warn_explicit(warning.message, warning.category, warning.filename, warning.lineno)

        if record:
            for message in messages:
                logger.warning(message)

        return json.loads(text), messages

    def resolve_profile(self, name: str, record: bool = True) -> tuple[dict[str, Any], list[str]]:
        """Load, assemble and resolve a named profile."""
        return self.resolve(self.assemble(self.store.load_profile(name)), record=record)

    def match_snapshot(self, servers: Mapping[str, Any]) -> str | None:
        """Find the first named profile whose resolved servers equal `servers`.

        ABOUTME: Profiles that fail to load are skipped
        ABOUTME: Two profiles with the same server set both match; the first in sorted order wins
        """
        wanted = canonical(servers)
        for name in self.store.list_profiles():
            try:
                candidate, _ = self.resolve_profile(name, record=False)
            except ManagerError as e:
                logger.debug(f"Skipping profile '{name}' while matching snapshot: {e}")
                continue
            if canonical(candidate) == wanted:
                return name
        return None

    def _load_source(self, name: str) -> tuple[dict[str, Any], Path]:
        if name == LAST:
            snapshot = self.store.read_last_snapshot()
            if snapshot is None:
                raise NotFound("snapshot", LAST, self.store.paths.last_file)
            return snapshot, self.store.paths.last_file

        server_names = self.store.load_profile(name)
        return self.assemble(server_names), self.store.profile_path(name)

    def activate(self, profile_name: str | None = None) -> ActivationResult:
        """Apply a profile (or `last`) to the target config and restart the app.

        ABOUTME: Skips everything when the profile is already active and unchanged
        ABOUTME: Refreshes without touching last.json when only the profile file is newer

        Args:
            profile_name: Profile to activate, `last`, or None for `default`

        Returns:
            ActivationResult describing what happened

        Raises:
            NotFound: Profile or snapshot does not exist
            InvalidJSON: Profile, snapshot or target is malformed
            MissingServer: Profile references an absent or invalid server
            TargetMissing: Target config does not exist
            InvalidName: Profile name is not a plain file stem
        """
        name = profile_name or DEFAULT_PROFILE
        is_last = name == LAST
        if not is_last:
            validate_name(name, "profile")
        logger.info(f"Activating '{name}'")

        servers, source_path = self._load_source(name)
        resolved, placeholder_warnings = self.resolve(servers)
        current = self.store.read_target_servers()

        loaded_name = name
        if is_last:
            matched = self.match_snapshot(resolved)
            if matched:
                logger.info(f"Last configuration matched profile '{matched}'")
                loaded_name = matched
            else:
                logger.info("Could not find a named profile matching last.json")

        result = ActivationResult(
            profile=name,
            loaded_name=loaded_name,
            status="activated",
            server_names=list(resolved),
            warnings=list(placeholder_warnings),
        )

        same_content = canonical(current) == canonical(resolved)
        marker_time = self.store.marker_mtime()
        marker_fresh = marker_time is not None and marker_time >= source_path.stat().st_mtime

        if same_content and marker_fresh and self.store.read_loaded_marker() == loaded_name:
            logger.info(f"Already using configuration matching '{loaded_name}'")
            result.status = "already_active"
            launched = self.controller.launch(self.app_name)
            if not launched.success:
                result.add_warning(launched.message)
            return result

        update_last = not is_last
        if same_content and not marker_fresh:
            logger.info(f"Updating to newer version of configuration '{name}'")
            result.status = "refreshed"
            update_last = False

        if update_last:
            self.store.write_last_snapshot(current)
            result.snapshot_saved = True

        if self.backup_dir is not None:
            try:
                result.backup_path = create_backup(self.store.paths.target_config, self.backup_dir)
            except OSError as e:
                message = f"Could not back up {self.store.paths.target_config}: {e}"
                logger.warning(message)
                result.add_warning(message)

        self.store.write_target_servers(resolved)
        self.store.write_loaded_marker(loaded_name)
        logger.info(f"Switched {MANAGED_KEY} to '{loaded_name}' ({len(resolved)} server(s))")

        problems = self.controller.restart(self.app_name)
        for problem in problems:
            logger.warning(problem)
            result.add_warning(problem)
        result.restarted = not problems

        return result

    def extract_servers(self, overwrite: bool = False) -> list[str]:
        """Copy each server in the target's mcpServers into servers/<name>.json.

        Args:
            overwrite: Replace existing server definitions

        Returns:
            Names of the server definitions written
        """
        written: list[str] = []
        for name, definition in self.store.read_target_servers().items():
            if not isinstance(definition, dict):
                logger.warning(f"Skipping server '{name}': definition is not a JSON object")
                continue
            try:
                validate_name(name, "server")
            except InvalidName as e:
                logger.warning(f"Skipping server: {e}")
                continue
            if self.store.server_exists(name) and not overwrite:
                logger.info(f"Server '{name}' already exists, keeping it")
                continue
            self.store.save_server_definition(name, definition)
            written.append(name)
        return written

    def bootstrap_default(self) -> Profile | None:
        """First-run setup: turn the current mcpServers into the `default` profile.

        ABOUTME: Does nothing if `default` exists or the target has no mcpServers object
        ABOUTME: Existing server definitions are not overwritten

        Returns:
            The created profile, or None if nothing was done
        """
        if self.store.profile_exists(DEFAULT_PROFILE):
            return None

        try:
            document = self.store.read_target()
        except ManagerError as e:
            logger.debug(f"Skipping first-run setup: {e}")
            return None

        servers = document.get(MANAGED_KEY)
        if not isinstance(servers, dict):
            logger.warning(f"Target config is missing the '{MANAGED_KEY}' key; cannot create '{DEFAULT_PROFILE}'")
            return None

        self.store.ensure_layout()
        self.extract_servers(overwrite=False)
        defined = set(self.store.list_servers())
        profile = Profile(name=DEFAULT_PROFILE, servers=[n for n in servers if n in defined])
        self.store.save_profile(profile)
        self.store.write_loaded_marker(DEFAULT_PROFILE)
        logger.info(f"Saved current {MANAGED_KEY} as profile '{DEFAULT_PROFILE}'")
        return profile

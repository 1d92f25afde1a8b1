# Profile store: servers, profiles, snapshot, marker and target config on disk
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, cast

from claude_mcp_manager.config import MANAGED_KEY, Paths, ensure_config_dir
from claude_mcp_manager.errors import InvalidJSON, InvalidName, NotFound, TargetMissing
from claude_mcp_manager.models import LAST, Profile

logger = logging.getLogger(__name__)

_WHITESPACE = " \t\n\r"


def read_json(path: Path, kind: str = "file") -> Any:
    """Read JSON file with error handling.

    ABOUTME: Raises NotFound if file doesn't exist
    ABOUTME: Raises InvalidJSON (carrying the path) for malformed content
    """
    if not path.is_file():
        raise NotFound(kind, path.stem, path)

    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidJSON(path, str(e)) from e


def read_json_object(path: Path, kind: str = "file") -> dict[str, Any]:
    """Read a JSON file that must contain an object."""
    data = read_json(path, kind)
    if not isinstance(data, dict):
        raise InvalidJSON(path, f"expected a JSON object, got {type(data).__name__}")
    return cast(dict[str, Any], data)


def write_json(path: Path, content: Any) -> None:
    """Write JSON file atomically.

    ABOUTME: Uses 2-space indentation and keeps key order
    ABOUTME: NaN and Infinity are refused before anything touches the disk

    Raises:
        ValueError: If `content` holds a float that has no JSON representation
    """
    text = json.dumps(content, indent=2, ensure_ascii=False, allow_nan=False)
    write_text_atomic(path, text + "\n")


def write_text_atomic(path: Path, text: str) -> None:
    """Write a text file atomically.

    ABOUTME: Writes to a temp file in the same directory, then renames over the destination
    ABOUTME: A crash mid-write leaves the original untouched; an existing file keeps its mode
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        if path.exists():
            os.chmod(tmp_name, path.stat().st_mode & 0o777)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _skip_whitespace(text: str, index: int) -> int:
    while index < len(text) and text[index] in _WHITESPACE:
        index += 1
    return index


def replace_managed_value(text: str, servers: dict[str, Any], path: Path | str = "<target>") -> str:
    """Return `text` with only the top-level mcpServers value swapped for `servers`.

    ABOUTME: Every byte outside that value is kept, so numbers like 1.50 or 1e999 survive untouched
    ABOUTME: A missing key is appended as the last member of the object

    Raises:
        InvalidJSON: If `text` is not a JSON object
        ValueError: If `servers` holds NaN or Infinity
    """
    rendered = json.dumps(servers, indent=2, ensure_ascii=False, allow_nan=False).replace("\n", "\n  ")
    decoder = json.JSONDecoder()

    span: tuple[int, int] | None = None
    last_end: int | None = None
    try:
        index = _skip_whitespace(text, 0)
        if text[index:index + 1] != "{":
            raise InvalidJSON(path, "expected a JSON object")
        index = _skip_whitespace(text, index + 1)
        while text[index:index + 1] != "}":
            if text[index:index + 1] != '"':
                raise InvalidJSON(path, f"expected a key at offset {index}")
            key, index = decoder.raw_decode(text, index)
            index = _skip_whitespace(text, index)
            if text[index:index + 1] != ":":
                raise InvalidJSON(path, f"expected ':' at offset {index}")
            start = _skip_whitespace(text, index + 1)
            _, end = decoder.raw_decode(text, start)
            # Duplicate keys: the last one wins, as with json.loads
            if key == MANAGED_KEY:
                span = (start, end)
            last_end = end
            index = _skip_whitespace(text, end)
            if text[index:index + 1] == ",":
                index = _skip_whitespace(text, index + 1)
            elif text[index:index + 1] != "}":
                raise InvalidJSON(path, f"expected ',' or '}}' at offset {index}")
    except json.JSONDecodeError as e:
        raise InvalidJSON(path, str(e)) from e

    if span is not None:
        start, end = span
        return text[:start] + rendered + text[end:]

    member = f'"{MANAGED_KEY}": {rendered}'
    if last_end is None:
        return f"{text[:index]}\n  {member}\n{text[index:]}"
    return f"{text[:last_end]},\n  {member}{text[last_end:]}"


def _list_names(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return sorted(
        entry.stem
        for entry in directory.iterdir()
        if entry.is_file() and entry.suffix == ".json" and entry.stem != LAST and not entry.stem.startswith(".")
    )


def validate_name(name: str, kind: str) -> str:
    """Reject names that cannot be used as a file stem."""
    if not name or name.startswith(".") or "/" in name or "\\" in name:
        raise InvalidName(kind, name)
    if name == LAST:
        raise InvalidName(kind, name, f"'{LAST}' is reserved and cannot be used as a {kind} name")
    return name


class ProfileStore:
    """Access to everything under the config directory plus the target config.

    ABOUTME: The single seam for file I/O; takes a Paths layout so tests use tmp_path
    ABOUTME: All writes go through write_json (temp file + rename)
    """

    def __init__(self, paths: Paths) -> None:
        self.paths = paths

    def ensure_layout(self) -> None:
        ensure_config_dir(self.paths)

    # --- servers ---

    def server_path(self, name: str) -> Path:
        """Location of servers/<name>.json; rejects names that would escape the directory."""
        validate_name(name, "server")
        return self.paths.servers_dir / f"{name}.json"

    def list_servers(self) -> list[str]:
        """Server definition names, sorted, excluding non-.json files."""
        return _list_names(self.paths.servers_dir)

    def server_exists(self, name: str) -> bool:
        return self.server_path(name).is_file()

    def load_server_definition(self, name: str) -> dict[str, Any]:
        """Load one server definition.

        Raises:
            NotFound: If servers/<name>.json doesn't exist
            InvalidJSON: If the file is not a JSON object
        """
        return read_json_object(self.server_path(name), "server")

    def save_server_definition(self, name: str, definition: dict[str, Any]) -> Path:
        path = self.server_path(name)
        if not isinstance(definition, dict):
            raise InvalidJSON(path, "server definition must be a JSON object")
        write_json(path, definition)
        logger.info(f"Saved server definition '{name}' to {path}")
        return path

    def delete_server_definition(self, name: str) -> None:
        path = self.server_path(name)
        if not path.is_file():
            raise NotFound("server", name, path)
        path.unlink()
        logger.info(f"Removed server definition '{name}'")

    # --- profiles ---

    def profile_path(self, name: str) -> Path:
        validate_name(name, "profile")
        return self.paths.profiles_dir / f"{name}.json"

    def list_profiles(self) -> list[str]:
        """Profile names, sorted, excluding non-.json files and 'last'."""
        return _list_names(self.paths.profiles_dir)

    def profile_exists(self, name: str) -> bool:
        return self.profile_path(name).is_file()

    def load_profile(self, name: str) -> list[str]:
        """Return the ordered server names of a profile.

        Raises:
            InvalidName: If `name` is reserved or would escape the profiles directory
            NotFound: If the profile doesn't exist
            InvalidJSON: If the document is malformed or 'servers' is missing or not a list of strings
        """
        path = self.profile_path(name)
        data = read_json_object(path, "profile")

        if "servers" not in data:
            raise InvalidJSON(path, "missing 'servers' list")
        servers = data["servers"]
        if not isinstance(servers, list) or not all(isinstance(s, str) for s in servers):
            raise InvalidJSON(path, "'servers' must be a list of server names")
        return list(servers)

    def get_profile(self, name: str) -> Profile:
        return Profile(name=name, servers=self.load_profile(name))

    def save_profile(self, profile: Profile) -> Path:
        path = self.profile_path(profile.name)
        write_json(path, profile.to_dict())
        logger.info(f"Saved profile '{profile.name}' ({len(profile.servers)} server(s))")
        return path

    def delete_profile(self, name: str) -> None:
        path = self.profile_path(name)
        if not path.is_file():
            raise NotFound("profile", name, path)
        path.unlink()
        logger.info(f"Deleted profile '{name}'")

    def copy_profile(self, source: str, destination: str) -> Profile:
        """Copy a profile under a new name. Fails if the destination exists."""
        if self.profile_exists(destination):
            raise ValueError(f"Profile '{destination}' already exists")
        profile = Profile(name=destination, servers=self.load_profile(source))
        self.save_profile(profile)
        return profile

    def add_to_profile(self, name: str, servers: list[str]) -> Profile:
        """Append servers to a profile, skipping ones already listed."""
        profile = self.get_profile(name)
        for server in servers:
            if server not in profile.servers:
                profile.servers.append(server)
        self.save_profile(profile)
        return profile

    def remove_from_profile(self, name: str, servers: list[str]) -> Profile:
        """Remove every occurrence of the given servers from a profile."""
        profile = self.get_profile(name)
        profile.servers = [s for s in profile.servers if s not in servers]
        self.save_profile(profile)
        return profile

    def profiles_using(self, server: str) -> list[str]:
        """Names of profiles that reference `server`; unreadable profiles are skipped."""
        users: list[str] = []
        for name in self.list_profiles():
            try:
                if server in self.load_profile(name):
                    users.append(name)
            except (NotFound, InvalidJSON, InvalidName):
                continue
        return users

    # --- loaded marker ---

    def read_loaded_marker(self) -> str | None:
        path = self.paths.loaded_file
        if not path.is_file():
            return None
        name = path.read_text(encoding="utf-8").strip()
        return name or None

    def write_loaded_marker(self, name: str) -> None:
        write_text_atomic(self.paths.loaded_file, f"{name}\n")
        logger.debug(f"Loaded marker set to '{name}'")

    def marker_mtime(self) -> float | None:
        path = self.paths.loaded_file
        return path.stat().st_mtime if path.is_file() else None

    # --- last snapshot ---

    def read_last_snapshot(self) -> dict[str, Any] | None:
        """Return the snapshot's mcpServers block, or None if there is no snapshot.

        Raises:
            InvalidJSON: If last.json exists but has no mcpServers object
        """
        path = self.paths.last_file
        if not path.is_file():
            return None
        data = read_json_object(path, "snapshot")
        servers = data.get(MANAGED_KEY)
        if not isinstance(servers, dict):
            raise InvalidJSON(path, f"missing '{MANAGED_KEY}' object")
        return cast(dict[str, Any], servers)

    def write_last_snapshot(self, servers: dict[str, Any]) -> None:
        write_json(self.paths.last_file, {MANAGED_KEY: servers})
        logger.info(f"Saved current {MANAGED_KEY} to {self.paths.last_file.name}")

    # --- target config ---

    def read_target(self) -> dict[str, Any]:
        """Read the managed application's config.

        Raises:
            TargetMissing: If the file doesn't exist
            InvalidJSON: If it isn't a JSON object
        """
        path = self.paths.target_config
        if not path.is_file():
            raise TargetMissing(path)
        return read_json_object(path, "target config")

    def read_target_servers(self) -> dict[str, Any]:
        """Current mcpServers block; an absent key reads as an empty object."""
        servers = self.read_target().get(MANAGED_KEY)
        if servers is None:
            return {}
        if not isinstance(servers, dict):
            raise InvalidJSON(self.paths.target_config, f"'{MANAGED_KEY}' is not an object")
        return cast(dict[str, Any], servers)

    def write_target_servers(self, servers: dict[str, Any]) -> None:
        """Replace only mcpServers in the target config.

        ABOUTME: Splices the new value into the file text; every other byte is kept

        Raises:
            TargetMissing: If the target config doesn't exist
            InvalidJSON: If it isn't a JSON object
            ValueError: If `servers` holds NaN or Infinity
        """
        path = self.paths.target_config
        self.read_target()
        text = path.read_text(encoding="utf-8")
        write_text_atomic(path, replace_managed_value(text, servers, path))
        logger.info(f"Updated {MANAGED_KEY} in {self.paths.target_config}")

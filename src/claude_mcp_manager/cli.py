# CLI interface for claude-mcp-manager
import argparse
import json
import logging
import os
import shlex
import subprocess
import sys
from pathlib import Path

from claude_mcp_manager import __version__
from claude_mcp_manager.activation import ActivationEngine
from claude_mcp_manager.config import DEFAULT_PROFILE, get_app_name, get_log_level, get_paths
from claude_mcp_manager.errors import InvalidJSON, ManagerError, MissingServer, NotFound, TargetMissing
from claude_mcp_manager.logging_setup import (
    configure_logging,
    print_bold,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from claude_mcp_manager.models import LAST, Profile
from claude_mcp_manager.store import ProfileStore, read_json

logger = logging.getLogger(__name__)

PROG = "claude-mcp-manager"

# ABOUTME: Exit codes
# 0 = success, 1 = completed with warnings, 2 = config error, 3 = fatal
EXIT_SUCCESS = 0
EXIT_PARTIAL = 1
EXIT_CONFIG_ERROR = 2
EXIT_FATAL = 3

# ABOUTME: First arguments that are commands; anything else is a profile name
COMMANDS = {"activate", "last", "status", "server", "profile", "help", "version"}


def _store(args: argparse.Namespace) -> ProfileStore:
    store = ProfileStore(args.paths)
    store.ensure_layout()
    return store


def _engine(args: argparse.Namespace, store: ProfileStore) -> ActivationEngine:
    return ActivationEngine(
        store,
        app_name=get_app_name(),
        backup_dir=args.paths.backup_dir,
    )


def _fail(message: str) -> int:
    """Print and log a structural error."""
    logger.error(message)
    print_error(message)
    return EXIT_CONFIG_ERROR


def _print_names(title: str, names: list[str], current: str | None = None) -> None:
    print_bold(title)
    if not names:
        print("  (none)")
    for name in names:
        marker = " (loaded)" if name == current else ""
        print(f"  {name}{marker}")


def _parse_pairs(raw: list[str] | None) -> dict[str, str]:
    """Parse repeated KEY=VALUE options. Values are taken verbatim, commas included."""
    pairs: dict[str, str] = {}
    for pair in raw or []:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected KEY=VALUE, got '{pair}'")
        pairs[key.strip()] = value
    return pairs


def _open_editor(path: Path) -> int:
    """Open `path` in $VISUAL / $EDITOR (default vi) and wait for it to exit."""
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    try:
        completed = subprocess.run([*shlex.split(editor), str(path)])
    except OSError as e:
        print_error(f"Could not start editor '{editor}': {e}")
        return EXIT_FATAL
    return completed.returncode


def _edit_json(path: Path, kind: str, name: str) -> int:
    if not path.is_file():
        return _fail(f"{kind.capitalize()} '{name}' not found")

    status = _open_editor(path)
    if status != 0:
        print_warning(f"Editor exited with status {status}")

    try:
        read_json(path, kind)
    except InvalidJSON as e:
        return _fail(f"{e}. Fix the file and try again.")

    print_success(f"{kind.capitalize()} '{name}' is valid JSON.")
    return EXIT_SUCCESS


# --- activation ---


def cmd_activate(args: argparse.Namespace) -> int:
    """Execute activate command.

    ABOUTME: Runs first-run setup, then activates the requested profile
    ABOUTME: Structural errors list what is available and return EXIT_CONFIG_ERROR
    """
    store = _store(args)
    engine = _engine(args, store)

    created = engine.bootstrap_default()
    if created is not None:
        print_success(f"First run: saved current servers as profile '{created.name}'")

    name = args.name or DEFAULT_PROFILE
    if not args.name:
        print_info(f"No profile specified, using '{DEFAULT_PROFILE}'.")

    try:
        result = engine.activate(name)
    except NotFound as e:
        if name == LAST:
            _fail("No previous configuration (last.json) found.")
        else:
            _fail(str(e))
        _print_names("Available profiles:", store.list_profiles(), store.read_loaded_marker())
        return EXIT_CONFIG_ERROR
    except MissingServer as e:
        _fail(str(e))
        _print_names("Available servers:", store.list_servers())
        return EXIT_CONFIG_ERROR
    except (TargetMissing, InvalidJSON) as e:
        return _fail(str(e))

    for warning in result.warnings:
        print_warning(warning)

    if result.status == "already_active":
        print_info(f"Already using configuration '{result.loaded_name}'. No changes needed.")
    else:
        if result.snapshot_saved:
            print_info("Saved previous servers to last.json")
        if name == LAST:
            print_info(f"Restored last configuration (loaded: {result.loaded_name})")
        verb = "Refreshed" if result.status == "refreshed" else "Switched to"
        print_success(f"{verb} '{result.loaded_name}' ({len(result.server_names)} server(s)).")

    return EXIT_PARTIAL if result.warnings else EXIT_SUCCESS


def cmd_last(args: argparse.Namespace) -> int:
    args.name = LAST
    return cmd_activate(args)


def cmd_status(args: argparse.Namespace) -> int:
    """Show the loaded profile and what is available."""
    store = _store(args)
    current = store.read_loaded_marker()

    _print_names("Available profiles:", store.list_profiles(), current)
    if store.paths.last_file.is_file():
        print(f"  {LAST} (previous configuration)")
    print()
    if current:
        print_bold(f"Currently loaded: {current}")
    else:
        print(f"(No configuration currently loaded according to {store.paths.loaded_file})")
    return EXIT_SUCCESS


# --- server commands ---


def cmd_server_list(args: argparse.Namespace) -> int:
    store = _store(args)
    _print_names(f"Servers in {store.paths.servers_dir}:", store.list_servers())
    return EXIT_SUCCESS


def cmd_server_show(args: argparse.Namespace) -> int:
    store = _store(args)
    definition = store.load_server_definition(args.name)
    print(json.dumps(definition, indent=2, ensure_ascii=False))
    users = store.profiles_using(args.name)
    if users:
        print()
        print(f"Used by: {', '.join(users)}")
    return EXIT_SUCCESS


def cmd_server_add(args: argparse.Namespace) -> int:
    """Execute server add command.

    ABOUTME: Takes either a full --json definition or --command/--args/--env
    ABOUTME: Env values may be placeholders such as {{ENV:API_KEY}}
    """
    store = _store(args)

    if store.server_exists(args.name) and not args.force:
        return _fail(f"Server '{args.name}' already exists. Use --force to replace it.")

    if args.json:
        try:
            definition = json.loads(args.json)
        except json.JSONDecodeError as e:
            return _fail(f"Invalid JSON for server '{args.name}': {e}")
        if not isinstance(definition, dict):
            return _fail("Server definition must be a JSON object")
    elif args.command:
        definition = {"command": args.command}
        definition["args"] = [a.strip() for a in args.args.split(",")] if args.args else []
        env = _parse_pairs(args.env)
        if env:
            definition["env"] = env
    else:
        return _fail("Provide either --json or --command")

    path = store.save_server_definition(args.name, definition)
    print_success(f"Server '{args.name}' saved to {path}")
    return EXIT_SUCCESS


def cmd_server_edit(args: argparse.Namespace) -> int:
    store = _store(args)
    return _edit_json(store.server_path(args.name), "server", args.name)


def cmd_server_remove(args: argparse.Namespace) -> int:
    store = _store(args)
    users = store.profiles_using(args.name)
    if users and not args.force:
        return _fail(
            f"Server '{args.name}' is used by profile(s): {', '.join(users)}. Use --force to remove anyway."
        )
    store.delete_server_definition(args.name)
    if users:
        print_warning(f"Profiles still referencing '{args.name}': {', '.join(users)}")
    print_success(f"Server '{args.name}' removed.")
    return EXIT_SUCCESS


def cmd_server_extract(args: argparse.Namespace) -> int:
    """Copy servers from the target config into the server directory."""
    store = _store(args)
    written = _engine(args, store).extract_servers(overwrite=args.overwrite)
    if written:
        print_success(f"Extracted {len(written)} server(s): {', '.join(written)}")
    else:
        print_info("No new servers to extract.")
    return EXIT_SUCCESS


# --- profile commands ---


def cmd_profile_list(args: argparse.Namespace) -> int:
    store = _store(args)
    _print_names("Available profiles:", store.list_profiles(), store.read_loaded_marker())
    return EXIT_SUCCESS


def cmd_profile_show(args: argparse.Namespace) -> int:
    store = _store(args)
    servers = store.load_profile(args.name)
    print_bold(f"Profile '{args.name}':")
    if not servers:
        print("  (no servers)")
    for server in servers:
        missing = "" if store.server_exists(server) else " (missing)"
        print(f"  {server}{missing}")
    return EXIT_SUCCESS


def _warn_unknown(store: ProfileStore, servers: list[str]) -> None:
    for server in servers:
        if not store.server_exists(server):
            print_warning(f"Server '{server}' is not defined yet")


def cmd_profile_create(args: argparse.Namespace) -> int:
    store = _store(args)
    if store.profile_exists(args.name):
        return _fail(f"Profile '{args.name}' already exists")
    _warn_unknown(store, args.servers)
    store.save_profile(Profile(name=args.name, servers=list(args.servers)))
    print_success(f"Profile '{args.name}' created with {len(args.servers)} server(s).")
    return EXIT_SUCCESS


def cmd_profile_copy(args: argparse.Namespace) -> int:
    store = _store(args)
    store.copy_profile(args.source, args.destination)
    print_success(f"Profile '{args.source}' copied to '{args.destination}'.")
    return EXIT_SUCCESS


def cmd_profile_edit(args: argparse.Namespace) -> int:
    store = _store(args)
    return _edit_json(store.profile_path(args.name), "profile", args.name)


def cmd_profile_add(args: argparse.Namespace) -> int:
    store = _store(args)
    _warn_unknown(store, args.servers)
    profile = store.add_to_profile(args.name, args.servers)
    print_success(f"Profile '{args.name}' now has: {', '.join(profile.servers)}")
    return EXIT_SUCCESS


def cmd_profile_remove(args: argparse.Namespace) -> int:
    store = _store(args)
    profile = store.remove_from_profile(args.name, args.servers)
    remaining = ", ".join(profile.servers) or "(no servers)"
    print_success(f"Profile '{args.name}' now has: {remaining}")
    return EXIT_SUCCESS


def cmd_profile_delete(args: argparse.Namespace) -> int:
    store = _store(args)
    store.delete_profile(args.name)
    if store.read_loaded_marker() == args.name:
        print_warning(f"'{args.name}' was the loaded profile; its servers stay active until you switch.")
    print_success(f"Profile '{args.name}' deleted.")
    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Switch Claude desktop MCP server profiles",
        epilog=f"Run '{PROG} <profile>' to activate a profile.",
    )
    parser.add_argument("--version", "-V", action="version", version=f"{PROG} v{__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    activate_parser = subparsers.add_parser("activate", help="Activate a profile (default: 'default')")
    activate_parser.add_argument("name", nargs="?", help="Profile name")
    activate_parser.set_defaults(func=cmd_activate)

    subparsers.add_parser("last", help="Restore the servers active before the last switch").set_defaults(
        func=cmd_last
    )
    subparsers.add_parser("status", help="Show the loaded profile").set_defaults(func=cmd_status)
    subparsers.add_parser("help", help="Show this help")
    subparsers.add_parser("version", help="Show version")

    # server commands
    server_parser = subparsers.add_parser("server", help="Manage server definitions")
    server_sub = server_parser.add_subparsers(dest="action", required=True)

    server_sub.add_parser("list", help="List server definitions").set_defaults(func=cmd_server_list)

    show = server_sub.add_parser("show", help="Show a server definition")
    show.add_argument("name")
    show.set_defaults(func=cmd_server_show)

    add = server_sub.add_parser("add", help="Add a server definition")
    add.add_argument("name")
    add.add_argument("--json", help="Complete server definition as a JSON object")
    add.add_argument("--command", help="Command to run")
    add.add_argument("--args", help="Comma-separated arguments")
    add.add_argument(
        "--env",
        action="append",
        metavar="KEY=VALUE",
        help="Environment variable for the server (repeatable)",
    )
    add.add_argument("--force", action="store_true", help="Replace an existing definition")
    add.set_defaults(func=cmd_server_add)

    edit = server_sub.add_parser("edit", help="Edit a server definition in $EDITOR")
    edit.add_argument("name")
    edit.set_defaults(func=cmd_server_edit)

    remove = server_sub.add_parser("remove", help="Remove a server definition")
    remove.add_argument("name")
    remove.add_argument("--force", action="store_true", help="Remove even if profiles use it")
    remove.set_defaults(func=cmd_server_remove)

    extract = server_sub.add_parser("extract", help="Import servers from the Claude config")
    extract.add_argument("--overwrite", action="store_true", help="Replace existing definitions")
    extract.set_defaults(func=cmd_server_extract)

    # profile commands
    profile_parser = subparsers.add_parser("profile", help="Manage profiles")
    profile_sub = profile_parser.add_subparsers(dest="action", required=True)

    profile_sub.add_parser("list", help="List profiles").set_defaults(func=cmd_profile_list)

    p_show = profile_sub.add_parser("show", help="Show a profile's servers")
    p_show.add_argument("name")
    p_show.set_defaults(func=cmd_profile_show)

    p_create = profile_sub.add_parser("create", help="Create a profile")
    p_create.add_argument("name")
    p_create.add_argument("servers", nargs="*", help="Servers to include")
    p_create.set_defaults(func=cmd_profile_create)

    p_copy = profile_sub.add_parser("copy", help="Copy a profile")
    p_copy.add_argument("source")
    p_copy.add_argument("destination")
    p_copy.set_defaults(func=cmd_profile_copy)

    p_edit = profile_sub.add_parser("edit", help="Edit a profile in $EDITOR")
    p_edit.add_argument("name")
    p_edit.set_defaults(func=cmd_profile_edit)

    p_add = profile_sub.add_parser("add", help="Add servers to a profile")
    p_add.add_argument("name")
    p_add.add_argument("servers", nargs="+")
    p_add.set_defaults(func=cmd_profile_add)

    p_remove = profile_sub.add_parser("remove", help="Remove servers from a profile")
    p_remove.add_argument("name")
    p_remove.add_argument("servers", nargs="+")
    p_remove.set_defaults(func=cmd_profile_remove)

    p_delete = profile_sub.add_parser("delete", help="Delete a profile")
    p_delete.add_argument("name")
    p_delete.set_defaults(func=cmd_profile_delete)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    ABOUTME: A first argument that isn't a command is treated as a profile name
    ABOUTME: Returns exit code for sys.exit()
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] not in COMMANDS and not argv[0].startswith("-"):
        argv = ["activate", *argv]

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None or args.command == "help":
        parser.print_help()
        return EXIT_SUCCESS
    if args.command == "version":
        print(f"{PROG} v{__version__}")
        return EXIT_SUCCESS

    args.paths = get_paths()
    level, level_warning = get_log_level()
    configure_logging(args.paths.log_file, level)
    if level_warning:
        print_warning(level_warning)

    try:
        return args.func(args)
    except (ManagerError, ValueError) as e:
        return _fail(str(e))
    except Exception as e:
        logger.exception("Fatal error")
        print_error(f"Fatal error: {e}")
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())

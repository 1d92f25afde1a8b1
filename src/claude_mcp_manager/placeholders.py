# Secret placeholder resolution for server definitions
# ABOUTME: Resolves {{ENV:KEY}} and {{DOTENV:KEY}} tokens used as whole JSON string values
# ABOUTME: Never logs secret values, only whether they were found and their length
import json
import logging
import re
import warnings
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from claude_mcp_manager.errors import InvalidJSON, PlaceholderUnresolved

logger = logging.getLogger(__name__)

# ABOUTME: Pattern matches {{ENV:NAME}} or {{DOTENV:NAME}}, NAME is [A-Za-z0-9_]+
PLACEHOLDER_PATTERN = re.compile(r"\{\{(ENV|DOTENV):([A-Za-z0-9_]+)\}\}")


def load_dotenv_file(path: Path) -> dict[str, str]:
    """Read KEY=VALUE pairs from a .env file.

    ABOUTME: Uses python-dotenv, comments and blank lines are skipped
    ABOUTME: Returns empty dict if the file doesn't exist

    Args:
        path: Path to the .env file

    Returns:
        Mapping of keys to values (keys without a value are dropped)
    """
    if not path.is_file():
        logger.debug(f"Dotenv file not found: {path}. Skipping dotenv loading.")
        return {}

    values = {key: value for key, value in dotenv_values(path).items() if value is not None}
    logger.debug(f"Loaded {len(values)} variable(s) from {path}")
    return values


def find_placeholders(text: str) -> list[str]:
    """Return each distinct placeholder in `text`, in order of first appearance."""
    found: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(text):
        found.setdefault(match.group(0), None)
    return list(found)


def lookup_placeholder(
    placeholder: str,
    environment: Mapping[str, str],
    dotenv_values: Mapping[str, str],
) -> str:
    """Return the raw value for a single placeholder, or "" when unset.

    ABOUTME: ENV reads the environment only
    ABOUTME: DOTENV reads the .env values first, then falls back to the environment
    """
    match = PLACEHOLDER_PATTERN.fullmatch(placeholder)
    if match is None:
        raise ValueError(f"Not a placeholder: {placeholder}")

    kind, key = match.group(1), match.group(2)
    if kind == "DOTENV":
        value = dotenv_values.get(key) or environment.get(key)
    else:
        value = environment.get(key)
    return value or ""


def _substitute(node: Any, resolved: Mapping[str, str], used: set[str]) -> Any:
    """Replace string values that are exactly a placeholder. Keys are left alone."""
    if isinstance(node, dict):
        return {key: _substitute(value, resolved, used) for key, value in node.items()}
    if isinstance(node, list):
        return [_substitute(item, resolved, used) for item in node]
    if isinstance(node, str) and node in resolved:
        used.add(node)
        return resolved[node]
    return node


def resolve_placeholders(
    json_text: str,
    environment: Mapping[str, str],
    dotenv_values: Mapping[str, str] | None = None,
) -> str:
    """Resolve secret placeholders in a JSON document.

    ABOUTME: Each distinct placeholder is resolved once, however often it appears
    ABOUTME: Unset or empty values become "" with a PlaceholderUnresolved warning
    ABOUTME: Placeholders embedded inside a larger string are NOT substituted

    Substitution goes through a JSON parse and re-serialize, so secret values
    containing quotes, backslashes or control characters stay valid JSON.

    Args:
        json_text: Serialized JSON that may contain placeholders
        environment: Snapshot of environment variables
        dotenv_values: Values loaded from the .env file

    Returns:
        The resolved JSON text, or `json_text` unchanged if it has no placeholders

    Raises:
        InvalidJSON: If `json_text` contains placeholders but is not valid JSON

    Examples:
        >>> resolve_placeholders('{"k": "{{ENV:TOKEN}}"}', {"TOKEN": "abc"})
        '{\\n  "k": "abc"\\n}'
    """
    placeholders = find_placeholders(json_text)
    if not placeholders:
        return json_text

    dotenv_values = dotenv_values or {}
    logger.debug(f"Found {len(placeholders)} unique placeholder(s)")

    resolved: dict[str, str] = {}
    for placeholder in placeholders:
        value = lookup_placeholder(placeholder, environment, dotenv_values)
        if value:
            # Do NOT log the value itself
            logger.debug(f"Resolved {placeholder} to a value (length: {len(value)})")
        else:
            warnings.warn(
                f"Value for placeholder {placeholder} is empty or not set. Replacing with empty string.",
                PlaceholderUnresolved,
                stacklevel=2,
            )
        resolved[placeholder] = value

    try:
        document = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise InvalidJSON("<placeholder input>", str(e)) from e

    used: set[str] = set()
    result = _substitute(document, resolved, used)

    for placeholder in placeholders:
        if placeholder not in used:
            warnings.warn(
                f"Placeholder {placeholder} is embedded in a larger string and was not substituted",
                PlaceholderUnresolved,
                stacklevel=2,
            )

    return json.dumps(result, indent=2, ensure_ascii=False)

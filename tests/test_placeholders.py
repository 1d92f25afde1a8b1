# ABOUTME: Tests for secret placeholder resolution and .env loading
# ABOUTME: Environments are plain dicts, the real os.environ is never read
import json
import warnings

import pytest

from claude_mcp_manager.errors import InvalidJSON, PlaceholderUnresolved
from claude_mcp_manager.placeholders import (
    PLACEHOLDER_PATTERN,
    find_placeholders,
    load_dotenv_file,
    lookup_placeholder,
    resolve_placeholders,
)


def test_no_placeholders_returns_input_unchanged():
    """Text without tokens comes back byte for byte."""
    text = '{"fs": {"command": "npx",   "args": ["pkg"]}}'
    assert resolve_placeholders(text, {"API_KEY": "x"}, {}) is text


def test_resolves_env_placeholder():
    text = json.dumps({"fs": {"env": {"KEY": "{{ENV:API_KEY}}"}}})

    result = resolve_placeholders(text, {"API_KEY": "secret123"}, {})

    assert json.loads(result) == {"fs": {"env": {"KEY": "secret123"}}}


def test_dotenv_prefers_dotenv_values():
    text = json.dumps({"token": "{{DOTENV:TOKEN}}"})

    result = resolve_placeholders(text, {"TOKEN": "from-env"}, {"TOKEN": "from-dotenv"})

    assert json.loads(result) == {"token": "from-dotenv"}


def test_dotenv_falls_back_to_environment():
    text = json.dumps({"token": "{{DOTENV:TOKEN}}"})

    result = resolve_placeholders(text, {"TOKEN": "from-env"}, {})

    assert json.loads(result) == {"token": "from-env"}


def test_env_ignores_dotenv_values():
    """ENV and DOTENV forms of one key are resolved independently."""
    text = json.dumps({"a": "{{ENV:TOKEN}}", "b": "{{DOTENV:TOKEN}}"})

    with warnings.catch_warnings(record=True) as w:
        warnings.simplefilter("always")
        result = json.loads(resolve_placeholders(text, {}, {"TOKEN": "dot"}))

    assert result == {"a": "", "b": "dot"}
    assert len(w) == 1
    assert "{{ENV:TOKEN}}" in str(w[0].message)


def test_unset_value_becomes_empty_string_with_warning():
    text = json.dumps({"key": "{{ENV:MISSING}}"})

    with pytest.warns(PlaceholderUnresolved, match="MISSING"):
        result = resolve_placeholders(text, {}, {})

    assert json.loads(result) == {"key": ""}


def test_empty_value_treated_as_unset():
    text = json.dumps({"key": "{{ENV:EMPTY}}"})

    with pytest.warns(PlaceholderUnresolved):
        result = resolve_placeholders(text, {"EMPTY": ""}, {})

    assert json.loads(result) == {"key": ""}


def test_special_characters_stay_valid_json():
    """Quotes, backslashes and control characters are escaped, not spliced."""
    secret = 'p"a\\ss\nword\t\u0001'
    text = json.dumps({"env": {"PASSWORD": "{{ENV:PASSWORD}}"}})

    result = resolve_placeholders(text, {"PASSWORD": secret}, {})

    assert json.loads(result)["env"]["PASSWORD"] == secret


def test_repeated_placeholder_resolved_once():
    """Duplicates produce a single warning and identical values."""
    text = json.dumps({"a": "{{ENV:X}}", "b": ["{{ENV:X}}"], "c": {"d": "{{ENV:X}}"}})

    with warnings.catch_warnings(record=True) as w:
        warnings.simplefilter("always")
        result = json.loads(resolve_placeholders(text, {}, {}))

    assert result == {"a": "", "b": [""], "c": {"d": ""}}
    assert len(w) == 1


def test_embedded_placeholder_not_substituted():
    """Only whole-field values are replaced."""
    text = json.dumps({"header": "Bearer {{ENV:TOKEN}}"})

    with pytest.warns(PlaceholderUnresolved, match="embedded"):
        result = resolve_placeholders(text, {"TOKEN": "abc"}, {})

    assert json.loads(result) == {"header": "Bearer {{ENV:TOKEN}}"}


def test_keys_are_not_substituted():
    text = json.dumps({"{{ENV:TOKEN}}": "{{ENV:TOKEN}}"})

    result = resolve_placeholders(text, {"TOKEN": "abc"}, {})

    assert json.loads(result) == {"{{ENV:TOKEN}}": "abc"}


def test_non_string_values_untouched():
    text = json.dumps({"enabled": True, "port": 8080, "key": "{{ENV:K}}", "none": None})

    result = resolve_placeholders(text, {"K": "v"}, {})

    assert json.loads(result) == {"enabled": True, "port": 8080, "key": "v", "none": None}


def test_invalid_json_with_placeholder_raises():
    with pytest.raises(InvalidJSON):
        resolve_placeholders('{"key": "{{ENV:K}}"', {"K": "v"}, {})


def test_secret_value_never_logged(caplog):
    text = json.dumps({"key": "{{ENV:SECRET}}"})

    with caplog.at_level("DEBUG", logger="claude_mcp_manager"):
        resolve_placeholders(text, {"SECRET": "hunter2-very-secret"}, {})

    assert "hunter2-very-secret" not in caplog.text
    assert "length: 19" in caplog.text


def test_find_placeholders_order_and_dedupe():
    text = '{"a": "{{ENV:B}}", "b": "{{DOTENV:A}}", "c": "{{ENV:B}}"}'
    assert find_placeholders(text) == ["{{ENV:B}}", "{{DOTENV:A}}"]


def test_pattern_rejects_invalid_tokens():
    invalid = ["{{ENV:}}", "{{SECRET:KEY}}", "{{ENV:WITH-DASH}}", "{ENV:KEY}", "{{env:KEY}}"]
    for token in invalid:
        assert PLACEHOLDER_PATTERN.fullmatch(token) is None


def test_pattern_accepts_mixed_case_and_digits():
    match = PLACEHOLDER_PATTERN.fullmatch("{{DOTENV:api_Key_2}}")
    assert match is not None
    assert match.group(1) == "DOTENV"
    assert match.group(2) == "api_Key_2"


def test_lookup_rejects_non_placeholder():
    with pytest.raises(ValueError):
        lookup_placeholder("API_KEY", {}, {})


class TestLoadDotenvFile:
    """Tests for .env loading."""

    def test_missing_file_returns_empty(self, tmp_path):
        assert load_dotenv_file(tmp_path / ".env") == {}

    def test_skips_comments_and_blank_lines(self, tmp_path):
        dotenv = tmp_path / ".env"
        dotenv.write_text("# secrets\n\nAPI_KEY=abc123\n# another comment\nOTHER=two words\n")

        values = load_dotenv_file(dotenv)

        assert values == {"API_KEY": "abc123", "OTHER": "two words"}

    def test_quoted_values(self, tmp_path):
        dotenv = tmp_path / ".env"
        dotenv.write_text('TOKEN="with spaces"\nSINGLE=\'x\'\n')

        assert load_dotenv_file(dotenv) == {"TOKEN": "with spaces", "SINGLE": "x"}

"""Tests for identifier and path policy checks."""

import pytest

from reef_mcp.utils.validation import (
    InvalidIdentifierError,
    PathConfinementError,
    PathTraversalError,
    PolicyError,
    validate_confined_path,
    validate_identifier,
)


class TestValidateIdentifier:
    """Allow-list validation for agent ids, channels and codes."""

    @pytest.mark.parametrize("value", ["main", "agent_2", "Sales-Bot", "a", "ABC123"])
    def test_accepts_allow_listed(self, value: str) -> None:
        """Letters, digits, underscore and hyphen pass unchanged."""
        assert validate_identifier(value) == value

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "a b",
            "a;rm -rf /",
            "$(id)",
            "`id`",
            "../x",
            "a/b",
            "x\n",
            "main\n",
            "\nmain",
            "agent.1",
            "ü",
        ],
    )
    def test_rejects_everything_else(self, value: str) -> None:
        """Anything outside [A-Za-z0-9_-] is rejected."""
        with pytest.raises(InvalidIdentifierError):
            validate_identifier(value, "agent ID")

    def test_error_names_the_kind(self) -> None:
        """The error message says what kind of identifier was rejected."""
        with pytest.raises(InvalidIdentifierError, match="Invalid channel"):
            validate_identifier("bad channel", "channel")

    def test_is_policy_error(self) -> None:
        """Rejections belong to the policy error family."""
        assert issubclass(InvalidIdentifierError, PolicyError)


class TestValidateConfinedPath:
    """Confinement to ~/.openclaw."""

    def test_accepts_root(self) -> None:
        assert validate_confined_path("~/.openclaw") == "~/.openclaw"

    def test_strips_trailing_slash(self) -> None:
        assert validate_confined_path("~/.openclaw/agents/") == "~/.openclaw/agents"

    def test_accepts_nested_file(self) -> None:
        path = "~/.openclaw/agents/main/agent/auth-profiles.json"
        assert validate_confined_path(path) == path

    @pytest.mark.parametrize(
        "path",
        ["~/.openclaw/../.ssh/id_rsa", "~/.openclaw/agents/..", "../.openclaw/x"],
    )
    def test_rejects_traversal(self, path: str) -> None:
        with pytest.raises(PathTraversalError):
            validate_confined_path(path)

    def test_rejects_null_byte(self) -> None:
        with pytest.raises(PathTraversalError, match="null byte"):
            validate_confined_path("~/.openclaw/a\x00b")

    @pytest.mark.parametrize(
        "path",
        ["/etc/passwd", "~/.ssh/id_rsa", "~/.openclaw-evil/x", "/root/.openclaw/x", "~"],
    )
    def test_rejects_outside_root(self, path: str) -> None:
        with pytest.raises(PathConfinementError):
            validate_confined_path(path)

    def test_rejects_empty(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            validate_confined_path("")

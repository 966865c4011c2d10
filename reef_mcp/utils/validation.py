"""Identifier and path policy checks.

Everything here runs before any remote call is issued.
"""

import re
from typing import Final

IDENTIFIER_PATTERN: Final = re.compile(r"[A-Za-z0-9_-]+")

CONFINEMENT_ROOT: Final[str] = "~/.openclaw"


class PolicyError(ValueError):
    """Input rejected by a local policy check."""

    pass


class InvalidIdentifierError(PolicyError):
    """Identifier contains characters outside ``[A-Za-z0-9_-]``."""

    def __init__(self, kind: str, value: str):
        self.kind = kind
        self.value = value
        super().__init__(f"Invalid {kind}: {value!r}")


class PathTraversalError(PolicyError):
    """Attempted path traversal detected."""

    pass


class PathConfinementError(PolicyError):
    """Path resolves outside the confinement root."""

    pass


def validate_identifier(value: str, kind: str = "identifier") -> str:
    """Validate a caller-supplied identifier before it reaches a command line.

    Args:
        value: Agent id, channel type, account id, pairing code, ...
        kind: Human-readable name used in the error message

    Returns:
        The identifier, unchanged

    Raises:
        InvalidIdentifierError: If the identifier is empty or not allow-listed
    """
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.fullmatch(value):
        raise InvalidIdentifierError(kind, str(value))
    return value


def validate_confined_path(path: str, root: str = CONFINEMENT_ROOT) -> str:
    """Validate a remote path against the confinement root.

    Args:
        path: Home-relative remote path (e.g. ``~/.openclaw/openclaw.json``)
        root: Confinement root

    Returns:
        The path with any trailing slash removed

    Raises:
        PathTraversalError: If the path holds a NUL byte or a ``..`` segment
        PathConfinementError: If the path is not the root or under it
        ValueError: If the path is empty
    """
    if not path:
        raise ValueError("Path cannot be empty")

    if "\x00" in path:
        raise PathTraversalError(f"Path contains null byte: {path!r}")

    if any(segment == ".." for segment in path.split("/")):
        raise PathTraversalError(f"Path traversal not allowed: {path}")

    normalized = path.rstrip("/") or path
    if normalized != root and not normalized.startswith(root + "/"):
        raise PathConfinementError(f"Path must be within {root}/: {path}")

    return normalized

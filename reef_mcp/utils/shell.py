"""Shell command safety utilities."""

import base64
import shlex


def quote_path(path: str) -> str:
    """Quote a remote path, expanding a leading ``~`` via ``$HOME``.

    ``~`` is not expanded inside quotes, so the home prefix is emitted as a
    separately double-quoted ``"$HOME"`` and the remainder single-quoted.

    Args:
        path: Remote file system path

    Returns:
        Shell-safe path expression
    """
    if path == "~":
        return '"$HOME"'
    if path.startswith("~/"):
        rest = path[2:]
        return '"$HOME"/' + shlex.quote(rest) if rest else '"$HOME"/'
    return shlex.quote(path)


def quote_arg(arg: str) -> str:
    """Safely quote a shell argument.

    Args:
        arg: Argument to quote

    Returns:
        Shell-safe quoted argument
    """
    return shlex.quote(arg)


def encode_payload(content: str | bytes) -> str:
    """Base64-encode a payload for transport to the remote side."""
    data = content.encode("utf-8") if isinstance(content, str) else content
    return base64.b64encode(data).decode("ascii")


def decoded_arg(content: str) -> str:
    """Build a shell word that expands to ``content`` on the remote side.

    The content travels base64-encoded and is decoded remotely inside a
    quoted command substitution, so quotes, backticks and ``$`` are never
    parsed by the shell. Trailing newlines are dropped by the substitution.

    Args:
        content: Arbitrary text

    Returns:
        A ``"$(printf %s '...' | base64 -d)"`` expression
    """
    return f"\"$(printf %s '{encode_payload(content)}' | base64 -d)\""

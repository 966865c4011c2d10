"""Tests for per-call SSH sessions."""

from unittest.mock import AsyncMock, MagicMock, patch

import asyncssh
import pytest

from reef_mcp.models import ConnectionParameters
from reef_mcp.services.connection import connect, connect_options, open_session
from reef_mcp.services.errors import RemoteConnectionError


def test_connect_options_without_credential(params: ConnectionParameters) -> None:
    """Without a credential, asyncssh falls back to default keys and agent."""
    options = connect_options(params)

    assert options == {"port": 22, "username": "root", "known_hosts": None}


def test_connect_options_imports_credential() -> None:
    """Key text is imported into client_keys."""
    params = ConnectionParameters(host="h", credential="KEY TEXT", known_hosts="/kh")
    with patch("reef_mcp.services.connection.asyncssh.import_private_key") as mock_import:
        options = connect_options(params)

    mock_import.assert_called_once_with("KEY TEXT")
    assert options["client_keys"] == [mock_import.return_value]
    assert options["known_hosts"] == "/kh"


def test_credential_not_in_repr() -> None:
    """Key material never shows up in logs via repr."""
    params = ConnectionParameters(host="h", credential="SECRET KEY")
    assert "SECRET" not in repr(params)


@pytest.mark.asyncio
async def test_connect_passes_host_and_options(
    params: ConnectionParameters, mock_connect: AsyncMock, mock_conn: MagicMock
) -> None:
    conn = await connect(params)

    assert conn is mock_conn
    mock_connect.assert_awaited_once_with("10.0.0.5", port=22, username="root", known_hosts=None)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [OSError("Connection refused"), asyncssh.PermissionDenied("auth failed")],
)
async def test_connect_wraps_failures(params: ConnectionParameters, error: Exception) -> None:
    """Network and auth failures surface as RemoteConnectionError."""
    with patch(
        "reef_mcp.services.connection.asyncssh.connect", new=AsyncMock(side_effect=error)
    ):
        with pytest.raises(RemoteConnectionError) as exc_info:
            await connect(params)

    assert exc_info.value.host == "10.0.0.5"
    assert exc_info.value.original_error is error
    assert "Cannot connect to 10.0.0.5" in str(exc_info.value)


@pytest.mark.asyncio
async def test_open_session_closes_on_error(
    params: ConnectionParameters, mock_connect: AsyncMock, mock_conn: MagicMock
) -> None:
    """The session is closed even when the block raises."""
    with pytest.raises(RuntimeError):
        async with open_session(params):
            raise RuntimeError("boom")

    mock_conn.close.assert_called_once()
    mock_conn.wait_closed.assert_awaited_once()

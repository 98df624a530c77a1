"""Tests for the server entry point."""

from unittest.mock import Mock

import pytest

from xcode_cloud_mcp import server, tools
from xcode_cloud_mcp.errors import ConfigError


@pytest.fixture(autouse=True)
def quiet_startup(mocker, monkeypatch):
    monkeypatch.setenv("MCP_TRANSPORT", "stdio")
    mocker.patch("xcode_cloud_mcp.server.setup_logging")
    mocker.patch("xcode_cloud_mcp.server.setup_observability")
    yield
    tools.set_client(None)


def test_missing_credentials_exit_with_status_one(mocker) -> None:
    mocker.patch(
        "xcode_cloud_mcp.server.create_client_from_env",
        side_effect=ConfigError("Missing required environment variables: APP_STORE_KEY_ID"),
    )
    run = mocker.patch.object(server.xcode_cloud_tools, "run")

    with pytest.raises(SystemExit) as exc_info:
        server.main()

    assert exc_info.value.code == 1
    run.assert_not_called()


def test_unknown_transport_exits(mocker, monkeypatch) -> None:
    monkeypatch.setenv("MCP_TRANSPORT", "carrier-pigeon")
    run = mocker.patch.object(server.xcode_cloud_tools, "run")

    with pytest.raises(SystemExit) as exc_info:
        server.main()

    assert exc_info.value.code == 1
    run.assert_not_called()


def test_installs_client_and_runs_transport(mocker, monkeypatch) -> None:
    monkeypatch.setenv("MCP_TRANSPORT", "streamable-http")
    monkeypatch.setenv("MCP_PORT", "9123")
    client = Mock()
    mocker.patch("xcode_cloud_mcp.server.create_client_from_env", return_value=client)
    run = mocker.patch.object(server.xcode_cloud_tools, "run")

    server.main()

    assert tools.get_client() is client
    assert server.xcode_cloud_tools.settings.port == 9123
    run.assert_called_once_with(transport="streamable-http")

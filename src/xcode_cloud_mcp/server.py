import logging
import sys
from typing import Any

from xcode_cloud_mcp.client import create_client_from_env
from xcode_cloud_mcp.config import load_settings
from xcode_cloud_mcp.errors import ConfigError
from xcode_cloud_mcp.observability import setup_logging, setup_observability
from xcode_cloud_mcp.tools import set_client, xcode_cloud_tools

# Registers the xcode-cloud:// resources on xcode_cloud_tools
import xcode_cloud_mcp.resources  # noqa: F401

logger = logging.getLogger(__name__)

TRANSPORTS = ("stdio", "sse", "streamable-http")


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)

    if settings.transport not in TRANSPORTS:
        logger.error(
            "Unsupported MCP_TRANSPORT '%s' (expected one of %s)",
            settings.transport,
            ", ".join(TRANSPORTS),
        )
        sys.exit(1)

    try:
        client = create_client_from_env()
    except ConfigError as e:
        logger.error("Failed to start Xcode Cloud MCP server: %s", e.message)
        sys.exit(1)
    set_client(client)

    # Host and port only matter for the HTTP transports
    xcode_cloud_tools.settings.host = settings.host
    xcode_cloud_tools.settings.port = settings.port

    # Initialize OpenTelemetry (robust to FastMCP implementation details)
    app_obj: Any = getattr(xcode_cloud_tools, "app", None)
    setup_observability(app_obj)

    if settings.transport == "stdio":
        logger.info("Starting Xcode Cloud MCP server on stdio")
    else:
        logger.info(
            "Starting Xcode Cloud MCP server (%s) on http://%s:%d",
            settings.transport,
            settings.host,
            settings.port,
        )
    xcode_cloud_tools.run(transport=settings.transport)  # type: ignore[arg-type]


if __name__ == "__main__":
    main()

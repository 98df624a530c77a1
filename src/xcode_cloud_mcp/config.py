"""Environment-driven configuration for the Xcode Cloud MCP server.

Values are read once at startup. A `.env` file in the working directory is
loaded first (via python-dotenv) so local development does not require
exporting the credentials by hand.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from xcode_cloud_mcp.errors import ConfigError

APP_STORE_CONNECT_API_BASE: str = "https://api.appstoreconnect.apple.com"
DEFAULT_TIMEOUT_SECONDS: float = 30.0

REQUIRED_VARIABLES = ("APP_STORE_KEY_ID", "APP_STORE_ISSUER_ID", "APP_STORE_PRIVATE_KEY")


@dataclass(frozen=True)
class Credentials:
    key_id: str
    issuer_id: str
    private_key: str


@dataclass(frozen=True)
class ServerSettings:
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    api_base: str = APP_STORE_CONNECT_API_BASE
    timeout: float = DEFAULT_TIMEOUT_SECONDS


def _strip_quotes(value: str) -> str:
    """Remove one leading and one trailing quote character, if present."""
    if value[:1] in ("'", '"'):
        value = value[1:]
    if value[-1:] in ("'", '"'):
        value = value[:-1]
    return value


def load_credentials(environ: Optional[Mapping[str, str]] = None) -> Credentials:
    """Read the App Store Connect API key from the environment.

    Surrounding quotes are stripped from every value and escaped ``\\n``
    sequences in the private key are turned into real newlines, which is how
    multi-line PEM keys usually end up in `.env` files and CI secrets.

    Raises:
        ConfigError: If any of the three required variables is missing.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    values = {}
    for name in REQUIRED_VARIABLES:
        raw = environ.get(name)
        if not raw:
            raise ConfigError(f"Missing required environment variables: {name}")
        values[name] = _strip_quotes(raw)

    return Credentials(
        key_id=values["APP_STORE_KEY_ID"],
        issuer_id=values["APP_STORE_ISSUER_ID"],
        private_key=values["APP_STORE_PRIVATE_KEY"].replace("\\n", "\n"),
    )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> ServerSettings:
    if environ is None:
        load_dotenv()
        environ = os.environ

    return ServerSettings(
        transport=environ.get("MCP_TRANSPORT", "stdio"),
        host=environ.get("MCP_HOST", "0.0.0.0"),
        port=int(environ.get("MCP_PORT", "8000")),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
        api_base=environ.get("APP_STORE_CONNECT_API_BASE", APP_STORE_CONNECT_API_BASE),
        timeout=float(environ.get("APP_STORE_CONNECT_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)),
    )

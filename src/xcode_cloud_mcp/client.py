"""Composes the resource clients behind one shared HTTP client and token cache."""

import logging
from typing import Optional

import httpx

from xcode_cloud_mcp.auth import AuthManager, create_auth_from_env
from xcode_cloud_mcp.config import (
    APP_STORE_CONNECT_API_BASE,
    DEFAULT_TIMEOUT_SECONDS,
    load_settings,
)
from xcode_cloud_mcp.resource_clients import (
    ArtifactsClient,
    BuildsClient,
    MacOsVersionsClient,
    ProductsClient,
    RepositoriesClient,
    WorkflowsClient,
    XcodeVersionsClient,
)

logger = logging.getLogger(__name__)


class AppStoreConnectClient:
    """Entry point to the semantic Xcode Cloud operations.

    All resource clients share the same `AuthManager`, so a token minted for
    one call is reused by every other call until it nears expiry.
    """

    def __init__(
        self,
        auth: AuthManager,
        base_url: str = APP_STORE_CONNECT_API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.auth = auth
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)
        self.products = ProductsClient(auth, self._http, base_url)
        self.workflows = WorkflowsClient(auth, self._http, base_url)
        self.builds = BuildsClient(auth, self._http, base_url)
        self.artifacts = ArtifactsClient(auth, self._http, base_url)
        self.xcode_versions = XcodeVersionsClient(auth, self._http, base_url)
        self.mac_os_versions = MacOsVersionsClient(auth, self._http, base_url)
        self.repositories = RepositoriesClient(auth, self._http, base_url)
        logger.info("App Store Connect client initialized for %s", base_url)

    async def aclose(self) -> None:
        await self._http.aclose()


def create_client_from_env() -> AppStoreConnectClient:
    """Build a client from the ``APP_STORE_*`` credentials and optional server settings.

    Raises:
        ConfigError: If a required credential is missing.
    """
    settings = load_settings()
    return AppStoreConnectClient(
        create_auth_from_env(), base_url=settings.api_base, timeout=settings.timeout
    )

"""Request executor shared by every App Store Connect resource client.

Attaches the bearer token, serializes JSON bodies and turns upstream error
documents and transport failures into the exceptions in `errors.py`. No
retries happen at this layer.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from xcode_cloud_mcp.auth import AuthManager
from xcode_cloud_mcp.config import APP_STORE_CONNECT_API_BASE
from xcode_cloud_mcp.errors import APIError, DownloadError, RequestError, XcodeCloudError
from xcode_cloud_mcp.models import APIErrorEntry, APIResponse

logger = logging.getLogger(__name__)


def _format_error_response(response: httpx.Response) -> str:
    """Build the human-readable message for a non-2xx response.

    Entries of a JSON:API error document are rendered as ``title: detail`` and
    joined with ``"; "``. Anything else falls back to the raw body text.
    """
    try:
        payload = response.json()
    except ValueError:
        payload = None

    entries: Optional[List[APIErrorEntry]] = None
    if isinstance(payload, dict) and isinstance(payload.get("errors"), list):
        entries = [e for e in payload["errors"] if isinstance(e, dict)]

    if entries:
        messages = "; ".join(
            f"{e.get('title', 'Error')}: {e.get('detail', '')}" for e in entries
        )
    else:
        messages = response.text.strip() or response.reason_phrase

    return f"API Error ({response.status_code}): {messages}"


class BaseAPIClient:
    """Authenticated JSON client for App Store Connect. Internal to the resource clients."""

    def __init__(
        self,
        auth: AuthManager,
        http_client: httpx.AsyncClient,
        base_url: str = APP_STORE_CONNECT_API_BASE,
    ) -> None:
        self._auth = auth
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    async def get(
        self, endpoint: str, params: Optional[Dict[str, str]] = None
    ) -> APIResponse:
        return await self.request("GET", self._build_url(endpoint), params=params)

    async def post(self, endpoint: str, body: Any) -> APIResponse:
        return await self.request("POST", self._build_url(endpoint), body=body)

    async def patch(self, endpoint: str, body: Any) -> APIResponse:
        return await self.request("PATCH", self._build_url(endpoint), body=body)

    async def delete_request(self, endpoint: str) -> None:
        await self.request("DELETE", self._build_url(endpoint))

    async def download_binary(self, url: str) -> bytes:
        """Fetch a pre-authorized artifact URL and return the raw bytes."""
        headers = {"Authorization": f"Bearer {self._auth.get_token()}"}
        try:
            response = await self._http.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise RequestError(f"Request failed: {e}") from e

        if not response.is_success:
            raise DownloadError(
                f"Failed to download binary: {response.status_code} {response.reason_phrase}"
            )
        return response.content

    def _build_url(self, endpoint: str) -> str:
        return f"{self._base_url}{endpoint}"

    async def request(
        self,
        method: str,
        url: str,
        body: Any = None,
        params: Optional[Dict[str, str]] = None,
    ) -> APIResponse:
        headers = {
            "Authorization": f"Bearer {self._auth.get_token()}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._http.request(
                method,
                url,
                headers=headers,
                params=params or None,
                json=body,
            )
            logger.debug("%s %s -> %d", method, url, response.status_code)

            # A successful DELETE has no body to parse
            if method == "DELETE" and response.is_success:
                return {"data": None}

            if not response.is_success:
                message = _format_error_response(response)
                logger.warning("%s %s failed: %s", method, url, message)
                raise APIError(response.status_code, message)

            return response.json()
        except XcodeCloudError:
            raise
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise RequestError(f"Request failed: {e}") from e
        except ValueError as e:
            raise RequestError(f"Request failed: invalid JSON response ({e})") from e

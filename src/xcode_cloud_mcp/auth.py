import logging
import time
from typing import Callable, Optional

from typing_extensions import TypedDict

import jwt
from opentelemetry import trace

from xcode_cloud_mcp.config import Credentials, load_credentials
from xcode_cloud_mcp.errors import SigningError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

AUDIENCE = "appstoreconnect-v1"
ALGORITHM = "ES256"
# App Store Connect rejects tokens that live longer than 20 minutes.
TOKEN_LIFETIME_SECONDS = 20 * 60
REFRESH_BUFFER_SECONDS = 60


class CachedToken(TypedDict):
    token: str
    expires_at: int


class AuthManager:
    """Mints and caches the ES256 JWT used as bearer token for App Store Connect.

    A single token is cached and reused until it is within one minute of
    expiring. ``get_token`` never awaits, so under asyncio the cache check and
    the regeneration run to completion before another task can observe the cache.
    """

    def __init__(
        self, credentials: Credentials, clock: Callable[[], float] = time.time
    ) -> None:
        self._credentials = credentials
        self._clock = clock
        self._cached_token: Optional[CachedToken] = None

    def get_token(self) -> str:
        """Return a valid token, generating a new one if the cache is empty or stale."""
        with tracer.start_as_current_span("get_app_store_token") as span:
            now = int(self._clock())
            cached = self._cached_token
            if cached is not None and cached["expires_at"] > now + REFRESH_BUFFER_SECONDS:
                span.add_event("token_cache_hit")
                return cached["token"]

            span.add_event("token_cache_miss")
            self._cached_token = self._generate_token(now)
            return self._cached_token["token"]

    def _generate_token(self, now: int) -> CachedToken:
        with tracer.start_as_current_span("generate_app_store_token") as span:
            span.set_attribute("app_store.key_id", self._credentials.key_id)
            expires_at = now + TOKEN_LIFETIME_SECONDS
            claims = {
                "iss": self._credentials.issuer_id,
                "iat": now,
                "exp": expires_at,
                "aud": AUDIENCE,
            }
            try:
                token = jwt.encode(
                    claims,
                    self._credentials.private_key,
                    algorithm=ALGORITHM,
                    headers={"kid": self._credentials.key_id, "typ": "JWT"},
                )
            except (jwt.PyJWTError, ValueError, TypeError) as e:
                logger.error(
                    "Failed to sign App Store Connect token for key %s: %s",
                    self._credentials.key_id,
                    e,
                )
                raise SigningError(f"Failed to sign App Store Connect token: {e}") from e

            logger.debug("Generated new App Store Connect token, expires at %d", expires_at)
            return {"token": token, "expires_at": expires_at}

    def clear_cache(self) -> None:
        """Drop the cached token so the next ``get_token`` call signs a new one."""
        self._cached_token = None


def create_auth_from_env() -> AuthManager:
    return AuthManager(load_credentials())

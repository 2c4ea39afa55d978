"""Authenticated HTTP session for the Kibo Commerce admin REST API.

A ``KiboSession`` wraps one ``aiohttp.ClientSession``. It obtains an OAuth
application ticket with the client credentials, keeps it until shortly before
it expires, and sends the tenant/site/catalog context headers the API scopes
every call with.
"""

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import aiohttp

from ..config import Settings
from ..errors import ApiError, AuthenticationError, ConfigurationError
from ..logging_config import get_logger

logger = get_logger(__name__)

AUTH_PATH = "/api/platform/applications/authtickets/oauth"

# Refresh the ticket this many seconds before it expires
TOKEN_EXPIRY_LEEWAY = 60.0


@dataclass(frozen=True)
class ApiContext:
    """Tenant, site and catalog scope of API calls.

    A ``None`` value means the matching header is not sent.
    """

    tenant_id: Optional[str] = None
    site_id: Optional[str] = None
    catalog_id: Optional[str] = None
    master_catalog: Optional[str] = None

    @classmethod
    def from_settings(
        cls, settings: Settings, include_site: bool = True, include_catalog: bool = True
    ) -> "ApiContext":
        """Build the context of a Settings object.

        Args:
            settings: Loaded settings
            include_site: Send the site header
            include_catalog: Send the catalog header
        """
        return cls(
            tenant_id=settings.tenant_id or None,
            site_id=(settings.site_id or None) if include_site else None,
            catalog_id=(settings.catalog_id or None) if include_catalog else None,
            master_catalog=settings.master_catalog or None,
        )

    def headers(self) -> Dict[str, str]:
        headers = {}
        if self.tenant_id:
            headers["x-vol-tenant"] = str(self.tenant_id)
        if self.site_id:
            headers["x-vol-site"] = str(self.site_id)
        if self.catalog_id:
            headers["x-vol-catalog"] = str(self.catalog_id)
        if self.master_catalog:
            headers["x-vol-master-catalog"] = str(self.master_catalog)
        return headers


class TokenCache:
    """Holds the current app ticket, shared by sibling sessions."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock: Optional[asyncio.Lock] = None
        self.access_token: Optional[str] = None
        self.expires_at: float = 0.0

    @property
    def lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def is_valid(self) -> bool:
        return self.access_token is not None and self._clock() < self.expires_at

    def store(self, access_token: str, expires_in: Optional[float]) -> None:
        lifetime = float(expires_in) if expires_in else 3600.0
        self.access_token = access_token
        self.expires_at = self._clock() + max(lifetime - TOKEN_EXPIRY_LEEWAY, 0.0)

    def clear(self) -> None:
        self.access_token = None
        self.expires_at = 0.0


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _decode(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class KiboSession:
    """Async context manager issuing authenticated admin API requests."""

    def __init__(
        self,
        settings: Settings,
        context: Optional[ApiContext] = None,
        http: Optional[aiohttp.ClientSession] = None,
        token_cache: Optional[TokenCache] = None,
        api_host: Optional[str] = None,
    ):
        """Initialize the session.

        Args:
            settings: Credentials, hosts and timeout
            context: Tenant/site/catalog scope, derived from settings when omitted
            http: Existing aiohttp session to reuse (not closed by this object)
            token_cache: App ticket holder shared with sibling sessions
            api_host: Host overriding the one derived from settings
        """
        self.settings = settings
        self.context = context or ApiContext.from_settings(settings)
        self._http = http
        self._owns_http = http is None
        self.token_cache = token_cache or TokenCache()
        self.api_host = api_host or settings.resolved_api_host

    async def __aenter__(self) -> "KiboSession":
        if self._http is None:
            timeout = aiohttp.ClientTimeout(total=self.settings.request_timeout)
            self._http = aiohttp.ClientSession(timeout=timeout)
            self._owns_http = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.close()
            self._http = None

    @property
    def http(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise RuntimeError("KiboSession is not open; use 'async with KiboSession(...)'")
        return self._http

    @property
    def base_url(self) -> str:
        if not self.api_host:
            raise ConfigurationError(
                "Missing required configuration: API_HOST (or TENANT_ID and API_ENV)",
                missing=["api_host"],
            )
        return f"https://{self.api_host}"

    def with_context(
        self, context: ApiContext, api_host: Optional[str] = None
    ) -> "KiboSession":
        """Sibling session sharing the connection pool and app ticket."""
        return KiboSession(
            self.settings,
            context=context,
            http=self.http,
            token_cache=self.token_cache,
            api_host=api_host or self.api_host,
        )

    async def authenticate(self) -> str:
        """Return a valid app ticket, requesting a new one when needed."""
        if self.token_cache.is_valid():
            return self.token_cache.access_token

        async with self.token_cache.lock:
            if self.token_cache.is_valid():
                return self.token_cache.access_token

            self.settings.require("client_id", "shared_secret", "auth_host")
            url = f"https://{self.settings.auth_host}{AUTH_PATH}"
            payload = {
                "client_id": self.settings.client_id,
                "client_secret": self.settings.shared_secret,
                "grant_type": "client_credentials",
            }

            logger.debug("Requesting app ticket", extra={"auth_host": self.settings.auth_host})
            try:
                async with self.http.request("POST", url, json=payload) as response:
                    status = response.status
                    body = _decode(await response.text())
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise AuthenticationError(f"Could not reach auth host: {e}", cause=e) from e

            if status >= 400 or not isinstance(body, dict) or not body.get("access_token"):
                message = body.get("message") if isinstance(body, dict) else body
                raise AuthenticationError(
                    f"Authentication failed with HTTP {status}: {message or 'no access token'}"
                )

            self.token_cache.store(body["access_token"], body.get("expires_in"))
            logger.info("Obtained app ticket", extra={"expires_in": body.get("expires_in")})
            return self.token_cache.access_token

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        """Send an API request and return the decoded JSON body.

        Returns:
            Decoded body, or None when the response has no body

        Raises:
            ApiError: The API answered with status >= 400
        """
        token = await self.authenticate()
        headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
            **self.context.headers(),
        }
        query = None
        if params:
            query = {k: _query_value(v) for k, v in params.items() if v is not None}

        url = f"{self.base_url}{path}"
        logger.debug("API request", extra={"method": method, "path": path, "params": query})

        try:
            async with self.http.request(
                method, url, params=query, json=json, headers=headers
            ) as response:
                status = response.status
                body = _decode(await response.text())
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ApiError(0, method, path, message=str(e)) from e

        if status == 401:
            # Ticket was revoked or expired early; the next call requests a new one
            self.token_cache.clear()

        if status >= 400:
            message = ""
            error_code = None
            if isinstance(body, dict):
                message = body.get("message") or ""
                error_code = body.get("errorCode")
            elif body:
                message = str(body)
            raise ApiError(status, method, path, message=message, error_code=error_code, body=body)

        return body

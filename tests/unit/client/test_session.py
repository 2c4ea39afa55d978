"""Tests for the authenticated API session."""

import json
from dataclasses import replace

import aiohttp
import pytest

from kibomigrate.client.session import (
    AUTH_PATH,
    ApiContext,
    KiboSession,
    TokenCache,
)
from kibomigrate.errors import ApiError, AuthenticationError, ConfigurationError

AUTH_URL = f"https://home.mozu.com{AUTH_PATH}"
API_URL = "https://t100.sandbox.mozu.com"


class FakeResponse:
    def __init__(self, status=200, body=None):
        self.status = status
        if body is None:
            self._text = ""
        elif isinstance(body, str):
            self._text = body
        else:
            self._text = json.dumps(body)

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeHttp:
    """Records requests and answers from a per-URL queue of responses."""

    def __init__(self):
        self.requests = []
        self.responses = {}
        self.errors = {}

    def add(self, method, url, status=200, body=None):
        self.responses.setdefault((method, url), []).append(FakeResponse(status, body))

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if (method, url) in self.errors:
            raise self.errors[(method, url)]
        queue = self.responses.get((method, url)) or [FakeResponse(404, {"message": "No route"})]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def calls_to(self, url):
        return [request for request in self.requests if request[1] == url]


@pytest.fixture
def http():
    fake = FakeHttp()
    fake.add("POST", AUTH_URL, body={"access_token": "ticket-1", "expires_in": 1800})
    return fake


@pytest.fixture
def session(settings, http):
    return KiboSession(settings, http=http)


class TestApiContext:
    """Test cases for ApiContext."""

    def test_headers_skip_missing_values(self):
        context = ApiContext(tenant_id="100", master_catalog="1")

        assert context.headers() == {"x-vol-tenant": "100", "x-vol-master-catalog": "1"}

    def test_from_settings(self, settings):
        context = ApiContext.from_settings(settings)

        assert context.headers() == {
            "x-vol-tenant": "100",
            "x-vol-site": "200",
            "x-vol-catalog": "1",
            "x-vol-master-catalog": "1",
        }

    def test_from_settings_without_site_and_catalog(self, settings):
        context = ApiContext.from_settings(settings, include_site=False, include_catalog=False)

        assert context.site_id is None
        assert context.catalog_id is None
        assert context.tenant_id == "100"


class TestTokenCache:
    """Test cases for TokenCache."""

    def test_token_expires_with_leeway(self, clock):
        cache = TokenCache(clock=clock)
        cache.store("ticket", 120)

        assert cache.is_valid()
        clock.advance(59)
        assert cache.is_valid()
        clock.advance(2)
        assert not cache.is_valid()

    def test_default_lifetime_and_clear(self, clock):
        cache = TokenCache(clock=clock)
        cache.store("ticket", None)

        assert cache.expires_at == 3540.0
        cache.clear()
        assert not cache.is_valid()
        assert cache.access_token is None


class TestAuthentication:
    """Test cases for app ticket handling."""

    @pytest.mark.asyncio
    async def test_requests_ticket_with_client_credentials(self, session, http):
        token = await session.authenticate()

        assert token == "ticket-1"
        method, url, kwargs = http.requests[0]
        assert (method, url) == ("POST", AUTH_URL)
        assert kwargs["json"] == {
            "client_id": "tenant.app.1.0.0.Release",
            "client_secret": "s3cr3t",
            "grant_type": "client_credentials",
        }

    @pytest.mark.asyncio
    async def test_ticket_is_reused(self, session, http):
        http.add("GET", f"{API_URL}/api/commerce/channels", body={"items": []})

        await session.request("GET", "/api/commerce/channels")
        await session.request("GET", "/api/commerce/channels")

        assert len(http.calls_to(AUTH_URL)) == 1

    @pytest.mark.asyncio
    async def test_missing_credentials(self, settings, http):
        session = KiboSession(replace(settings, shared_secret=""), http=http)

        with pytest.raises(ConfigurationError) as exc_info:
            await session.authenticate()

        assert exc_info.value.missing == ["shared_secret"]
        assert http.requests == []

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, settings):
        http = FakeHttp()
        http.add("POST", AUTH_URL, status=401, body={"message": "Invalid client"})

        with pytest.raises(AuthenticationError, match="HTTP 401: Invalid client"):
            await KiboSession(settings, http=http).authenticate()

    @pytest.mark.asyncio
    async def test_unreachable_auth_host(self, settings):
        http = FakeHttp()
        http.errors[("POST", AUTH_URL)] = aiohttp.ClientConnectionError("refused")

        with pytest.raises(AuthenticationError, match="Could not reach auth host"):
            await KiboSession(settings, http=http).authenticate()


class TestRequest:
    """Test cases for KiboSession.request."""

    @pytest.mark.asyncio
    async def test_sends_ticket_context_and_query(self, session, http):
        path = "/api/commerce/catalog/admin/categories/5"
        http.add("DELETE", f"{API_URL}{path}")

        result = await session.request("DELETE", path, params={"cascadeDelete": True})

        assert result is None
        method, url, kwargs = http.requests[-1]
        assert kwargs["params"] == {"cascadeDelete": "true"}
        assert kwargs["headers"]["Authorization"] == "Bearer ticket-1"
        assert kwargs["headers"]["x-vol-tenant"] == "100"
        assert kwargs["headers"]["x-vol-site"] == "200"

    @pytest.mark.asyncio
    async def test_returns_decoded_json(self, session, http):
        http.add("POST", f"{API_URL}/api/commerce/channels", body={"code": "online"})

        result = await session.request("POST", "/api/commerce/channels", json={"code": "online"})

        assert result == {"code": "online"}
        assert http.requests[-1][2]["json"] == {"code": "online"}

    @pytest.mark.asyncio
    async def test_error_status_raises_api_error(self, session, http):
        path = "/api/commerce/catalog/admin/products/P1"
        http.add(
            "DELETE",
            f"{API_URL}{path}",
            status=404,
            body={"message": "Product not found", "errorCode": "ITEM_NOT_FOUND"},
        )

        with pytest.raises(ApiError) as exc_info:
            await session.request("DELETE", path)

        error = exc_info.value
        assert error.status == 404
        assert error.is_not_found
        assert error.error_code == "ITEM_NOT_FOUND"
        assert error.api_message == "Product not found"
        assert str(error) == f"HTTP 404 on DELETE {path} (ITEM_NOT_FOUND): Product not found"

    @pytest.mark.asyncio
    async def test_unauthorized_clears_ticket(self, session, http):
        http.add("GET", f"{API_URL}/api/content/documenttypes", status=401)

        with pytest.raises(ApiError):
            await session.request("GET", "/api/content/documenttypes")

        assert not session.token_cache.is_valid()

    @pytest.mark.asyncio
    async def test_network_error_raises_api_error(self, session, http):
        http.errors[("GET", f"{API_URL}/api/content/documenttypes")] = (
            aiohttp.ClientConnectionError("reset")
        )

        with pytest.raises(ApiError) as exc_info:
            await session.request("GET", "/api/content/documenttypes")

        assert exc_info.value.status == 0
        assert isinstance(exc_info.value.__cause__, aiohttp.ClientError)

    @pytest.mark.asyncio
    async def test_missing_api_host(self, settings, http):
        session = KiboSession(replace(settings, api_env=""), http=http)

        with pytest.raises(ConfigurationError):
            await session.request("GET", "/api/commerce/channels")


class TestSessionLifecycle:
    """Test cases for opening, closing and deriving sessions."""

    @pytest.mark.asyncio
    async def test_context_manager_owns_http_session(self, settings):
        async with KiboSession(settings) as session:
            assert isinstance(session.http, aiohttp.ClientSession)

        with pytest.raises(RuntimeError):
            session.http

    @pytest.mark.asyncio
    async def test_with_context_shares_http_and_ticket(self, session, http):
        destination = session.with_context(
            ApiContext(tenant_id="300", site_id="400"), api_host="t300.sandbox.mozu.com"
        )
        http.add("GET", "https://t300.sandbox.mozu.com/api/commerce/channels", body={})

        await session.authenticate()
        await destination.request("GET", "/api/commerce/channels")

        assert destination.http is http
        assert destination.token_cache is session.token_cache
        assert len(http.calls_to(AUTH_URL)) == 1
        assert http.requests[-1][2]["headers"]["x-vol-tenant"] == "300"

    def test_api_host_derived_from_tenant(self, settings):
        assert KiboSession(settings).base_url == API_URL

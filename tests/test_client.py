"""
Tests for the authentication coordinator.

The client is driven with authenticator doubles so that timing and
concurrency are fully under test control.
"""

import asyncio

import pytest

import cloudauth
from cloudauth import (
    AuthenticatingClient,
    AuthenticationError,
    AuthenticationTimeout,
    AuthMode,
    ClientState,
    InvalidRegion,
    MissingServices,
    NotAuthenticated,
)

from cloudauth.legacy import Legacy

from .testhelp import (
    TEST_AUTH_TIMEOUT,
    ConfigurableAuthenticator,
    FailingAuthenticator,
    GatedAuthenticator,
    make_credentials,
)


def make_client(authenticator, timeout=1.0, region="zone1.some region", logger=None):
    return AuthenticatingClient(
        make_credentials(region),
        AuthMode.USERPASS,
        timeout=timeout,
        authenticator=authenticator,
        logger=logger,
    )


@pytest.mark.asyncio
class TestAuthenticate:
    async def test_initial_state(self):
        client = make_client(GatedAuthenticator())
        assert client.state is ClientState.UNAUTHENTICATED
        assert not client.is_authenticated()
        assert client.token == ""
        with pytest.raises(NotAuthenticated):
            client.make_service_url("compute")

    async def test_authentication_success(self):
        auth = GatedAuthenticator()
        client = make_client(auth)
        client.set_required_service_types(["compute"])
        auth.open()

        await client.authenticate()

        assert client.is_authenticated()
        assert client.state is ClientState.AUTHENTICATED
        assert client.token == "token-1"
        assert client.tenant_id == "tenant"
        assert client.user_id == "1"
        assert client.make_service_url("compute") == "http://localhost"

    async def test_authenticated_client_does_not_reauthenticate(self):
        auth = GatedAuthenticator()
        auth.open()
        client = make_client(auth)
        await client.authenticate()
        await client.authenticate()
        assert auth.calls == 1

    async def test_make_service_url(self):
        auth = GatedAuthenticator()
        auth.open()
        client = make_client(auth)
        await client.authenticate()
        assert client.make_service_url("compute", ["foo"]) == "http://localhost/foo"
        assert client.make_service_url("compute", ["foo", "bar/"]) == "http://localhost/foo/bar/"

    async def test_authentication_timeout(self, logger):
        auth = GatedAuthenticator()
        client = make_client(auth, timeout=TEST_AUTH_TIMEOUT, logger=logger)

        with pytest.raises(AuthenticationTimeout):
            await client.authenticate()

        # The exchange is still running, not cancelled.
        assert client.state is ClientState.AUTHENTICATING
        assert not client.is_authenticated()
        assert any("Gave up waiting" in m for m in logger.messages), logger.messages

        # Wake up the authenticator after we have timed out.
        auth.open()
        await client.wait_idle()
        assert client.is_authenticated()

        # A later call uses the session from the abandoned exchange.
        await client.authenticate()
        assert auth.calls == 1
        assert client.token == "token-1"

    async def test_timed_out_exchange_blocks_other_callers(self):
        auth = GatedAuthenticator()
        client = make_client(auth, timeout=TEST_AUTH_TIMEOUT)

        with pytest.raises(AuthenticationTimeout):
            await client.authenticate()

        # This caller waits for the guard, which the first exchange still holds.
        waiter = asyncio.ensure_future(client.authenticate())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        auth.open()
        await asyncio.wait_for(waiter, timeout=1.0)
        assert auth.calls == 1
        assert auth.max_in_flight == 1

    async def test_concurrent_callers_authenticate_once(self):
        auth = GatedAuthenticator()
        client = make_client(auth)
        client.set_required_service_types(["compute"])

        async def check_authentication():
            await client.authenticate()
            return client.make_service_url("compute")

        callers = [asyncio.ensure_future(check_authentication()) for _ in range(10)]
        await asyncio.sleep(0.01)
        auth.open()
        urls = await asyncio.gather(*callers)

        assert urls == ["http://localhost"] * 10
        assert auth.calls == 1
        assert auth.max_in_flight == 1

    async def test_authentication_failure(self):
        auth = FailingAuthenticator(AuthenticationError("authentication failed: bad password"))
        client = make_client(auth)

        with pytest.raises(AuthenticationError, match="bad password"):
            await client.authenticate()

        assert client.state is ClientState.FAILED
        assert not client.is_authenticated()
        assert client.session is None

    async def test_unexpected_error_is_wrapped(self):
        client = make_client(FailingAuthenticator(RuntimeError("boom")))
        with pytest.raises(AuthenticationError, match="boom") as exc_info:
            await client.authenticate()
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_failed_client_retries(self):
        auth = FailingAuthenticator(AuthenticationError("authentication failed"))
        client = make_client(auth)
        for _ in range(2):
            with pytest.raises(AuthenticationError):
                await client.authenticate()
        assert auth.calls == 2

    async def test_failure_keeps_previous_session(self):
        auth = GatedAuthenticator()
        auth.open()
        client = make_client(auth)
        await client.authenticate()
        previous = client.session

        assert await client.invalidate_session("token-1")
        client._authenticator = FailingAuthenticator(AuthenticationError("authentication failed"))
        with pytest.raises(AuthenticationError):
            await client.authenticate()

        assert client.session is previous
        assert client.token == "token-1"
        assert client.make_service_url("compute") == "http://localhost"

    async def test_session_without_token_fails(self):
        client = make_client(NoTokenAuthenticator())
        with pytest.raises(AuthenticationError, match="no token"):
            await client.authenticate()
        assert client.state is ClientState.FAILED


class NoTokenAuthenticator(cloudauth.Authenticator):
    async def auth(self, credentials):
        return cloudauth.SessionDetails(token="", region_service_urls={})


@pytest.mark.asyncio
class TestServiceURLs:
    async def authenticated_client(self, urls, region="zone1.some region"):
        client = make_client(ConfigurableAuthenticator(urls), region=region)
        await client.authenticate()
        return client

    async def test_region_zone_and_region_combine(self):
        client = await self.authenticated_client(
            {
                "zone1.some region": {"compute": "http://nova1"},
                "some region": {"object-store": "http://swift"},
            }
        )
        client.set_required_service_types(["compute", "object-store"])
        assert client.make_service_url("compute", ["servers"]) == "http://nova1/servers"
        assert client.make_service_url("object-store") == "http://swift"

    async def test_trailing_slash_endpoint(self):
        client = await self.authenticated_client({"zone1.some region": {"compute": "http://nova1/"}})
        assert client.make_service_url("compute", ["servers"]) == "http://nova1/servers"

    async def test_invalid_region(self):
        client = await self.authenticated_client({"other": {"compute": "http://nova"}}, region="nowhere")
        with pytest.raises(InvalidRegion, match='invalid region "nowhere"'):
            client.make_service_url("compute")

    async def test_missing_services_suggests_regions(self):
        client = await self.authenticated_client(
            {
                "zone1.some region": {"compute": "http://nova1"},
                "zone2.other": {"compute": "http://nova2", "object-store": "http://swift2"},
            }
        )
        client.set_required_service_types(["compute", "object-store"])
        with pytest.raises(MissingServices) as exc_info:
            client.make_service_url("compute")
        assert exc_info.value.missing == ["object-store"]
        assert exc_info.value.suggested_regions == ["zone2.other"]
        assert "zone2.other" in str(exc_info.value)

    async def test_service_not_available(self):
        client = await self.authenticated_client({"zone1.some region": {"compute": "http://nova1"}})
        with pytest.raises(cloudauth.ServiceNotAvailable):
            client.make_service_url("object-store")


class FakeTransport:
    """Transport double answering from a queue of outcomes."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []

    async def json_request(self, method, url, token="", request=None):
        self.requests.append((method, url, token))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    binary_request = json_request

    async def close(self):
        pass


class SequenceAuthenticator(cloudauth.Authenticator):
    def __init__(self):
        self.calls = 0

    async def auth(self, credentials):
        self.calls += 1
        return cloudauth.SessionDetails(
            token=f"token-{self.calls}",
            region_service_urls={credentials.region: {"compute": "http://nova"}},
        )


@pytest.mark.asyncio
class TestSendRequest:
    async def test_signed_request(self):
        transport = FakeTransport([cloudauth.Response(status=200, headers={}, value={"ok": True})])
        auth = SequenceAuthenticator()
        client = AuthenticatingClient(
            make_credentials(), AuthMode.USERPASS, transport=transport, authenticator=auth
        )

        response = await client.send_request("GET", "compute", ["servers"])

        assert response.value == {"ok": True}
        assert transport.requests == [("GET", "http://nova/servers", "token-1")]
        assert auth.calls == 1

    async def test_reauthenticates_once_on_401(self):
        url = "http://nova/servers"
        transport = FakeTransport(
            [
                cloudauth.Unauthorised("GET", url, 401, "expired"),
                cloudauth.Response(status=200, headers={}),
            ]
        )
        auth = SequenceAuthenticator()
        client = AuthenticatingClient(
            make_credentials(), AuthMode.USERPASS, transport=transport, authenticator=auth
        )

        response = await client.send_request("GET", "compute", ["servers"])

        assert response.status == 200
        assert [token for _, _, token in transport.requests] == ["token-1", "token-2"]
        assert auth.calls == 2
        assert client.is_authenticated()

    async def test_second_401_is_raised(self):
        url = "http://nova/servers"
        transport = FakeTransport(
            [
                cloudauth.Unauthorised("GET", url, 401, "expired"),
                cloudauth.Unauthorised("GET", url, 401, "still expired"),
            ]
        )
        client = AuthenticatingClient(
            make_credentials(), AuthMode.USERPASS, transport=transport, authenticator=SequenceAuthenticator()
        )
        with pytest.raises(cloudauth.Unauthorised):
            await client.send_request("GET", "compute", ["servers"])
        assert len(transport.requests) == 2

    async def test_forbidden_is_not_retried(self):
        transport = FakeTransport([cloudauth.Unauthorised("GET", "http://nova/x", 403, "no")])
        auth = SequenceAuthenticator()
        client = AuthenticatingClient(make_credentials(), AuthMode.USERPASS, transport=transport, authenticator=auth)
        with pytest.raises(cloudauth.Unauthorised):
            await client.send_request("GET", "compute", ["x"])
        assert auth.calls == 1

    async def test_invalidate_stale_token(self):
        client = AuthenticatingClient(
            make_credentials(), AuthMode.USERPASS, transport=FakeTransport([]), authenticator=SequenceAuthenticator()
        )
        assert not await client.invalidate_session("token-1")
        await client.authenticate()
        assert not await client.invalidate_session("other")
        assert await client.invalidate_session("token-1")
        assert client.state is ClientState.UNAUTHENTICATED
        assert client.token == "token-1"

    async def test_invalidate_waits_for_exchange_in_flight(self):
        first = GatedAuthenticator()
        first.open()
        client = make_client(first)
        await client.authenticate()
        assert await client.invalidate_session("token-1")

        second = GatedAuthenticator()
        second.calls = 1  # next session gets token-2
        client._authenticator = second
        exchange = asyncio.ensure_future(client.authenticate())
        await asyncio.sleep(0.01)
        invalidation = asyncio.ensure_future(client.invalidate_session("token-1"))
        await asyncio.sleep(0.01)
        assert not invalidation.done()

        second.open()
        await exchange
        # The exchange published a new session, so the stale token changes nothing.
        assert not await invalidation
        assert client.is_authenticated()


@pytest.mark.asyncio
class TestPublicClient:
    async def test_public_request_is_anonymous(self):
        transport = FakeTransport([cloudauth.Response(status=200, headers={})])
        client = cloudauth.new_public_client("http://public.example/", transport=transport)
        assert client.make_service_url("anything", ["a", "b"]) == "http://public.example/a/b"
        await client.send_request("GET", "object-store", ["a"])
        assert transport.requests == [("GET", "http://public.example/a", "")]


def test_new_client_uses_requested_mode():
    client = cloudauth.new_client(make_credentials(), AuthMode.LEGACY, timeout=5.0)
    assert client.timeout == 5.0
    assert isinstance(client._authenticator, Legacy)


def test_non_validating_clients():
    client = cloudauth.new_non_validating_client(make_credentials(), AuthMode.USERPASS)
    assert client.transport.validate_ssl is False
    public = cloudauth.new_non_validating_public_client("http://public")
    assert public.transport.validate_ssl is False

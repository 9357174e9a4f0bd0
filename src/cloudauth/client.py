"""
Clients for region-partitioned cloud services.

AuthenticatingClient exchanges credentials for a session exactly once, no
matter how many tasks ask for it at the same time, and resolves service
endpoints from that session. PublicClient talks to a fixed base URL without
credentials.
"""

import asyncio
from typing import Iterable, Optional, Sequence

from .identity import new_authenticator
from .models import (
    AuthenticationError,
    AuthenticationTimeout,
    Authenticator,
    AuthMode,
    ClientState,
    Credentials,
    Logger,
    SessionDetails,
    Unauthorised,
)
from .regions import join_url
from .regions import make_service_url as resolve_service_url
from .timeout import start_with_timeout
from .transport import HTTPTransport, RequestData, Response

AUTHENTICATION_DEFAULT_TIMEOUT: float = 60.0
"""Default time (seconds) a caller waits for an authentication exchange.

Bounds the caller's wait only. An exchange still running when the caller
gives up is left to finish and its session is kept.
"""


async def _dispatch(
    transport: HTTPTransport,
    method: str,
    url: str,
    token: str,
    request: Optional[RequestData],
    binary: bool,
) -> Response:
    if binary:
        return await transport.binary_request(method, url, token, request)
    return await transport.json_request(method, url, token, request)


class AuthenticatingClient:
    """
    Client that authenticates on demand and signs requests with the session token.

    Session state is owned by the client. Every change happens while the
    authentication guard is held, and a new session is published with a
    single reference assignment, so readers see either the previous session
    or the new one in full.
    """

    def __init__(
        self,
        credentials: Credentials,
        auth_mode: AuthMode,
        transport: Optional[HTTPTransport] = None,
        timeout: float = AUTHENTICATION_DEFAULT_TIMEOUT,
        logger: Optional[Logger] = None,
        authenticator: Optional[Authenticator] = None,
        validate_ssl: bool = True,
    ):
        self.credentials = credentials
        self.auth_mode = auth_mode
        self._owns_transport = transport is None
        self.transport = (
            transport if transport is not None else HTTPTransport(validate_ssl=validate_ssl, logger=logger)
        )
        self._authenticator = (
            authenticator if authenticator is not None else new_authenticator(auth_mode, self.transport, logger)
        )
        self._timeout = timeout
        self._logger = logger
        self._state = ClientState.UNAUTHENTICATED
        self._session: Optional[SessionDetails] = None
        self._required_service_types: frozenset[str] = frozenset()
        # Held from the start of an exchange until it finishes, even when
        # the caller that started it has stopped waiting.
        self._auth_lock = asyncio.Lock()

    def _log(self, message: str) -> None:
        if self._logger:
            self._logger.log(f"Client: {message}")

    async def __aenter__(self) -> "AuthenticatingClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the transport if the client created it."""
        if self._owns_transport:
            await self.transport.close()

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def session(self) -> Optional[SessionDetails]:
        """The most recently published session, if any."""
        return self._session

    @property
    def token(self) -> str:
        session = self._session
        return session.token if session is not None else ""

    @property
    def tenant_id(self) -> str:
        session = self._session
        return session.tenant_id if session is not None else ""

    @property
    def user_id(self) -> str:
        session = self._session
        return session.user_id if session is not None else ""

    def is_authenticated(self) -> bool:
        return self._state is ClientState.AUTHENTICATED

    def set_required_service_types(self, service_types: Iterable[str]) -> None:
        """Set the service types the configured region must provide.

        Call before the client is shared; it is not safe to change this while
        other tasks resolve service URLs.
        """
        self._required_service_types = frozenset(service_types)

    @property
    def required_service_types(self) -> frozenset[str]:
        return self._required_service_types

    async def authenticate(self) -> None:
        """
        Make sure the client holds a valid session.

        Only one exchange runs at a time. Callers arriving while one is in
        flight wait for it and then find the client authenticated.

        Raises:
            AuthenticationTimeout: If the exchange did not finish within the
                client timeout. The exchange keeps running and its result is
                kept for later calls.
            AuthenticationError: If the exchange finished and failed
        """
        if self._state is ClientState.AUTHENTICATED:
            return

        await self._auth_lock.acquire()
        if self._state is ClientState.AUTHENTICATED:
            self._auth_lock.release()
            return

        self._state = ClientState.AUTHENTICATING
        self._log(f"Authenticating with {self.auth_mode} as user={self.credentials.user}")
        # From here on the lock belongs to the exchange task, which releases it.
        completed, task = await start_with_timeout(self._timeout, self._do_authenticate)
        if not completed:
            self._log(f"Gave up waiting for authentication after {self._timeout}s")
            raise AuthenticationTimeout(f"authentication timed out after {self._timeout}s")

        error = task.exception()
        if error is None:
            return
        if isinstance(error, AuthenticationError):
            raise error
        raise AuthenticationError(f"authentication failed: {error}") from error

    async def _do_authenticate(self) -> None:
        try:
            session = await self._authenticator.auth(self.credentials)
            if not session.token:
                raise AuthenticationError("authentication failed: no token in session")
        except BaseException as e:
            self._state = ClientState.FAILED
            self._log(f"Authentication failed: {e}")
            raise
        else:
            self._session = session
            self._state = ClientState.AUTHENTICATED
            self._log(f"Authenticated tenant_id={session.tenant_id or '<none>'}")
        finally:
            self._auth_lock.release()

    async def wait_idle(self) -> None:
        """Wait for any in-flight authentication exchange to finish."""
        async with self._auth_lock:
            pass

    async def invalidate_session(self, token: str) -> bool:
        """Mark the session built around token as no longer authenticated.

        Waits for any in-flight exchange, then changes state under the
        authentication guard. The session stays readable so endpoint lookups
        keep working until it is replaced. Returns False if token is not the
        current token, which means the session has already been renewed.
        """
        async with self._auth_lock:
            session = self._session
            if session is None or session.token != token or self._state is not ClientState.AUTHENTICATED:
                return False
            self._state = ClientState.UNAUTHENTICATED
            self._log("Session invalidated")
            return True

    def make_service_url(self, service_type: str, parts: Optional[Sequence[str]] = None) -> str:
        """
        Build a URL for service_type in the configured region.

        Args:
            service_type: Service type, e.g. "compute" or "object-store"
            parts: Optional path segments to append

        Raises:
            NotAuthenticated: If no session has been published yet
            InvalidRegion: If the configured region matches no advertised region
            MissingServices: If the region lacks required service types
            ServiceNotAvailable: If the region has no endpoint for service_type
        """
        return resolve_service_url(
            self._session,
            self.credentials.region,
            self._required_service_types,
            service_type,
            parts or (),
        )

    async def send_request(
        self,
        method: str,
        service_type: str,
        parts: Optional[Sequence[str]] = None,
        request: Optional[RequestData] = None,
        binary: bool = False,
    ) -> Response:
        """
        Send a signed request to a service endpoint.

        Authenticates first if needed. A 401 response causes one
        re-authentication and a single retry.

        Raises:
            RequestError: For unexpected status codes or transport failures
        """
        await self.authenticate()
        token = self.token
        url = self.make_service_url(service_type, parts)
        try:
            return await _dispatch(self.transport, method, url, token, request, binary)
        except Unauthorised as e:
            if e.status != 401:
                raise
            self._log(f"{method} {url} unauthorised, re-authenticating")
            await self.invalidate_session(token)

        await self.authenticate()
        url = self.make_service_url(service_type, parts)
        return await _dispatch(self.transport, method, url, self.token, request, binary)


class PublicClient:
    """Client for anonymous access to a fixed base URL."""

    def __init__(
        self,
        base_url: str,
        transport: Optional[HTTPTransport] = None,
        logger: Optional[Logger] = None,
        validate_ssl: bool = True,
    ):
        self.base_url = base_url
        self._owns_transport = transport is None
        self.transport = (
            transport if transport is not None else HTTPTransport(validate_ssl=validate_ssl, logger=logger)
        )

    async def __aenter__(self) -> "PublicClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    def make_service_url(self, service_type: str, parts: Optional[Sequence[str]] = None) -> str:
        """Join parts onto the base URL; every service type shares it."""
        return join_url(self.base_url, parts or ())

    async def send_request(
        self,
        method: str,
        service_type: str,
        parts: Optional[Sequence[str]] = None,
        request: Optional[RequestData] = None,
        binary: bool = False,
    ) -> Response:
        url = self.make_service_url(service_type, parts)
        return await _dispatch(self.transport, method, url, "", request, binary)

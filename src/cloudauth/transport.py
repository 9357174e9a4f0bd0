"""
HTTP transport used for identity exchanges and signed service requests.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import aiohttp

from . import __version__
from .models import DuplicateValue, Logger, NotFound, RequestError, Unauthorised

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"

DEFAULT_REQUEST_TIMEOUT: float = 30.0
"""Default total timeout (seconds) for a single HTTP request."""


def user_agent() -> str:
    return f"cloudauth ({__version__})"


def create_headers(headers: Optional[Mapping[str, str]], content_type: str, token: str = "") -> dict[str, str]:
    """Return a copy of headers with the standard request headers added.

    The X-Auth-Token header is only set when a token is supplied; an empty
    token means the request is sent anonymously.
    """
    result = dict(headers or {})
    result["Content-Type"] = content_type
    result["Accept"] = content_type
    result["User-Agent"] = user_agent()
    if token:
        result["X-Auth-Token"] = token
    return result


@dataclass
class RequestData:
    """Optional parts of a request.

    An empty expected_status accepts any 2xx response.
    """

    headers: dict[str, str] = field(default_factory=dict)
    params: Optional[dict[str, str]] = None
    req_value: Any = None
    req_data: Optional[bytes] = None
    expected_status: Sequence[int] = ()


@dataclass
class Response:
    """A response that passed status checking."""

    status: int
    headers: Mapping[str, str]
    body: bytes = b""
    value: Any = None

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


_STATUS_ERRORS = {
    401: Unauthorised,
    403: Unauthorised,
    404: NotFound,
    409: DuplicateValue,
}


def classify_status(method: str, url: str, status: int, body: str) -> RequestError:
    """Build the RequestError subclass matching an unexpected status."""
    error_cls = _STATUS_ERRORS.get(status, RequestError)
    return error_cls(method, url, status, body)


class HTTPTransport:
    """Sends requests over a lazily created aiohttp session."""

    def __init__(
        self,
        validate_ssl: bool = True,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        logger: Optional[Logger] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.validate_ssl = validate_ssl
        self._timeout = timeout
        self._logger = logger
        self._session = session
        self._owns_session = session is None

    def _log(self, message: str) -> None:
        if self._logger:
            self._logger.log(f"HTTP: {message}")

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = None if self.validate_ssl else aiohttp.TCPConnector(ssl=False)
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                connector=connector,
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the underlying session if this transport created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def json_request(
        self, method: str, url: str, token: str = "", request: Optional[RequestData] = None
    ) -> Response:
        """
        Send a request with a JSON body and decode a JSON response.

        Args:
            method: HTTP method
            url: Absolute URL to send the request to
            token: Session token to sign the request with, empty for anonymous
            request: Optional request details; req_value is serialised as the body

        Returns:
            Response with value holding the decoded body (None for an empty body)

        Raises:
            RequestError: For unexpected status codes, undecodable bodies and
                transport failures
        """
        request = request or RequestData()
        headers = create_headers(request.headers, CONTENT_TYPE_JSON, token)
        data = None
        if request.req_value is not None:
            data = json.dumps(request.req_value).encode("utf-8")
        response = await self._send(method, url, headers, data, request)
        if response.body:
            try:
                response.value = json.loads(response.body)
            except ValueError as e:
                raise RequestError(method, url, response.status, response.text) from e
        return response

    async def binary_request(
        self, method: str, url: str, token: str = "", request: Optional[RequestData] = None
    ) -> Response:
        """Send a request with a raw body; the response body is returned as bytes."""
        request = request or RequestData()
        headers = create_headers(request.headers, CONTENT_TYPE_OCTET_STREAM, token)
        return await self._send(method, url, headers, request.req_data, request)

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        data: Optional[bytes],
        request: RequestData,
    ) -> Response:
        self._log(f"{method} {url}")
        session = self._get_session()
        try:
            async with session.request(method, url, headers=headers, params=request.params, data=data) as resp:
                body = await resp.read()
                status = resp.status
                resp_headers = resp.headers
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self._log(f"{method} {url} failed: {e}")
            raise RequestError(method, url, 0, str(e)) from e

        if request.expected_status:
            ok = status in request.expected_status
        else:
            ok = 200 <= status < 300
        if not ok:
            text = body.decode("utf-8", errors="replace")
            self._log(f"{method} {url} returned status={status}")
            raise classify_status(method, url, status, text)
        return Response(status=status, headers=resp_headers, body=body)

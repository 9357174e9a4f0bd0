"""Legacy (single region) authenticator.

The token endpoint answers a GET carrying X-Auth-User/X-Auth-Key headers with
a token and a management URL in the response headers. There is no service
catalog: per-service endpoints are derived from the management URL by path
convention and filed under the empty region name.
"""

from typing import Optional

from ..models import AuthenticationError, Authenticator, Credentials, Logger, RequestError, SessionDetails
from ..transport import HTTPTransport, RequestData

LEGACY_REGION = ""
LEGACY_SERVICE_TYPES = ("compute", "object-store")


def service_urls_from_management_url(management_url: str) -> dict[str, str]:
    """Derive per-service endpoints from a legacy management URL.

    The server reports the compute endpoint; the other services are siblings
    of it.
    """
    base = management_url.rstrip("/")
    if base.endswith("/compute"):
        base = base[: -len("/compute")]
    return {service_type: f"{base}/{service_type}" for service_type in LEGACY_SERVICE_TYPES}


class Legacy(Authenticator):
    def __init__(self, transport: Optional[HTTPTransport] = None, logger: Optional[Logger] = None):
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else HTTPTransport(logger=logger)
        self._logger = logger

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    def _log(self, message: str) -> None:
        if self._logger:
            self._logger.log(f"Legacy: {message}")

    async def auth(self, credentials: Credentials) -> SessionDetails:
        self._log(f"Authenticating user={credentials.user} against {credentials.url}")
        request = RequestData(
            headers={"X-Auth-User": credentials.user, "X-Auth-Key": credentials.secrets},
            expected_status=(200, 204),
        )
        try:
            response = await self.transport.binary_request("GET", credentials.url, request=request)
        except RequestError as e:
            self._log(f"Token request failed status={e.status}")
            raise AuthenticationError(f"authentication failed: {e}") from e

        token = response.headers.get("X-Auth-Token", "")
        if not token:
            raise AuthenticationError("authentication failed: did not get valid token from auth request")
        management_url = response.headers.get("X-Server-Management-Url", "")
        if not management_url:
            raise AuthenticationError("authentication failed: did not get valid management URL from auth request")

        self._log(f"Token issued, management URL {management_url}")
        return SessionDetails(
            token=token,
            region_service_urls={LEGACY_REGION: service_urls_from_management_url(management_url)},
        )


def new_authenticator(transport: Optional[HTTPTransport] = None, logger: Optional[Logger] = None) -> Authenticator:
    return Legacy(transport, logger)

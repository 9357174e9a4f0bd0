"""
Models and interfaces for the cloudauth library.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Protocol


class AuthMode(Enum):
    """Authentication methods understood by the identity service."""

    LEGACY = "legacy"
    USERPASS = "userpass"
    KEYPAIR = "keypair"

    def __str__(self) -> str:
        return _AUTH_MODE_DESCRIPTIONS[self]


_AUTH_MODE_DESCRIPTIONS = {
    AuthMode.LEGACY: "Legacy Authentication",
    AuthMode.USERPASS: "Username/password Authentication",
    AuthMode.KEYPAIR: "Access/Secret Key Authentication",
}


class ClientState(Enum):
    """Authentication state of a client."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(frozen=True)
class Credentials:
    """Parameters needed to authenticate against the identity service."""

    url: str
    user: str
    secrets: str
    region: str = ""
    tenant_name: str = ""

    def __repr__(self) -> str:
        # Never leak the secret through logs or tracebacks.
        return (
            f"Credentials(url={self.url!r}, user={self.user!r}, secrets='***', "
            f"region={self.region!r}, tenant_name={self.tenant_name!r})"
        )


ServiceURLs = Mapping[str, str]


def _freeze_region_service_urls(
    urls: Mapping[str, Mapping[str, str]]
) -> Mapping[str, ServiceURLs]:
    return MappingProxyType({region: MappingProxyType(dict(services)) for region, services in urls.items()})


@dataclass(frozen=True)
class SessionDetails:
    """Token and endpoint catalog obtained from one successful authentication.

    The region map is copied into read-only mappings, so a published session
    can be shared between concurrent readers without further locking.
    """

    token: str
    tenant_id: str = ""
    user_id: str = ""
    region_service_urls: Mapping[str, ServiceURLs] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "region_service_urls", _freeze_region_service_urls(self.region_service_urls))


class Logger(Protocol):
    """Logger interface."""

    def log(self, message: str) -> None:
        """Log a message."""
        ...


class Authenticator(ABC):
    """A credential exchange strategy."""

    @abstractmethod
    async def auth(self, credentials: Credentials) -> SessionDetails:
        """
        Exchange credentials for a session.

        Args:
            credentials: The long-lived credentials to present

        Returns:
            SessionDetails for the new session

        Raises:
            AuthenticationError: If the server rejects the exchange or the
                response cannot be understood
        """
        ...

    async def close(self) -> None:
        """Release resources the authenticator created for itself."""


# Exception classes
class CloudAuthError(Exception):
    """Base exception for cloudauth library."""


class CredentialsError(CloudAuthError):
    """Raised when credentials cannot be assembled from the environment."""


class AuthenticationError(CloudAuthError):
    """Raised when the identity service rejects a credential exchange."""


class AuthenticationTimeout(CloudAuthError):
    """Raised when a caller gave up waiting for authentication.

    The attempt itself may still succeed later.
    """


class NotAuthenticated(CloudAuthError):
    """Raised when session data is needed before authentication completed."""


class InvalidRegion(CloudAuthError):
    """Raised when the configured region matches no advertised region."""

    def __init__(self, region: str):
        super().__init__(f'invalid region "{region}"')
        self.region = region


class MissingServices(CloudAuthError):
    """Raised when the configured region lacks some required service types."""

    def __init__(
        self,
        region: str,
        required: Iterable[str],
        missing: Iterable[str],
        suggested_regions: Optional[Iterable[str]] = None,
    ):
        self.region = region
        self.required = sorted(required)
        self.missing = sorted(missing)
        self.suggested_regions = list(suggested_regions or [])
        message = (
            f'the configured region "{region}" does not allow access to all required services, '
            f"namely: {', '.join(self.required)}\n"
            f"access to these services is missing: {', '.join(self.missing)}"
        )
        if self.suggested_regions:
            message += f"\none of these regions may be suitable instead: {', '.join(self.suggested_regions)}"
        super().__init__(message)


class ServiceNotAvailable(CloudAuthError):
    """Raised when the requested service type has no endpoint in the region."""

    def __init__(self, service_type: str, region: str):
        super().__init__(f'no endpoints known for service type "{service_type}" in region "{region}"')
        self.service_type = service_type
        self.region = region


class RequestError(CloudAuthError):
    """Raised when a request does not produce an expected status.

    A status of 0 means no response was received at all.
    """

    def __init__(self, method: str, url: str, status: int, body: str = ""):
        if status:
            message = f"request ({url}) returned unexpected status: {status}; error info: {body[:400]}"
        else:
            message = f"failed executing the request {method} {url}"
        super().__init__(message)
        self.method = method
        self.url = url
        self.status = status
        self.body = body


class NotFound(RequestError):
    """Raised for 404 responses."""


class Unauthorised(RequestError):
    """Raised for 401 and 403 responses."""


class DuplicateValue(RequestError):
    """Raised for 409 responses."""

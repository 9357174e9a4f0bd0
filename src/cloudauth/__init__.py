"""
cloudauth - Python Client Library

A Python client library for authenticating against a region-partitioned cloud
identity service and resolving service endpoints for the configured region.
"""

__version__ = "0.1.0"

from .api import (
    DefaultLogger,
    new_client,
    new_non_validating_client,
    new_non_validating_public_client,
    new_public_client,
)
from .client import AUTHENTICATION_DEFAULT_TIMEOUT, AuthenticatingClient, PublicClient
from .config import complete_credentials_from_env, credentials_from_env
from .identity import new_authenticator
from .models import (
    AuthenticationError,
    AuthenticationTimeout,
    Authenticator,
    AuthMode,
    ClientState,
    CloudAuthError,
    Credentials,
    CredentialsError,
    DuplicateValue,
    InvalidRegion,
    MissingServices,
    NotAuthenticated,
    NotFound,
    RequestError,
    ServiceNotAvailable,
    SessionDetails,
    Unauthorised,
)
from .transport import HTTPTransport, RequestData, Response

__all__ = [
    "new_client",
    "new_non_validating_client",
    "new_public_client",
    "new_non_validating_public_client",
    "new_authenticator",
    "credentials_from_env",
    "complete_credentials_from_env",
    "AUTHENTICATION_DEFAULT_TIMEOUT",
    "AuthenticatingClient",
    "PublicClient",
    "DefaultLogger",
    "HTTPTransport",
    "RequestData",
    "Response",
    "AuthMode",
    "ClientState",
    "Credentials",
    "SessionDetails",
    "Authenticator",
    "CloudAuthError",
    "CredentialsError",
    "AuthenticationError",
    "AuthenticationTimeout",
    "NotAuthenticated",
    "InvalidRegion",
    "MissingServices",
    "ServiceNotAvailable",
    "RequestError",
    "NotFound",
    "Unauthorised",
    "DuplicateValue",
]

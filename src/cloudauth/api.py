"""
Main API for the cloudauth library.
"""

from typing import Optional

from .client import AUTHENTICATION_DEFAULT_TIMEOUT, AuthenticatingClient, PublicClient
from .config import debugging_enabled
from .models import AuthMode, Credentials, Logger
from .transport import HTTPTransport


class DefaultLogger:
    """Default logger implementation."""

    def log(self, message: str) -> None:
        """Log a message to stdout."""
        print(f"[cloudauth] {message}")


def _default_logger(logger: Optional[Logger]) -> Optional[Logger]:
    # Only log when asked to: either a logger was passed in or
    # CLOUDAUTH_DEBUGGING=true is set.
    if logger is None and debugging_enabled():
        return DefaultLogger()
    return logger


def new_client(
    credentials: Credentials,
    auth_mode: AuthMode,
    transport: Optional[HTTPTransport] = None,
    timeout: float = AUTHENTICATION_DEFAULT_TIMEOUT,
    logger: Optional[Logger] = None,
) -> AuthenticatingClient:
    """
    Create a client that authenticates with credentials on first use.

    Args:
        credentials: Identity service URL, user, secrets, region and tenant
        auth_mode: Authentication method to use
        transport: Optional HTTP transport (e.g. shared, or a test double)
        timeout: Seconds a caller waits for authentication before giving up
        logger: Optional logger instance

    Returns:
        AuthenticatingClient, not yet authenticated
    """
    return AuthenticatingClient(
        credentials, auth_mode, transport, timeout=timeout, logger=_default_logger(logger)
    )


def new_non_validating_client(
    credentials: Credentials,
    auth_mode: AuthMode,
    timeout: float = AUTHENTICATION_DEFAULT_TIMEOUT,
    logger: Optional[Logger] = None,
) -> AuthenticatingClient:
    """Like new_client, but TLS certificates are not verified.

    Meant for test deployments using self-signed certificates.
    """
    return AuthenticatingClient(
        credentials, auth_mode, timeout=timeout, logger=_default_logger(logger), validate_ssl=False
    )


def new_public_client(
    base_url: str,
    transport: Optional[HTTPTransport] = None,
    logger: Optional[Logger] = None,
) -> PublicClient:
    """Create a client for anonymous requests against base_url."""
    return PublicClient(base_url, transport, _default_logger(logger))


def new_non_validating_public_client(base_url: str, logger: Optional[Logger] = None) -> PublicClient:
    return PublicClient(base_url, logger=_default_logger(logger), validate_ssl=False)

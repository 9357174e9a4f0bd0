"""
Authenticator selection.
"""

from typing import Optional

from .keypair import new_authenticator as new_keypair_authenticator
from .legacy import new_authenticator as new_legacy_authenticator
from .models import Authenticator, AuthMode, Logger
from .transport import HTTPTransport
from .userpass import new_authenticator as new_userpass_authenticator

_FACTORIES = {
    AuthMode.LEGACY: new_legacy_authenticator,
    AuthMode.USERPASS: new_userpass_authenticator,
    AuthMode.KEYPAIR: new_keypair_authenticator,
}


def new_authenticator(
    auth_mode: AuthMode,
    transport: Optional[HTTPTransport] = None,
    logger: Optional[Logger] = None,
) -> Authenticator:
    """
    Create the authenticator matching auth_mode.

    Args:
        auth_mode: Authentication method to use
        transport: Optional transport; each authenticator builds its own when None
        logger: Optional logger instance

    Raises:
        ValueError: If auth_mode is not a known AuthMode
    """
    factory = _FACTORIES.get(auth_mode) if isinstance(auth_mode, AuthMode) else None
    if factory is None:
        raise ValueError(f"Invalid identity authorisation mode: {auth_mode}")
    return factory(transport, logger)

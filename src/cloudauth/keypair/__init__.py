"""Access/secret key pair authenticator."""

from typing import Optional

from ..catalog import request_access
from ..models import Authenticator, Credentials, Logger, SessionDetails
from ..transport import HTTPTransport


class KeyPair(Authenticator):
    """Authenticates with an API access key (credentials.user) and secret key.

    The reply has the same shape as a username/password exchange.
    """

    def __init__(self, transport: Optional[HTTPTransport] = None, logger: Optional[Logger] = None):
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else HTTPTransport(logger=logger)
        self._logger = logger

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    def _log(self, message: str) -> None:
        if self._logger:
            self._logger.log(f"KeyPair: {message}")

    async def auth(self, credentials: Credentials) -> SessionDetails:
        self._log(f"Authenticating access_key={credentials.user} against {credentials.url}")
        auth_body = {
            "apiAccessKeyCredentials": {
                "accessKey": credentials.user,
                "secretKey": credentials.secrets,
            },
            "tenantName": credentials.tenant_name,
        }
        return await request_access(self.transport, credentials, auth_body, self._log)


def new_authenticator(transport: Optional[HTTPTransport] = None, logger: Optional[Logger] = None) -> Authenticator:
    return KeyPair(transport, logger)

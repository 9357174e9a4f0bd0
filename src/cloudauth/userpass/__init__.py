"""Username/password authenticator.

Posts a passwordCredentials document to the identity service token endpoint
and builds the session from the returned service catalog.
"""

from typing import Optional

from ..catalog import request_access
from ..models import Authenticator, Credentials, Logger, SessionDetails
from ..transport import HTTPTransport


class UserPass(Authenticator):
    def __init__(self, transport: Optional[HTTPTransport] = None, logger: Optional[Logger] = None):
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else HTTPTransport(logger=logger)
        self._logger = logger

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    def _log(self, message: str) -> None:
        if self._logger:
            self._logger.log(f"UserPass: {message}")

    async def auth(self, credentials: Credentials) -> SessionDetails:
        self._log(f"Authenticating user={credentials.user} against {credentials.url}")
        auth_body = {
            "passwordCredentials": {
                "username": credentials.user,
                "password": credentials.secrets,
            },
            "tenantName": credentials.tenant_name,
        }
        return await request_access(self.transport, credentials, auth_body, self._log)


def new_authenticator(transport: Optional[HTTPTransport] = None, logger: Optional[Logger] = None) -> Authenticator:
    return UserPass(transport, logger)

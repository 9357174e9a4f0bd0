# Test configuration file
"""
Pytest configuration for cloudauth tests.
"""

import os

import pytest
import pytest_asyncio

from cloudauth import Credentials

from . import identityservice


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that talk HTTP to the identity service double")
    config.addinivalue_line("markers", "live: marks tests that need a real identity service")


def pytest_collection_modifyitems(config, items):
    """Mark HTTP tests as integration tests and skip live tests unless configured."""
    for item in items:
        if "identity_server" in getattr(item, "fixturenames", ()):
            item.add_marker(pytest.mark.integration)

        if item.get_closest_marker("live") and not os.environ.get("CLOUDAUTH_TEST_LIVE"):
            item.add_marker(pytest.mark.skip(reason="live identity service not configured (set CLOUDAUTH_TEST_LIVE)"))


class RecordingLogger:
    """Logger that keeps every message for assertions."""

    def __init__(self):
        self.messages = []

    def log(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture(params=["legacy", "userpass", "keypair"])
def identity_flavour(request):
    return request.param


@pytest_asyncio.fixture
async def identity_server(identity_flavour):
    """Start an identity service double of each flavour.

    Yields (service, server, credentials). A "fred" user is registered and,
    for catalog flavours, compute and object-store endpoints are advertised
    the way real deployments split them: compute per zone, object storage for
    the whole region.
    """
    service = {
        "legacy": identityservice.Legacy,
        "userpass": identityservice.UserPass,
        "keypair": identityservice.KeyPair,
    }[identity_flavour]()
    server = await identityservice.start_server(service)
    root = identityservice.server_url(server, "/")
    service.add_user("fred", "secret", "tenant")

    if identity_flavour == "legacy":
        service.set_management_url(root)
        url = root
    else:
        url = identityservice.server_url(server, "/tokens")
        service.add_service(
            identityservice.Service(
                "nova", "compute", [identityservice.Endpoint(root + "compute", "zone1.some region")]
            )
        )
        service.add_service(
            identityservice.Service(
                "nova", "compute", [identityservice.Endpoint("http://nova2.invalid", "zone2.RegionOne")]
            )
        )
        service.add_service(
            identityservice.Service(
                "swift", "object-store", [identityservice.Endpoint(root + "object-store", "some region")]
            )
        )

    credentials = Credentials(
        url=url,
        user="fred",
        secrets="secret",
        region="zone1.some region",
        tenant_name="tenant",
    )
    try:
        yield service, server, credentials
    finally:
        service.gate.set()
        await server.close()

"""
Credentials from environment variables.

Both the current OS_* names and the older NOVA_* / EC2 names are accepted;
for each attribute the first non-empty variable wins.
"""

import os
from dataclasses import fields

from .models import Credentials, CredentialsError

CREDENTIAL_ENV_VARS: dict[str, tuple[str, ...]] = {
    "url": ("OS_AUTH_URL",),
    "user": ("OS_USERNAME", "NOVA_USERNAME", "OS_ACCESS_KEY", "NOVA_API_KEY"),
    "secrets": ("OS_PASSWORD", "NOVA_PASSWORD", "OS_SECRET_KEY", "EC2_SECRET_KEYS", "AWS_SECRET_ACCESS_KEY"),
    "region": ("OS_REGION_NAME", "NOVA_REGION"),
    "tenant_name": ("OS_TENANT_NAME", "NOVA_PROJECT_ID"),
}


def _first_env(names: tuple[str, ...]) -> str:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return ""


def credentials_from_env() -> Credentials:
    """Build credentials from whatever the environment provides."""
    return Credentials(**{attr: _first_env(names) for attr, names in CREDENTIAL_ENV_VARS.items()})


def complete_credentials_from_env() -> Credentials:
    """
    Build credentials from the environment, requiring every attribute.

    Raises:
        CredentialsError: If any attribute has no value
    """
    credentials = credentials_from_env()
    for f in fields(credentials):
        if not getattr(credentials, f.name):
            raise CredentialsError(f"required environment variable not set for credentials attribute: {f.name}")
    return credentials


def debugging_enabled() -> bool:
    return os.environ.get("CLOUDAUTH_DEBUGGING", "").lower() == "true"

#!/usr/bin/env python3
"""
Example usage of the cloudauth Python library.

This script authenticates with the credentials in the OS_* environment
variables and lists the compute servers of the configured region.
"""

import asyncio
import os

import cloudauth


async def main():
    """Main example function."""
    print("cloudauth Python Library Example")
    print("=" * 40)

    mode = os.environ.get("CLOUDAUTH_AUTH_MODE", "userpass")
    auth_mode = {
        "legacy": cloudauth.AuthMode.LEGACY,
        "userpass": cloudauth.AuthMode.USERPASS,
        "keypair": cloudauth.AuthMode.KEYPAIR,
    }[mode]

    try:
        credentials = cloudauth.complete_credentials_from_env()
        async with cloudauth.new_client(credentials, auth_mode) as client:
            client.set_required_service_types(["compute"])
            await client.authenticate()
            print(f"✓ Authenticated, tenant id: {client.tenant_id or '<none>'}")

            url = client.make_service_url("compute", ["servers"])
            print(f"✓ Compute endpoint: {url}")

            response = await client.send_request("GET", "compute", ["servers"])
            print(f"✓ Servers: {response.value}")

    except cloudauth.CredentialsError as e:
        print(f"❌ {e}")
        print("   Set OS_AUTH_URL, OS_USERNAME, OS_PASSWORD, OS_TENANT_NAME and OS_REGION_NAME")

    except cloudauth.CloudAuthError as e:
        print(f"❌ Error: {e}")


if __name__ == "__main__":
    asyncio.run(main())

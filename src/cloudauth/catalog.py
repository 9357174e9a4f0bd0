"""
Token requests and service catalog parsing shared by the UserPass and KeyPair
authenticators.
"""

from typing import Any, Callable, Optional

from .models import AuthenticationError, Credentials, RequestError, SessionDetails
from .transport import HTTPTransport, RequestData


def parse_access_response(value: Any) -> SessionDetails:
    """
    Build SessionDetails from an identity service access response.

    Every advertised endpoint contributes an entry keyed by its fully
    qualified region name, so "zone1.RegionOne" and "RegionOne" stay
    distinct.

    Raises:
        AuthenticationError: If the response does not carry a token or its
            service catalog is malformed
    """
    if not isinstance(value, dict) or not isinstance(value.get("access"), dict):
        raise AuthenticationError("authentication failed: response has no access section")
    access = value["access"]

    token = access.get("token") or {}
    token_id = token.get("id") if isinstance(token, dict) else None
    if not isinstance(token_id, str) or not token_id:
        raise AuthenticationError("authentication failed: response has no token")
    tenant = token.get("tenant") or {}
    user = access.get("user") or {}
    if not isinstance(tenant, dict) or not isinstance(user, dict):
        raise AuthenticationError("authentication failed: malformed token")

    region_service_urls: dict[str, dict[str, str]] = {}
    catalog = access.get("serviceCatalog") or []
    if not isinstance(catalog, list):
        raise AuthenticationError("authentication failed: malformed service catalog")
    for service in catalog:
        if not isinstance(service, dict):
            raise AuthenticationError("authentication failed: malformed service catalog")
        service_type = service.get("type")
        endpoints = service.get("endpoints") or []
        if not isinstance(service_type, (str, type(None))) or not isinstance(endpoints, list):
            raise AuthenticationError("authentication failed: malformed service catalog")
        if not service_type:
            continue
        for endpoint in endpoints:
            if not isinstance(endpoint, dict):
                raise AuthenticationError("authentication failed: malformed service catalog")
            public_url = endpoint.get("publicURL")
            region = endpoint.get("region") or ""
            if not isinstance(public_url, (str, type(None))) or not isinstance(region, str):
                raise AuthenticationError("authentication failed: malformed service catalog")
            if not public_url:
                continue
            region_service_urls.setdefault(region, {})[service_type] = public_url

    return SessionDetails(
        token=token_id,
        tenant_id=str(tenant.get("id") or ""),
        user_id=str(user.get("id") or ""),
        region_service_urls=region_service_urls,
    )


async def request_access(
    transport: HTTPTransport,
    credentials: Credentials,
    auth_body: dict[str, Any],
    log: Optional[Callable[[str], None]] = None,
) -> SessionDetails:
    """POST an auth document to the token endpoint and parse the reply."""
    try:
        response = await transport.json_request(
            "POST",
            credentials.url,
            request=RequestData(req_value={"auth": auth_body}, expected_status=(200, 203)),
        )
    except RequestError as e:
        if log:
            log(f"token request for user={credentials.user} failed status={e.status}")
        raise AuthenticationError(f"authentication failed: {e}") from e
    details = parse_access_response(response.value)
    if log:
        log(
            f"token issued for user={credentials.user} tenant_id={details.tenant_id or '<none>'} "
            f"regions={sorted(details.region_service_urls)}"
        )
    return details

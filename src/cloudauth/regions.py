"""
Region matching and service URL construction.

Region names may be hierarchical ("zone1.RegionOne"). A configured region
matches an advertised region when the advertised name is the configured one,
or the configured one with leading dot-separated segments stripped. Services
from every matching region are combined, the most specific region winning
when two of them advertise the same service type. The empty region name is
used by region-less (legacy) deployments and matches any configured region.
"""

from typing import Iterable, Mapping, Optional, Sequence

from .models import (
    InvalidRegion,
    MissingServices,
    NotAuthenticated,
    ServiceNotAvailable,
    ServiceURLs,
    SessionDetails,
)


def candidate_regions(region: str) -> list[str]:
    """Return region followed by its broadened forms, most specific first.

    >>> candidate_regions("zone1.RegionOne")
    ['zone1.RegionOne', 'RegionOne', '']
    """
    candidates = [region]
    parts = region.split(".")
    for i in range(1, len(parts)):
        candidates.append(".".join(parts[i:]))
    if region:
        candidates.append("")
    return candidates


def suggest_regions(
    region_service_urls: Mapping[str, ServiceURLs],
    excluded: Iterable[str],
    missing: Iterable[str],
) -> list[str]:
    """Return the regions, sorted by name, that provide every missing service type."""
    excluded = set(excluded)
    missing = set(missing)
    return sorted(
        name
        for name, services in region_service_urls.items()
        if name not in excluded and missing.issubset(services)
    )


def resolve_service_urls(
    region_service_urls: Mapping[str, ServiceURLs],
    region: str,
    required_service_types: Iterable[str] = (),
) -> dict[str, str]:
    """
    Find the service endpoints available to the configured region.

    Args:
        region_service_urls: Advertised endpoints, region -> service type -> URL
        region: The configured region
        required_service_types: Service types the region must provide

    Returns:
        Mapping of service type to endpoint URL

    Raises:
        InvalidRegion: If no advertised region matches
        MissingServices: If a region matches but lacks required service types
    """
    matched = [name for name in candidate_regions(region) if name in region_service_urls]
    if not matched:
        raise InvalidRegion(region)

    service_urls: dict[str, str] = {}
    # Broadest first so that more specific regions overwrite.
    for name in reversed(matched):
        service_urls.update(region_service_urls[name])

    required = set(required_service_types)
    missing = required.difference(service_urls)
    if missing:
        raise MissingServices(
            region,
            required,
            missing,
            suggest_regions(region_service_urls, matched, missing),
        )
    return service_urls


def join_url(base_url: str, parts: Sequence[str] = ()) -> str:
    """Join path parts onto base_url with single slashes.

    With no parts base_url is returned as is, trailing slash included. A
    trailing slash on the final part is kept.
    """
    if not parts:
        return base_url
    segments = [part.strip("/") for part in parts[:-1]]
    segments.append(parts[-1].lstrip("/"))
    return "/".join([base_url.rstrip("/")] + segments)


def make_service_url(
    session: Optional[SessionDetails],
    region: str,
    required_service_types: Iterable[str],
    service_type: str,
    parts: Sequence[str] = (),
) -> str:
    """Build the URL for service_type from a published session.

    Raises:
        NotAuthenticated: If session is None
        InvalidRegion, MissingServices: See resolve_service_urls
        ServiceNotAvailable: If the region has no endpoint for service_type
    """
    if session is None:
        raise NotAuthenticated("cannot make service URL: client is not authenticated")
    service_urls = resolve_service_urls(session.region_service_urls, region, required_service_types)
    base_url = service_urls.get(service_type)
    if not base_url:
        raise ServiceNotAvailable(service_type, region)
    return join_url(base_url, parts)

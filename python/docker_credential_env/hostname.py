"""
Server URL normalization and registry classification.

The docker client hands the helper anything from a bare hostname to a full URL
with a path, so everything is reduced to a lower-case hostname before lookup.
"""

import re
from dataclasses import dataclass
from typing import Union
from urllib.parse import urlsplit

from docker_credential_env.errors import HostnameParseError

DEFAULT_SCHEME = "https://"

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_INVALID_CHARS_RE = re.compile(r"[\s\x00-\x1f\x7f]")

ECR_HOSTNAME_RE = re.compile(r"^(?P<account>[0-9]+)\.dkr\.ecr\.(?P<region>[-a-z0-9]+)\.amazonaws\.com$")
GHCR_HOSTNAME_RE = re.compile(r"^ghcr\.io$")


@dataclass(frozen=True)
class GenericRegistry:
    """Any registry without a dedicated token exchange"""
    hostname: str


@dataclass(frozen=True)
class ManagedCloudRegistry:
    """AWS ECR private registry: <account>.dkr.ecr.<region>.amazonaws.com"""
    hostname: str
    account_id: str
    region: str


@dataclass(frozen=True)
class PackageRegistry:
    """GitHub Container Registry (ghcr.io)"""
    hostname: str


RegistryKind = Union[GenericRegistry, ManagedCloudRegistry, PackageRegistry]


def get_hostname(server_url: str) -> str:
    """Extract the hostname from a server URL, adding a default scheme if missing.

    Examples:
        >>> get_hostname("example.com/path")
        'example.com'
        >>> get_hostname("https://Registry.Example.com:5000/v2/")
        'registry.example.com'

    Raises:
        HostnameParseError: If the value is not a valid URL
    """
    if _INVALID_CHARS_RE.search(server_url):
        raise HostnameParseError(f"invalid server URL {server_url!r}: contains whitespace or control characters")

    url = server_url if _SCHEME_RE.match(server_url) else DEFAULT_SCHEME + server_url

    try:
        parts = urlsplit(url)
        # Accessing the port validates it
        parts.port
    except ValueError as e:
        raise HostnameParseError(f"invalid server URL {server_url!r}: {e}") from e

    hostname = parts.hostname
    if not hostname:
        raise HostnameParseError(f"invalid server URL {server_url!r}: no hostname")
    return hostname


def classify_registry(hostname: str) -> RegistryKind:
    """Map a normalized hostname to the registry kind that handles it"""
    match = ECR_HOSTNAME_RE.match(hostname)
    if match:
        return ManagedCloudRegistry(hostname=hostname, account_id=match.group("account"), region=match.group("region"))

    if GHCR_HOSTNAME_RE.match(hostname):
        return PackageRegistry(hostname=hostname)

    return GenericRegistry(hostname=hostname)

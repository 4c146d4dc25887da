"""
Storage key construction.

Every key is ``prefix:kind[:identifier]``. Identifiers coming from callers are
checked against an allow-list before they are interpolated, so a crafted id
cannot reach into another part of the key space.
"""

import ipaddress
import re

from docshield.services.errors import InvalidKeyError

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,100}$")
IP_PATTERN = re.compile(r"^[0-9a-fA-F:.]{2,45}$")

WORKSPACE_RESOURCE = "workspace"


def _validate(value: str, what: str) -> str:
    if not isinstance(value, str) or not IDENTIFIER_PATTERN.fullmatch(value):
        raise InvalidKeyError(f"Invalid {what} format for cache key")
    return value


def build_key(prefix: str, kind: str, identifier: str | None = None) -> str:
    """Join validated key parts."""
    parts = [_validate(prefix, "key prefix"), _validate(kind, "key kind")]
    if identifier is not None:
        parts.append(_validate(identifier, "identifier"))
    return ":".join(parts)


def list_key(resource: str) -> str:
    """Key of the cached listing of a resource collection."""
    return build_key(resource, "list")


def detail_key(resource: str, item_id: str) -> str:
    """Key of one cached item of a resource collection."""
    return build_key(resource, "detail", item_id)


def workspace_key() -> str:
    return build_key(WORKSPACE_RESOURCE, "info")


def upstream_rate_limit_key(name: str) -> str:
    """Rate-limit counter shared by every call to one upstream."""
    return build_key("ratelimit", name)


def client_rate_limit_key(ip: str) -> str:
    """Rate-limit counter of a single client address (IPv4 or IPv6)."""
    try:
        address = ipaddress.ip_address(ip)
    except ValueError:
        raise InvalidKeyError("Invalid IP address format for rate limit key") from None

    # IPv6 scope ids ("fe80::1%eth0") carry arbitrary caller text
    if getattr(address, "scope_id", None) is not None or not IP_PATTERN.fullmatch(
        address.compressed
    ):
        raise InvalidKeyError("Invalid IP address format for rate limit key")
    return f"ratelimit:ip:{address.compressed}"


def circuit_breaker_key(name: str) -> str:
    return build_key("circuit", name)

"""Client address helpers"""
import ipaddress
from typing import Iterable, Optional

from starlette.requests import Request

# Single-address headers set by the edge proxy
_PROXY_HEADERS = ("cf-connecting-ip", "x-real-ip")


def ip_in_range(ip: str, ip_range: str) -> bool:
    """
    Check if IP address is within CIDR range

    Args:
        ip: IP address string
        ip_range: CIDR notation string (e.g., "10.0.0.0/8")

    Returns:
        True if IP is in range, False otherwise
    """
    try:
        ip_obj = ipaddress.ip_address(ip)
        network = ipaddress.ip_network(ip_range, strict=False)
        return ip_obj in network
    except ValueError:
        return False


def is_valid_ip(ip: str) -> bool:
    """
    Validate IP address format

    Args:
        ip: IP address string

    Returns:
        True if valid IPv4 or IPv6 address, False otherwise
    """
    try:
        ipaddress.ip_address(ip)
        return True
    except ValueError:
        return False


def is_trusted_proxy(ip: str, trusted_proxies: Iterable[str]) -> bool:
    return any(ip_in_range(ip, proxy_range) for proxy_range in trusted_proxies)


def get_client_ip(request: Request, trusted_proxies: Iterable[str] = ()) -> str:
    """
    Client address used as the rate limit identifier.

    Forwarding headers are honoured only when the socket peer is one of the
    trusted proxies; otherwise any caller could pick its own identifier. For
    X-Forwarded-For the chain is walked from the right and the first hop that
    is not a trusted proxy wins.
    """
    trusted_proxies = list(trusted_proxies)
    peer: Optional[str] = request.client.host if request.client else None

    if peer and trusted_proxies and is_trusted_proxy(peer, trusted_proxies):
        for header in _PROXY_HEADERS:
            candidate = (request.headers.get(header) or "").strip()
            if is_valid_ip(candidate):
                return candidate

        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            hops = [hop.strip() for hop in forwarded.split(",")]
            for hop in reversed(hops):
                if not is_valid_ip(hop):
                    break
                if not is_trusted_proxy(hop, trusted_proxies):
                    return hop

    return peer or "unknown"

"""SSRF protection: refuse to fetch hosts that resolve to internal addresses.

A URL supplied by an LLM (or by a prompt-injected page) could point at cloud
metadata endpoints, admin panels on the LAN, or services bound to loopback.
:func:`validate_hostname` resolves the host and blocks the request if **any**
resolved address is private or reserved.  Checking every address, not only
the first, closes the dual-stack trick where a DNS record returns one public
and one private address.

The check runs right before every fetch and is never cached.  It narrows but
does not close the DNS-rebinding window: the connection made afterwards does
its own lookup, which could differ if the record's TTL is near zero.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket

from webreader.errors import BlockedTargetError, UnresolvableHostError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Blocked ranges
# ---------------------------------------------------------------------------
_IPV4_BLOCKED: tuple[tuple[str, ipaddress.IPv4Network], ...] = (
    ("Loopback", ipaddress.IPv4Network("127.0.0.0/8")),
    ("Private Class A", ipaddress.IPv4Network("10.0.0.0/8")),
    ("Private Class B", ipaddress.IPv4Network("172.16.0.0/12")),
    ("Private Class C", ipaddress.IPv4Network("192.168.0.0/16")),
    ("Link-Local", ipaddress.IPv4Network("169.254.0.0/16")),
    ("This Network", ipaddress.IPv4Network("0.0.0.0/8")),
    ("CGNAT", ipaddress.IPv4Network("100.64.0.0/10")),
    ("IETF Protocol Assignments", ipaddress.IPv4Network("192.0.0.0/24")),
    ("Benchmarking", ipaddress.IPv4Network("198.18.0.0/15")),
)

_IPV6_LOOPBACK = ipaddress.IPv6Address("::1")
_IPV6_UNSPECIFIED = ipaddress.IPv6Address("::")
_IPV6_BLOCKED: tuple[tuple[str, ipaddress.IPv6Network], ...] = (
    ("Unique Local", ipaddress.IPv6Network("fc00::/7")),
    ("Link-Local", ipaddress.IPv6Network("fe80::/10")),
)


def _ipv4_block_reason(ip: ipaddress.IPv4Address) -> str | None:
    for label, network in _IPV4_BLOCKED:
        if ip in network:
            return f"{label} ({network})"
    return None


def block_reason(address: str) -> str | None:
    """Return a label for the blocked range *address* falls in, else ``None``.

    IPv6 zone ids (``fe80::1%eth0``) are ignored.  IPv4-mapped IPv6 addresses
    (``::ffff:127.0.0.1``) are unwrapped and checked against the IPv4 ranges.
    Anything that is not an IP literal is reported as blocked.
    """
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0].strip("[]"))
    except ValueError:
        return "Not an IP address"

    if isinstance(ip, ipaddress.IPv4Address):
        return _ipv4_block_reason(ip)

    if ip == _IPV6_LOOPBACK:
        return "Loopback (::1)"
    if ip == _IPV6_UNSPECIFIED:
        return "Unspecified (::)"
    for label, network in _IPV6_BLOCKED:
        if ip in network:
            return f"{label} ({network})"
    if ip.ipv4_mapped is not None:
        reason = _ipv4_block_reason(ip.ipv4_mapped)
        if reason:
            return f"IPv4-mapped {reason}"
    return None


def is_private_ip(address: str) -> bool:
    """Return ``True`` if *address* is private, reserved, or unparseable."""
    return block_reason(address) is not None


# ---------------------------------------------------------------------------
# DNS
# ---------------------------------------------------------------------------

async def _resolve(hostname: str, family: socket.AddressFamily) -> list[str]:
    """Resolve *hostname* for one address *family*; ``[]`` on lookup failure."""
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(
            hostname, None, family=family, type=socket.SOCK_STREAM
        )
    except (OSError, UnicodeError) as exc:
        logger.debug("[network] %s lookup for %s failed: %s", family.name, hostname, exc)
        return []
    return list(dict.fromkeys(str(info[4][0]) for info in infos))


async def resolve_all(hostname: str) -> list[str]:
    """Return every IPv4 and IPv6 address of *hostname*.

    The A and AAAA lookups run independently; one of them failing is not an
    error as long as the other returns something.
    """
    ipv4, ipv6 = await asyncio.gather(
        _resolve(hostname, socket.AF_INET),
        _resolve(hostname, socket.AF_INET6),
    )
    return ipv4 + ipv6


async def validate_hostname(hostname: str) -> None:
    """Raise unless every address *hostname* resolves to is public.

    Raises:
        UnresolvableHostError: No A or AAAA record was found.
        BlockedTargetError: At least one address is private or reserved.
    """
    host = hostname.strip().strip("[]").lower()
    addresses = await resolve_all(host) if host else []
    if not addresses:
        raise UnresolvableHostError(
            f"DNS resolution failed for '{hostname}': no A or AAAA records found. "
            "The hostname may not exist or DNS may be unreachable.",
            hostname=hostname,
        )

    for address in addresses:
        reason = block_reason(address)
        if reason:
            logger.warning(
                "[network] blocked %s: resolves to %s (%s)", hostname, address, reason
            )
            raise BlockedTargetError(
                f"Hostname '{hostname}' resolves to private address {address} "
                f"[{reason}]. Request blocked to prevent SSRF.",
                hostname=hostname,
                address=address,
            )

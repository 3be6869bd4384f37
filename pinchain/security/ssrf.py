"""pinchain.security.ssrf

URL policy for remote checkpoint feeds.

Feed endpoints come from operator config. A feed URL that points at the
node's own network (metadata services, RFC1918, loopback) turns the
checkpoint loader into a scanner of internal hosts. Refuse those unless the operator opts in.

Policy:
- http/https only
- no userinfo
- no localhost
- every resolved address must be public, unless allow_private
"""

from __future__ import annotations

import ipaddress
import socket
from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass(frozen=True, slots=True)
class FeedUrlCheck:
    allowed: bool
    reason: str | None = None
    host: str | None = None


_LOCAL_HOSTS = frozenset({"localhost", "localhost.localdomain"})


def _is_public(ip: str) -> bool:
    addr = ipaddress.ip_address(ip)
    return not (
        addr.is_private
        or addr.is_loopback
        or addr.is_link_local
        or addr.is_multicast
        or addr.is_unspecified
        or addr.is_reserved
    )


def _resolve(host: str) -> set[str]:
    infos = socket.getaddrinfo(host, None)
    return {str(sockaddr[0]) for family, _t, _p, _c, sockaddr in infos if family in (socket.AF_INET, socket.AF_INET6)}


def check_feed_url(url: str, *, allow_private: bool = False) -> FeedUrlCheck:
    """Decide whether a feed URL may be fetched."""

    try:
        u = urlparse(str(url))
    except ValueError:
        return FeedUrlCheck(False, reason="invalid_url")

    if (u.scheme or "").lower() not in ("http", "https"):
        return FeedUrlCheck(False, reason="scheme_not_allowed")
    if u.username or u.password:
        return FeedUrlCheck(False, reason="userinfo_not_allowed")

    host = (u.hostname or "").lower().strip()
    if not host:
        return FeedUrlCheck(False, reason="missing_host")
    if allow_private:
        return FeedUrlCheck(True, host=host)
    if host in _LOCAL_HOSTS:
        return FeedUrlCheck(False, reason="host_denied", host=host)

    try:
        ipaddress.ip_address(host)
    except ValueError:
        pass
    else:
        if _is_public(host):
            return FeedUrlCheck(True, host=host)
        return FeedUrlCheck(False, reason="ip_not_public", host=host)

    try:
        ips = _resolve(host)
    except OSError:
        return FeedUrlCheck(False, reason="dns_resolution_failed", host=host)
    if not ips:
        return FeedUrlCheck(False, reason="dns_no_records", host=host)
    for ip in sorted(ips):
        if not _is_public(ip):
            return FeedUrlCheck(False, reason=f"dns_ip_not_public:{ip}", host=host)
    return FeedUrlCheck(True, host=host)

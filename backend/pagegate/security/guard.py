# backend/pagegate/security/guard.py
"""
Referer / request-path allow-listing.

The functions here only decide. Turning a ``Decision.DENY`` into a 403 is
the caller's job (see ``security.deps``).
"""
from __future__ import annotations

import enum
from typing import AbstractSet, Iterable, Optional, Sequence
from urllib.parse import urlsplit

from .matcher import matches


class Decision(str, enum.Enum):
    ALLOW = "allow"
    DENY = "deny"

    @classmethod
    def of(cls, allowed: bool) -> "Decision":
        return cls.ALLOW if allowed else cls.DENY


def referer_host(referer: Optional[str]) -> Optional[str]:
    """Host part of a Referer URL, case preserved, userinfo and port dropped."""
    if not referer:
        return None
    try:
        netloc = urlsplit(referer).netloc
    except ValueError:
        return None
    host = netloc.rpartition("@")[2]
    if host.startswith("["):  # IPv6 literal
        end = host.find("]")
        host = host[1:end] if end != -1 else ""
    else:
        host = host.partition(":")[0]
    return host or None


def check_access(
    referer_host: Optional[str],
    request_path: str,
    allowed_hosts: AbstractSet[str],
    bypass_patterns: Optional[Sequence[str]] = None,
) -> Decision:
    if referer_host:
        return Decision.of(referer_host in allowed_hosts)
    if bypass_patterns is not None:
        return Decision.of(matches(request_path, bypass_patterns))
    return Decision.DENY


def check_referer(referer: Optional[str], patterns: Iterable[str]) -> Decision:
    if not referer:
        return Decision.DENY
    return Decision.of(matches(referer, patterns))


class AccessGuard:
    """Access checks bound to one allow-list configuration."""

    def __init__(
        self,
        allowed_hosts: Iterable[str],
        bypass_patterns: Optional[Sequence[str]] = None,
    ):
        self.allowed_hosts = frozenset(allowed_hosts)
        self.bypass_patterns = tuple(bypass_patterns) if bypass_patterns is not None else None

    def check_access(self, referer_host: Optional[str], request_path: str) -> Decision:
        return check_access(referer_host, request_path, self.allowed_hosts, self.bypass_patterns)

    def check_referer(self, referer: Optional[str], patterns: Iterable[str]) -> Decision:
        return check_referer(referer, patterns)

    def __repr__(self) -> str:
        return f"AccessGuard(hosts={sorted(self.allowed_hosts)!r}, bypass={self.bypass_patterns!r})"

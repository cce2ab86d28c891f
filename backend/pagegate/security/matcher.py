# backend/pagegate/security/matcher.py
"""
Path allow-list matching for Referer / request-URI checks.

Patterns are "/"-separated segments; ``*`` stands for exactly one segment.
A pattern may be longer than the candidate path as long as the excess
segments are all ``*``:

    matches("/admin/users", ["/admin/*"])  -> True
    matches("/admin",       ["/admin/*"])  -> True
    matches("/public",      ["/admin/*"])  -> False
"""
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

WILDCARD = "*"


def split_segments(path: str) -> List[str]:
    return path.strip("/").split("/")


def url_path(candidate_url: str) -> Optional[str]:
    """Path component of a URL or bare path, ``None`` if there is none."""
    try:
        path = urlsplit(candidate_url).path
    except ValueError:
        return None
    return path or None


def pattern_matches(pattern: List[str], segments: List[str]) -> bool:
    if len(pattern) < len(segments):
        return False
    for i, part in enumerate(pattern):
        if part == WILDCARD:
            continue
        if i >= len(segments) or part != segments[i]:
            return False
    return True


def matches(candidate_url: str, patterns: Iterable[str]) -> bool:
    path = url_path(candidate_url) if candidate_url else None
    if path is None:
        return False
    segments = split_segments(path)
    return any(pattern_matches(split_segments(p), segments) for p in patterns)

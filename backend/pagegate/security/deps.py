# backend/pagegate/security/deps.py
import logging
from typing import Sequence
from fastapi import Depends, HTTPException, Request
from ..shared.config import settings
from .guard import AccessGuard, Decision, check_referer, referer_host

log = logging.getLogger(__name__)

_guard = AccessGuard(settings.allowed_hosts_set, settings.bypass_patterns_list)


def get_access_guard() -> AccessGuard:
    # 테스트에서는 app.dependency_overrides 로 교체
    return _guard


def require_trusted_origin(request: Request, guard: AccessGuard = Depends(get_access_guard)):
    referer = request.headers.get("referer")
    host = referer_host(referer)
    if referer and host is None:
        # Referer 헤더는 있는데 호스트를 못 뽑은 경우: 우회 패턴으로 넘기지 않는다
        decision = Decision.DENY
    else:
        decision = guard.check_access(host, request.url.path)
    if decision is Decision.DENY:
        log.warning(
            "access denied: path=%s referer_host=%s client=%s",
            request.url.path,
            host or "-",
            request.client.host if request.client else "-",
        )
        raise HTTPException(status_code=403, detail="Forbidden")
    return decision


def require_referer_match(patterns: Sequence[str]):
    patterns = tuple(patterns)

    def _dep(request: Request):
        referer = request.headers.get("referer")
        if check_referer(referer, patterns) is Decision.DENY:
            log.warning("referer rejected: path=%s referer=%s", request.url.path, referer or "-")
            raise HTTPException(status_code=403, detail="Forbidden")
        return Decision.ALLOW

    return _dep

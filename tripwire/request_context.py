from __future__ import annotations

from typing import Callable, Optional

from loguru import logger
from starlette.requests import Request

from tripwire_rules import RequestSnapshot, prevent_log_injection

PrincipalResolver = Callable[[Request], Optional[str]]

MAX_HEADER_CHARS = 512


def _hdr(request: Request, name: str) -> str:
    return (request.headers.get(name) or "").strip()


def client_ip(request: Request) -> str:
    """
    Prefer proxy headers over the socket peer:
      X-Forwarded-For (first non-empty entry) -> X-Real-IP -> peer -> "unknown"
    """
    xfwd = _hdr(request, "x-forwarded-for")
    if xfwd:
        for part in xfwd.split(","):
            ip = part.strip()
            if ip:
                return prevent_log_injection(ip, max_len=128)

    real_ip = _hdr(request, "x-real-ip")
    if real_ip:
        return prevent_log_injection(real_ip, max_len=128)

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def resolve_principal(request: Request) -> Optional[str]:
    """
    Authenticated identity, if any.

    Reads scope["user"] (Starlette AuthenticationMiddleware) without going
    through request.user, which asserts when no auth middleware is installed.
    Falls back to request.state.user_id for hosts that stash the id themselves
    (set it from an endpoint or an inner middleware).
    """
    user = request.scope.get("user")
    if user is not None and getattr(user, "is_authenticated", False):
        for attr in ("display_name", "identity"):
            try:
                name = getattr(user, attr, None)
            except NotImplementedError:
                name = None
            if name:
                return str(name)

    # scope["state"] backs request.state; read it directly so the scope is never touched
    state = request.scope.get("state")
    uid = state.get("user_id") if isinstance(state, dict) else None
    if uid:
        return str(uid)
    return None


def safe_principal(request: Request, resolver: PrincipalResolver) -> Optional[str]:
    try:
        uid = resolver(request)
    except Exception:
        logger.opt(exception=True).warning("principal resolver failed path={}", request.url.path)
        return None
    return str(uid) if uid else None


def snapshot(request: Request, resolver: PrincipalResolver = resolve_principal) -> RequestSnapshot:
    ua = _hdr(request, "user-agent")
    return RequestSnapshot(
        path=request.url.path,
        method=request.method.upper(),
        query=request.url.query or "",
        client_ip=client_ip(request),
        user_agent=prevent_log_injection(ua, max_len=MAX_HEADER_CHARS) if ua else None,
        user_id=safe_principal(request, resolver),
    )

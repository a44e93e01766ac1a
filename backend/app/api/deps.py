"""Common FastAPI dependencies.

Default mode (AUTH_ENABLED=false):
  - No login
  - Clients send demo headers: X-User-Id, X-User-Role

With AUTH_ENABLED=true a Bearer JWT is required instead (``sub`` = user id,
``role`` claim).

Either way the result is a ``Principal`` handed explicitly to the services.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from app.core.config import settings
from app.core.principal import ROLES, Principal
from app.core.security import safe_decode_token


def _normalize_role(role: Optional[str]) -> str:
    r = str(role or "").strip().lower()
    return r if r in ROLES else "student"


def _parse_user_id(raw: object) -> Optional[int]:
    try:
        uid = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return uid if uid > 0 else None


def get_current_principal_optional(
    authorization: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
) -> Optional[Principal]:
    if settings.AUTH_ENABLED:
        if not authorization or not authorization.lower().startswith("bearer "):
            return None
        claims = safe_decode_token(authorization.split(" ", 1)[1].strip())
        if not claims:
            return None
        uid = _parse_user_id(claims.get("sub"))
        return Principal(id=uid, role=_normalize_role(claims.get("role"))) if uid else None

    if not x_user_id:
        return None
    uid = _parse_user_id(x_user_id)
    return Principal(id=uid, role=_normalize_role(x_user_role)) if uid else None


def require_principal(principal: Optional[Principal] = Depends(get_current_principal_optional)) -> Principal:
    if not principal:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return principal


def require_instructor(principal: Principal = Depends(require_principal)) -> Principal:
    if not principal.is_instructor:
        raise HTTPException(status_code=403, detail="Instructor role required")
    return principal


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None

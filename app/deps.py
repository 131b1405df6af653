# app/deps.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.request_context import bind_request_context
from app.models.user import User
from app.services.auth import decode_access_token
from app.services.catalog import CatalogService

bearer_scheme = HTTPBearer(auto_error=False)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusinessScope:
    """Verified caller identity; the only source of business_id for catalog calls."""

    business_id: int
    user_id: int
    role: str


def _parse_int(raw: Any) -> Optional[int]:
    """Accepts ints and numeric strings (JWT claims are usually strings)."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        raw = raw.strip()
        if raw.isdigit():
            return int(raw)
    return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Reads the bearer JWT, validates it and loads the active user."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("No token provided")

    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError:
        raise _unauthorized("Invalid or expired token")

    user_id = _parse_int(payload.get("sub"))
    if user_id is None:
        raise _unauthorized("Invalid token (missing subject)")

    user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
    if not user:
        raise _unauthorized("User not found")

    token_business_id = _parse_int(payload.get("business_id"))
    if token_business_id is not None and int(user.business_id) != token_business_id:
        logger.warning(
            "Access denied (business_mismatch): user_id=%s user_business=%s token_business=%s endpoint=%s %s",
            user.id,
            user.business_id,
            token_business_id,
            request.method,
            request.url.path,
        )
        raise _unauthorized("Invalid session")

    request.state.user = user
    return user


def get_business_scope(user: User = Depends(get_current_user)) -> BusinessScope:
    scope = BusinessScope(
        business_id=int(user.business_id),
        user_id=int(user.id),
        role=(user.role or "").strip().lower(),
    )
    bind_request_context(business_id=str(scope.business_id), user_id=str(scope.user_id))
    return scope


def get_catalog_service(
    db: Session = Depends(get_db),
    scope: BusinessScope = Depends(get_business_scope),
) -> CatalogService:
    return CatalogService(db, actor_id=scope.user_id)


def require_role(roles: Iterable[str]):
    """Dependency factory: the caller's role must be one of `roles` (owner implies admin and vice versa)."""
    allowed = {role.strip().lower() for role in roles}
    if "admin" in allowed or "owner" in allowed:
        allowed.update({"admin", "owner"})

    def _dependency(
        request: Request,
        scope: BusinessScope = Depends(get_business_scope),
    ) -> BusinessScope:
        if scope.role not in allowed:
            logger.warning(
                "Access denied (role_denied): user_id=%s business_id=%s role=%s endpoint=%s %s",
                scope.user_id,
                scope.business_id,
                scope.role,
                request.method,
                request.url.path,
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return scope

    return _dependency

# backend/marketplace/dependencies.py
"""
Caller identity.

The auth bridge in front of the API (root domain ↔ tenant subdomains)
verifies the session and forwards ONLY the normalized identity in the
X-User-Id header: the stable external auth id of the caller. Here it is
resolved to a Users row.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .errors import ForbiddenError, UnauthorizedError
from .models.tables import Users


def _find_user(db: Session, auth_id: str) -> Optional[Users]:
    return db.scalars(select(Users).where(Users.auth_id == auth_id).limit(1)).first()


def get_optional_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Optional[Users]:
    if not x_user_id:
        return None
    return _find_user(db, x_user_id)


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Users:
    if not x_user_id:
        raise UnauthorizedError()
    user = _find_user(db, x_user_id)
    if user is None:
        raise ForbiddenError("Unknown user")
    return user


def require_internal_caller(request: Request) -> None:
    """Internal endpoints are reachable from trusted local callers only."""
    client_host = request.client.host if request.client else None
    if client_host is not None and client_host not in settings.internal_allowed_hosts:
        raise ForbiddenError("Internal endpoints are only accessible from localhost")

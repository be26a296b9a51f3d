# backend/marketplace/services/tenants.py
"""
Tenant directory and ownership checks.

Tenant profiles are managed elsewhere; the booking core only needs
slug → id resolution and "does this user own tenant T".
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import ForbiddenError, NotFoundError, UnauthorizedError
from ..models.tables import Tenants, Users


def find_tenant_by_slug(db: Session, slug: str) -> Optional[Tenants]:
    return db.scalars(select(Tenants).where(Tenants.slug == slug).limit(1)).first()


def resolve_tenant_id(db: Session, slug: str) -> Optional[str]:
    tenant = find_tenant_by_slug(db, slug)
    return tenant.id if tenant else None


def get_tenant_or_404(db: Session, tenant_id: str) -> Tenants:
    tenant = db.get(Tenants, tenant_id)
    if not tenant:
        raise NotFoundError("Tenant not found")
    return tenant


def assert_tenant_owner(tenant: Tenants, user: Optional[Users]) -> None:
    """Only the tenant owner may manage its calendar."""
    if user is None:
        raise UnauthorizedError()
    if not tenant.owner_id or tenant.owner_id != user.id:
        raise ForbiddenError("Not your tenant")

"""
Development helpers for wiping orders by status group.

Pending orders still hold `booked` slots. They are canceled through
cancel_and_release() first, so deleting them never strands a slot that
the sweeper could no longer reach.
"""

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, selectinload

from ..models.statuses import OrderStatus
from ..models.tables import Orders
from .reservations import cancel_and_release

logger = logging.getLogger(__name__)

ORDER_GROUPS = {
    "unpaid": (OrderStatus.PENDING, OrderStatus.CANCELED),
    "paid": (OrderStatus.PAID,),
    "all": None,
}


@dataclass
class ClearResult:
    before: int = 0
    matched: int = 0
    released: int = 0
    deleted: int = 0
    after: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def clear_orders(db: Session, group: str) -> ClearResult:
    """Delete orders of a status group ("unpaid", "paid" or "all")."""
    if group not in ORDER_GROUPS:
        raise ValueError(f"Unknown order group {group!r}")
    statuses = ORDER_GROUPS[group]

    def scoped(stmt):
        return stmt.where(Orders.status.in_(statuses)) if statuses else stmt

    count_all = select(func.count()).select_from(Orders)
    result = ClearResult(
        before=db.execute(count_all).scalar(),
        matched=db.execute(scoped(count_all)).scalar(),
    )

    if statuses is None or OrderStatus.PENDING in statuses:
        pending = db.scalars(
            select(Orders)
            .where(Orders.status == OrderStatus.PENDING)
            .options(selectinload(Orders.slots))
        ).all()
        for order in pending:
            outcome = cancel_and_release(db, order.id, order.user_id, order.slot_ids)
            result.released += outcome.released

    # Canceled orders stay in their group, so one DELETE covers both
    result.deleted = db.execute(
        scoped(delete(Orders)).execution_options(synchronize_session=False)
    ).rowcount
    db.commit()
    result.after = db.execute(count_all).scalar()

    logger.info(f"Cleared orders group={group}: {result.to_dict()}")
    return result

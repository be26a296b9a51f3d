# backend/marketplace/services/orders.py
"""
Order storage helpers.

Order.status is the single source of truth for payment/reservation state.
Like slots, orders only change through conditional updates so that the
sweeper and the payment webhook can race without clobbering each other.
"""

from typing import Iterable, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session, selectinload

from ..errors import NotFoundError
from ..models.statuses import OrderStatus, ensure_order_transition
from ..models.tables import Orders, order_slots, utcnow


def get_order_or_404(db: Session, order_id: str) -> Orders:
    order = db.get(Orders, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def attach_slots(db: Session, order_id: str, slot_ids: list[str]) -> None:
    """Store the ordered slot list of an order."""
    if not slot_ids:
        return
    db.execute(
        insert(order_slots),
        [
            {"order_id": order_id, "booking_id": slot_id, "position": position}
            for position, slot_id in enumerate(slot_ids)
        ],
    )


def get_order_by_session_id(db: Session, session_id: str) -> Optional[Orders]:
    """Order created for a payment checkout session, if any."""
    return db.scalars(
        select(Orders)
        .where(Orders.checkout_session_id == session_id)
        .options(selectinload(Orders.slots))
        .limit(1)
    ).first()


def order_slot_ids(db: Session, order_id: str) -> list[str]:
    rows = db.execute(
        select(order_slots.c.booking_id)
        .where(order_slots.c.order_id == order_id)
        .order_by(order_slots.c.position)
    )
    return [row[0] for row in rows]


def update_order_status(
    db: Session,
    order_id: str,
    from_status: OrderStatus,
    to_status: OrderStatus,
    **values,
) -> bool:
    """
    Conditionally move an order from `from_status` to `to_status`.

    Extra keyword arguments are written in the same UPDATE
    (payment ids, receipt url). Returns False when the order was not in
    `from_status` anymore.
    """
    ensure_order_transition(from_status, to_status)

    result = db.execute(
        update(Orders)
        .where(Orders.id == order_id, Orders.status == from_status)
        .values(status=to_status, updated_at=utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    changed = result.rowcount == 1
    if changed:
        loaded = db.identity_map.get(db.identity_key(Orders, order_id))
        if loaded is not None:
            db.expire(loaded)
    return changed


def list_orders_for_user(
    db: Session,
    user_id: str,
    statuses: Iterable[OrderStatus],
    limit: Optional[int] = None,
) -> list[Orders]:
    """Orders of a customer, newest first, slots eagerly loaded."""
    stmt = (
        select(Orders)
        .where(Orders.user_id == user_id, Orders.status.in_(list(statuses)))
        .options(selectinload(Orders.slots))
        .order_by(Orders.created_at.desc(), Orders.id)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.scalars(stmt))


def has_any_order(db: Session, user_id: str, statuses: Iterable[OrderStatus]) -> bool:
    stmt = (
        select(Orders.id)
        .where(Orders.user_id == user_id, Orders.status.in_(list(statuses)))
        .limit(1)
    )
    return db.execute(stmt).first() is not None

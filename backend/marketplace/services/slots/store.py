# backend/marketplace/services/slots/store.py
"""
Slot storage on top of the `bookings` table.

The store is the single source of truth for slot status. Cross-customer
safety rests on update_status(): one conditional UPDATE per id

    UPDATE bookings SET status = :to, ...
    WHERE id = :id AND status = :from [AND customer_id = :customer ...]

which is a compare-and-swap on `status` at the storage layer. Ids that do
not match are silently left out of the result, so callers compare the
returned list with what they asked for to detect partial application.
"""

from datetime import datetime
from typing import Iterable, Mapping, Optional

from sqlalchemy import inspect, select, update
from sqlalchemy.orm import Session

from ...models.statuses import (
    ACTIVE_SLOT_STATUSES,
    DeliveryMode,
    SlotStatus,
    ensure_slot_transition,
)
from ...models.tables import Bookings, utcnow

UNCHANGED = object()

_SORT_FIELDS = {
    "start": Bookings.start,
    "-start": Bookings.start.desc(),
    "end": Bookings.end,
    "created_at": Bookings.created_at,
    "-created_at": Bookings.created_at.desc(),
}


def unique_ids(ids: Iterable[str]) -> list[str]:
    """De-duplicate ids, keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for slot_id in ids:
        if slot_id not in seen:
            seen.add(slot_id)
            out.append(slot_id)
    return out


class SlotStore:
    """Keyed slot storage with conditional status updates."""

    def __init__(self, db: Session):
        self.db = db

    # ── Write ────────────────────────────────────────────────────────────

    def insert(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        mode: DeliveryMode,
        status: SlotStatus = SlotStatus.AVAILABLE,
    ) -> Bookings:
        """
        Insert a slot and flush it.

        A duplicate (tenant_id, start, end) among non-canceled slots raises
        sqlalchemy.exc.IntegrityError; the session must be rolled back.
        """
        slot = Bookings(
            tenant_id=tenant_id,
            start=start,
            end=end,
            mode=mode,
            status=status,
        )
        self.db.add(slot)
        self.db.flush()
        return slot

    def update_status(
        self,
        ids: Iterable[str],
        from_status: SlotStatus,
        to_status: SlotStatus,
        customer_id=UNCHANGED,
        service=UNCHANGED,
        *,
        tenant_id: Optional[str] = None,
        match_customer_id: Optional[str] = None,
        starts_after: Optional[datetime] = None,
    ) -> list[str]:
        """
        Conditionally move slots from `from_status` to `to_status`.

        Args:
            ids: Slot ids to transition
            from_status: Status each slot must currently have
            to_status: New status
            customer_id: New customer (None clears it); UNCHANGED keeps it
            service: Service label written with the status; a mapping gives one
                label per id (ids missing from it get None), None clears it
            tenant_id: Only touch slots of this tenant
            match_customer_id: Only touch slots held by this customer
            starts_after: Only touch slots starting after this moment

        Returns:
            Ids that actually transitioned, in request order.
        """
        ensure_slot_transition(from_status, to_status)

        values = {"status": to_status, "updated_at": utcnow()}
        if customer_id is not UNCHANGED:
            values["customer_id"] = customer_id

        transitioned: list[str] = []
        for slot_id in unique_ids(ids):
            row_values = values
            if service is not UNCHANGED:
                label = service.get(slot_id) if isinstance(service, Mapping) else service
                row_values = {**values, "service": label}

            stmt = update(Bookings).where(
                Bookings.id == slot_id,
                Bookings.status == from_status,
            )
            if tenant_id is not None:
                stmt = stmt.where(Bookings.tenant_id == tenant_id)
            if match_customer_id is not None:
                stmt = stmt.where(Bookings.customer_id == match_customer_id)
            if starts_after is not None:
                stmt = stmt.where(Bookings.start > starts_after)

            result = self.db.execute(
                stmt.values(**row_values).execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                transitioned.append(slot_id)

        self._expire_loaded(transitioned)
        return transitioned

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, slot_id: str) -> Optional[Bookings]:
        return self.db.get(Bookings, slot_id)

    def find_many(
        self,
        *,
        tenant_id: Optional[str] = None,
        ids: Optional[Iterable[str]] = None,
        statuses: Optional[Iterable[SlotStatus]] = None,
        start_before: Optional[datetime] = None,
        end_after: Optional[datetime] = None,
        customer_id: Optional[str] = None,
        order_by: str = "start",
        limit: Optional[int] = None,
    ) -> list[Bookings]:
        """Filter slots by equality, range and set membership in one SELECT."""
        stmt = select(Bookings)
        if tenant_id is not None:
            stmt = stmt.where(Bookings.tenant_id == tenant_id)
        if ids is not None:
            stmt = stmt.where(Bookings.id.in_(list(ids)))
        if statuses is not None:
            stmt = stmt.where(Bookings.status.in_(list(statuses)))
        if start_before is not None:
            stmt = stmt.where(Bookings.start < start_before)
        if end_after is not None:
            stmt = stmt.where(Bookings.end > end_after)
        if customer_id is not None:
            stmt = stmt.where(Bookings.customer_id == customer_id)

        stmt = stmt.order_by(_SORT_FIELDS[order_by], Bookings.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.scalars(stmt))

    def find_exact(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
    ) -> Optional[Bookings]:
        """Non-canceled slot with exactly this interval, if any."""
        stmt = select(Bookings).where(
            Bookings.tenant_id == tenant_id,
            Bookings.start == start,
            Bookings.end == end,
            Bookings.status.in_(ACTIVE_SLOT_STATUSES),
        )
        return self.db.scalars(stmt.limit(1)).first()

    def find_overlapping(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[Bookings]:
        """Non-canceled slots whose [start, end) intersects the given interval."""
        stmt = select(Bookings).where(
            Bookings.tenant_id == tenant_id,
            Bookings.start < end,
            Bookings.end > start,
            Bookings.status.in_(ACTIVE_SLOT_STATUSES),
        )
        if exclude_id is not None:
            stmt = stmt.where(Bookings.id != exclude_id)
        return list(self.db.scalars(stmt.order_by(Bookings.start)))

    # ── Internal ─────────────────────────────────────────────────────────

    def _expire_loaded(self, ids: list[str]) -> None:
        """Drop stale in-session copies of rows changed by bulk UPDATE."""
        if not ids:
            return
        wanted = set(ids)
        for obj in list(self.db.identity_map.values()):
            if isinstance(obj, Bookings) and inspect(obj).identity[0] in wanted:
                self.db.expire(obj)

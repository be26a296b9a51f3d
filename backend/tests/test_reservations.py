"""Tests for slot reservation and the order transitions around it."""

import json
import threading
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import func, select

from conftest import NOW
from marketplace.config import settings
from marketplace.database import SessionLocal
from marketplace.errors import BookingValidationError, NotFoundError, SlotConflictError
from marketplace.models import Bookings, OrderStatus, Orders, SlotStatus
from marketplace.services import events
from marketplace.services.reservations import (
    cancel_pending_order,
    confirm_order_payment,
    reserve_slots,
)

TEN = NOW + timedelta(hours=2)


def _order_count(db) -> int:
    return db.scalar(select(func.count()).select_from(Orders))


@pytest.fixture
def slots(make_slot):
    return [make_slot(TEN + timedelta(hours=i)) for i in range(3)]


class TestReserveSlots:
    def test_reserves_and_opens_pending_order(self, db, tenant, slots, customer):
        ids = [s.id for s in slots[:2]]

        order = reserve_slots(db, tenant.id, ids, customer.id, ttl_seconds=900, now=NOW)

        assert order.status == OrderStatus.PENDING
        assert order.user_id == customer.id
        assert order.reserved_until == NOW + timedelta(seconds=900)
        assert order.slot_ids == ids
        # 2 hours at 40.00/h, 10% platform fee
        assert order.amount == 8000
        assert order.application_fee == 800
        assert order.currency == "eur"

        for slot in slots[:2]:
            db.refresh(slot)
            assert slot.status == SlotStatus.BOOKED
            assert slot.customer_id == customer.id
        db.refresh(slots[2])
        assert slots[2].status == SlotStatus.AVAILABLE

    def test_duplicate_ids_are_reserved_once(self, db, tenant, slots, customer):
        order = reserve_slots(db, tenant.id, [slots[0].id, slots[0].id], customer.id, now=NOW)

        assert order.slot_ids == [slots[0].id]
        assert order.amount == 4000

    def test_all_or_nothing(self, db, tenant, make_slot, customer, other_customer):
        """One taken slot aborts the whole reservation."""
        a = make_slot(TEN)
        b = make_slot(TEN + timedelta(hours=1), SlotStatus.BOOKED, other_customer.id)
        c = make_slot(TEN + timedelta(hours=2))

        with pytest.raises(SlotConflictError) as exc_info:
            reserve_slots(db, tenant.id, [a.id, b.id, c.id], customer.id, now=NOW)

        assert exc_info.value.unavailable_ids == [b.id]
        assert exc_info.value.status_code == 409
        for slot in (a, c):
            db.refresh(slot)
            assert slot.status == SlotStatus.AVAILABLE
            assert slot.customer_id is None
        db.refresh(b)
        assert b.customer_id == other_customer.id
        assert _order_count(db) == 0

    def test_unknown_foreign_and_past_slots_conflict(
        self, db, tenant, other_tenant, make_slot, customer
    ):
        ok = make_slot(TEN)
        foreign = make_slot(TEN, tenant_id=other_tenant.id)
        past = make_slot(NOW - timedelta(hours=1))

        with pytest.raises(SlotConflictError) as exc_info:
            reserve_slots(
                db, tenant.id, [ok.id, foreign.id, past.id, "missing"], customer.id, now=NOW
            )

        assert exc_info.value.unavailable_ids == [foreign.id, past.id, "missing"]
        db.refresh(ok)
        assert ok.status == SlotStatus.AVAILABLE

    def test_slot_starting_now_is_not_reservable(self, db, tenant, make_slot, customer):
        slot = make_slot(NOW)

        with pytest.raises(SlotConflictError):
            reserve_slots(db, tenant.id, [slot.id], customer.id, now=NOW)

    def test_empty_request(self, db, tenant, customer):
        with pytest.raises(BookingValidationError):
            reserve_slots(db, tenant.id, [], customer.id, now=NOW)

    def test_non_positive_ttl(self, db, tenant, slots, customer):
        with pytest.raises(BookingValidationError):
            reserve_slots(db, tenant.id, [slots[0].id], customer.id, ttl_seconds=0, now=NOW)

    def test_unknown_tenant(self, db, slots, customer):
        with pytest.raises(NotFoundError):
            reserve_slots(db, "nope", [slots[0].id], customer.id, now=NOW)

    def test_service_labels_are_stored(self, db, tenant, slots, customer):
        order = reserve_slots(
            db, tenant.id, [s.id for s in slots[:2]], customer.id, now=NOW,
            services={slots[0].id: "yoga-private"},
        )

        db.refresh(slots[0])
        db.refresh(slots[1])
        assert slots[0].service == "yoga-private"
        assert slots[1].service is None

        cancel_pending_order(db, order.id)
        db.refresh(slots[0])
        assert slots[0].service is None
        assert slots[0].status == SlotStatus.AVAILABLE

    def test_service_for_unrequested_slot(self, db, tenant, slots, customer):
        with pytest.raises(BookingValidationError):
            reserve_slots(
                db, tenant.id, [slots[0].id], customer.id, now=NOW,
                services={slots[1].id: "yoga-private"},
            )

        db.refresh(slots[0])
        assert slots[0].status == SlotStatus.AVAILABLE

    def test_zero_rate_tenant_is_rejected(self, db, tenant, slots, customer):
        tenant.hourly_rate = 0
        db.commit()

        with pytest.raises(BookingValidationError, match="Invalid total amount"):
            reserve_slots(db, tenant.id, [slots[0].id], customer.id, now=NOW)

        db.refresh(slots[0])
        assert slots[0].status == SlotStatus.AVAILABLE
        assert slots[0].customer_id is None
        assert _order_count(db) == 0

    def test_emits_event(self, db, tenant, slots, customer):
        mock_redis = MagicMock()

        with patch.object(events, "redis_client", mock_redis), \
                patch.object(settings, "events_enabled", True):
            order = reserve_slots(db, tenant.id, [slots[0].id], customer.id, now=NOW)

        queue, raw = mock_redis.rpush.call_args.args
        event = json.loads(raw)
        assert queue == "events:p2p"
        assert event["type"] == "slots_reserved"
        assert event["order_id"] == order.id
        assert event["slot_ids"] == [slots[0].id]

    def test_redis_outage_does_not_fail_reservation(self, db, tenant, slots, customer):
        from redis.exceptions import ConnectionError as RedisConnectionError

        mock_redis = MagicMock()
        mock_redis.rpush.side_effect = RedisConnectionError("down")

        with patch.object(events, "redis_client", mock_redis), \
                patch.object(settings, "events_enabled", True):
            order = reserve_slots(db, tenant.id, [slots[0].id], customer.id, now=NOW)

        assert order.status == OrderStatus.PENDING


class TestConcurrentReservations:
    def test_exactly_one_customer_wins(self, db, tenant, make_slot, make_user):
        slot = make_slot(TEN)
        customers = [make_user(f"auth_racer_{i}").id for i in range(8)]
        tenant_id = tenant.id
        slot_id = slot.id
        barrier = threading.Barrier(len(customers))
        winners, losers, errors = [], [], []

        def attempt(customer_id):
            session = SessionLocal()
            try:
                barrier.wait()
                reserve_slots(session, tenant_id, [slot_id], customer_id, now=NOW)
                winners.append(customer_id)
            except SlotConflictError:
                losers.append(customer_id)
            except Exception as e:  # surfaced by the assertion below
                errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=attempt, args=(c,)) for c in customers]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=60)

        assert errors == []
        assert len(winners) == 1
        assert len(losers) == len(customers) - 1

        booked = db.get(Bookings, slot_id)
        db.refresh(booked)
        assert booked.status == SlotStatus.BOOKED
        assert booked.customer_id == winners[0]
        assert _order_count(db) == 1


class TestPaymentAndCancel:
    @pytest.fixture
    def order(self, db, tenant, slots, customer):
        return reserve_slots(db, tenant.id, [s.id for s in slots[:2]], customer.id, now=NOW)

    def test_confirm_payment(self, db, order, slots):
        paid = confirm_order_payment(
            db, order.id, payment_intent_id="pi_123", receipt_url="https://r.example/1"
        )

        assert paid.status == OrderStatus.PAID
        assert paid.payment_intent_id == "pi_123"
        assert paid.receipt_url == "https://r.example/1"
        for slot in slots[:2]:
            db.refresh(slot)
            assert slot.status == SlotStatus.CONFIRMED

    def test_confirm_payment_is_idempotent(self, db, order):
        confirm_order_payment(db, order.id, payment_intent_id="pi_1")
        again = confirm_order_payment(db, order.id, payment_intent_id="pi_2")

        assert again.status == OrderStatus.PAID
        assert again.payment_intent_id == "pi_1"

    def test_confirm_unknown_order(self, db):
        with pytest.raises(NotFoundError):
            confirm_order_payment(db, "missing")

    def test_cancel_pending_order_releases_slots(self, db, order, slots):
        canceled = cancel_pending_order(db, order.id)

        assert canceled.status == OrderStatus.CANCELED
        for slot in slots[:2]:
            db.refresh(slot)
            assert slot.status == SlotStatus.AVAILABLE
            assert slot.customer_id is None

    def test_cancel_paid_order_is_noop(self, db, order, slots):
        confirm_order_payment(db, order.id)

        result = cancel_pending_order(db, order.id)

        assert result.status == OrderStatus.PAID
        db.refresh(slots[0])
        assert slots[0].status == SlotStatus.CONFIRMED

    def test_canceled_order_cannot_be_paid(self, db, order):
        cancel_pending_order(db, order.id)

        result = confirm_order_payment(db, order.id)

        assert result.status == OrderStatus.CANCELED

"""Tests for SlotStore."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import NOW
from marketplace.errors import InvalidTransitionError
from marketplace.models import DeliveryMode, SlotStatus
from marketplace.services.slots import SlotStore, unique_ids

TEN = NOW + timedelta(hours=2)


def test_unique_ids_keeps_first_seen_order():
    assert unique_ids(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


class TestInsert:
    def test_insert_assigns_id(self, db, tenant):
        slot = SlotStore(db).insert(tenant.id, TEN, TEN + timedelta(hours=1), DeliveryMode.ONLINE)
        db.commit()

        assert slot.id
        assert slot.status == SlotStatus.AVAILABLE
        assert slot.customer_id is None

    def test_duplicate_interval_rejected(self, db, tenant, make_slot):
        make_slot(TEN)

        with pytest.raises(IntegrityError):
            SlotStore(db).insert(tenant.id, TEN, TEN + timedelta(hours=1), DeliveryMode.ONSITE)
        db.rollback()

    def test_canceled_slot_frees_its_interval(self, db, tenant, make_slot):
        make_slot(TEN, status=SlotStatus.CANCELED)

        slot = SlotStore(db).insert(tenant.id, TEN, TEN + timedelta(hours=1), DeliveryMode.ONLINE)
        db.commit()

        assert slot.status == SlotStatus.AVAILABLE


class TestUpdateStatus:
    def test_only_matching_ids_transition(self, db, make_slot, customer, other_customer):
        free = make_slot(TEN)
        taken = make_slot(TEN + timedelta(hours=1), SlotStatus.BOOKED, other_customer.id)

        moved = SlotStore(db).update_status(
            [free.id, taken.id, "missing"],
            SlotStatus.AVAILABLE,
            SlotStatus.BOOKED,
            customer_id=customer.id,
        )
        db.commit()

        assert moved == [free.id]
        db.refresh(free)
        db.refresh(taken)
        assert free.status == SlotStatus.BOOKED
        assert free.customer_id == customer.id
        assert taken.customer_id == other_customer.id

    def test_loaded_objects_see_new_status(self, db, make_slot, customer):
        slot = make_slot(TEN)
        assert slot.status == SlotStatus.AVAILABLE

        SlotStore(db).update_status([slot.id], SlotStatus.AVAILABLE, SlotStatus.BOOKED, customer.id)

        assert slot.status == SlotStatus.BOOKED
        db.commit()

    def test_match_customer(self, db, make_slot, customer, other_customer):
        slot = make_slot(TEN, SlotStatus.BOOKED, other_customer.id)

        moved = SlotStore(db).update_status(
            [slot.id],
            SlotStatus.BOOKED,
            SlotStatus.AVAILABLE,
            customer_id=None,
            match_customer_id=customer.id,
        )
        db.commit()

        assert moved == []
        db.refresh(slot)
        assert slot.status == SlotStatus.BOOKED

    def test_tenant_and_start_filters(self, db, make_slot, other_tenant, customer):
        foreign = make_slot(TEN, tenant_id=other_tenant.id)
        past = make_slot(NOW - timedelta(hours=1))

        store = SlotStore(db)
        assert store.update_status(
            [foreign.id], SlotStatus.AVAILABLE, SlotStatus.BOOKED, customer.id,
            tenant_id=past.tenant_id,
        ) == []
        assert store.update_status(
            [past.id], SlotStatus.AVAILABLE, SlotStatus.BOOKED, customer.id,
            starts_after=NOW,
        ) == []
        db.commit()

    def test_service_labels_per_id(self, db, make_slot, customer):
        first = make_slot(TEN)
        second = make_slot(TEN + timedelta(hours=1))
        store = SlotStore(db)

        store.update_status(
            [first.id, second.id], SlotStatus.AVAILABLE, SlotStatus.BOOKED, customer.id,
            service={first.id: "massage"},
        )
        db.commit()
        assert (first.service, second.service) == ("massage", None)

        store.update_status([first.id], SlotStatus.BOOKED, SlotStatus.AVAILABLE, None, None)
        db.commit()
        assert first.service is None

    def test_illegal_transition_touches_nothing(self, db, make_slot):
        slot = make_slot(TEN, SlotStatus.CANCELED)

        with pytest.raises(InvalidTransitionError):
            SlotStore(db).update_status([slot.id], SlotStatus.CANCELED, SlotStatus.AVAILABLE)

        db.refresh(slot)
        assert slot.status == SlotStatus.CANCELED


class TestQueries:
    def test_find_many_filters_and_orders(self, db, make_slot, customer):
        late = make_slot(TEN + timedelta(hours=3))
        early = make_slot(TEN)
        booked = make_slot(TEN + timedelta(hours=1), SlotStatus.BOOKED, customer.id)

        store = SlotStore(db)
        assert [s.id for s in store.find_many(tenant_id=early.tenant_id)] == [
            early.id, booked.id, late.id,
        ]
        assert [s.id for s in store.find_many(statuses=[SlotStatus.BOOKED])] == [booked.id]
        assert [s.id for s in store.find_many(customer_id=customer.id)] == [booked.id]
        assert [s.id for s in store.find_many(order_by="-start", limit=1)] == [late.id]

    def test_find_exact_ignores_canceled(self, db, tenant, make_slot):
        make_slot(TEN, status=SlotStatus.CANCELED)
        store = SlotStore(db)

        assert store.find_exact(tenant.id, TEN, TEN + timedelta(hours=1)) is None

        slot = make_slot(TEN)
        assert store.find_exact(tenant.id, TEN, TEN + timedelta(hours=1)).id == slot.id

    def test_find_overlapping(self, db, tenant, make_slot):
        slot = make_slot(TEN)
        make_slot(TEN + timedelta(hours=1))  # touches, does not overlap
        store = SlotStore(db)

        hits = store.find_overlapping(
            tenant.id, TEN + timedelta(minutes=30), TEN + timedelta(minutes=90)
        )
        assert len(hits) == 2

        hits = store.find_overlapping(tenant.id, TEN, TEN + timedelta(hours=1), exclude_id=slot.id)
        assert hits == []

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

from .statuses import DeliveryMode, OrderStatus, SlotStatus

Base = declarative_base()
metadata = Base.metadata


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    """Naive UTC timestamp; all datetimes are stored as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _status_enum(enum_cls, name: str) -> Enum:
    # Stored as plain strings ("available", "pending", ...), validated on write
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=16,
        values_callable=lambda e: [m.value for m in e],
        validate_strings=True,
    )


class Users(Base):
    __tablename__ = 'users'

    id = Column(Text, primary_key=True, default=new_id)
    auth_id = Column(Text, nullable=False, unique=True)
    email = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    tenants = relationship('Tenants', back_populates='owner')


class Tenants(Base):
    __tablename__ = 'tenants'

    id = Column(Text, primary_key=True, default=new_id)
    slug = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    owner_id = Column(ForeignKey('users.id', ondelete='SET NULL'))
    hourly_rate = Column(Float, nullable=False, server_default=text('0'))
    created_at = Column(DateTime, nullable=False, default=utcnow)

    owner = relationship('Users', back_populates='tenants')
    bookings = relationship('Bookings', back_populates='tenant')


class Bookings(Base):
    """One bookable interval of a tenant calendar (a "slot")."""

    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_tenant_start', 'tenant_id', 'start'),
        Index('ix_bookings_tenant_end', 'tenant_id', 'end'),
        # Exact-duplicate guard; canceled slots free their interval
        Index(
            'uq_bookings_tenant_interval',
            'tenant_id', 'start', 'end',
            unique=True,
            sqlite_where=text("status != 'canceled'"),
            postgresql_where=text("status != 'canceled'"),
        ),
    )

    id = Column(Text, primary_key=True, default=new_id)
    tenant_id = Column(ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False, index=True)
    customer_id = Column(ForeignKey('users.id', ondelete='SET NULL'))
    start = Column(DateTime, nullable=False)
    end = Column(DateTime, nullable=False)
    mode = Column(_status_enum(DeliveryMode, 'delivery_mode'), nullable=False)
    status = Column(
        _status_enum(SlotStatus, 'slot_status'),
        nullable=False,
        default=SlotStatus.AVAILABLE,
        index=True,
    )
    service = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    tenant = relationship('Tenants', back_populates='bookings')
    customer = relationship('Users')


order_slots = Table(
    'order_slots', metadata,
    Column('order_id', ForeignKey('orders.id', ondelete='CASCADE'), primary_key=True),
    Column('booking_id', ForeignKey('bookings.id', ondelete='CASCADE'), primary_key=True),
    Column('position', Integer, nullable=False, server_default=text('0')),
)


class Orders(Base):
    __tablename__ = 'orders'
    __table_args__ = (
        Index('ix_orders_status_reserved_until', 'status', 'reserved_until'),
    )

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(ForeignKey('users.id'), nullable=False, index=True)
    tenant_id = Column(ForeignKey('tenants.id'), nullable=False)
    status = Column(
        _status_enum(OrderStatus, 'order_status'),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    reserved_until = Column(DateTime)
    amount = Column(Integer, nullable=False)  # cents
    currency = Column(Text, nullable=False, server_default=text("'eur'"))
    application_fee = Column(Integer)  # cents
    checkout_session_id = Column(Text, index=True)
    payment_intent_id = Column(Text, index=True)
    receipt_url = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user = relationship('Users')
    tenant = relationship('Tenants')
    slots = relationship(
        'Bookings',
        secondary=order_slots,
        order_by=order_slots.c.position,
        viewonly=True,
    )

    @property
    def slot_ids(self) -> list[str]:
        return [slot.id for slot in self.slots]

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, BigInteger, JSON, CheckConstraint, Enum as SAEnum
from datetime import datetime
from storefront.db.session import Base
from storefront.domain.timeline import OrderStatus, RegistrationStatus, EventStatus, utcnow

class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_orders_subtotal"),
        CheckConstraint("total >= 0", name="ck_orders_total"),
        CheckConstraint("shipping_fee >= 0", name="ck_orders_shipping_fee"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    status: Mapped[OrderStatus] = mapped_column(SAEnum(OrderStatus, name="order_status"), default=OrderStatus.PENDING)
    shipping_fee: Mapped[int] = mapped_column(BigInteger, default=0)
    subtotal: Mapped[int] = mapped_column(BigInteger, default=0)
    # legacy order-wide discount, kept at 0 once line items carry the discounts
    discount: Mapped[int] = mapped_column(BigInteger, default=0)
    total: Mapped[int] = mapped_column(BigInteger, default=0)
    shipping_address: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    request_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    returned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    items = relationship(
        "OrderLineItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderLineItem.id"
    )

    __mapper_args__ = {"version_id_col": version}

class OrderLineItem(Base):
    __tablename__ = "order_line_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_line_items_quantity"),
        CheckConstraint("discount >= 0", name="ck_order_line_items_discount"),
        CheckConstraint("discount <= price * quantity", name="ck_order_line_items_discount_max"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), index=True)
    product_id: Mapped[int] = mapped_column(Integer)
    title_snapshot: Mapped[str] = mapped_column(String(255), default="")
    quantity: Mapped[int] = mapped_column(Integer)
    price: Mapped[int] = mapped_column(BigInteger)
    discount: Mapped[int] = mapped_column(BigInteger, default=0)

    order = relationship("Order", back_populates="items")

class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="ck_events_available_seats_min"),
        CheckConstraint("available_seats <= total_seats", name="ck_events_available_seats_max"),
        CheckConstraint("price >= 0", name="ck_events_price"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    location: Mapped[str] = mapped_column(String(255), default="")
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    price: Mapped[int] = mapped_column(BigInteger, default=0)
    status: Mapped[EventStatus] = mapped_column(SAEnum(EventStatus, name="event_status"), default=EventStatus.UPCOMING)
    total_seats: Mapped[int] = mapped_column(Integer)
    available_seats: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    registrations = relationship("EventRegistration", back_populates="event", order_by="EventRegistration.id")

    __mapper_args__ = {"version_id_col": version}

class EventRegistration(Base):
    __tablename__ = "event_registrations"
    __table_args__ = (
        CheckConstraint("seats_reserved >= 1", name="ck_event_registrations_seats"),
        CheckConstraint("price >= 0", name="ck_event_registrations_price"),
        CheckConstraint("discount >= 0", name="ck_event_registrations_discount"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_id: Mapped[int] = mapped_column(ForeignKey("events.id"), index=True)
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    seats_reserved: Mapped[int] = mapped_column(Integer, default=1)
    price: Mapped[int] = mapped_column(BigInteger, default=0)
    discount: Mapped[int] = mapped_column(BigInteger, default=0)
    status: Mapped[RegistrationStatus] = mapped_column(
        SAEnum(RegistrationStatus, name="registration_status"), default=RegistrationStatus.PENDING
    )

    request_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    event = relationship("Event", back_populates="registrations")

    __mapper_args__ = {"version_id_col": version}

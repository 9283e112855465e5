"""Events, registrations and the seats they hold.

Status changes and seat moves are written in the same transaction; when the
event cannot cover a registration the whole change is rejected and neither
row is touched.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.core.logging import get_logger
from storefront.db import models
from storefront.db.transaction import get_for_update, transactional
from storefront.domain import seating
from storefront.domain.errors import CapacityError, NotFoundError, ValidationError
from storefront.domain.timeline import REGISTRATION_TIMELINE, EventStatus, RegistrationStatus, parse_status, utcnow
from storefront.domain.transitions import apply_patch, timestamps_of, transition

logger = get_logger(__name__)

OPEN_EVENT_STATUSES = (EventStatus.UPCOMING, EventStatus.ACTIVE)
INACTIVE_REGISTRATION_STATUSES = (RegistrationStatus.CANCELLED, RegistrationStatus.REJECTED)


def _lock_event(db: Session, event_id: int) -> models.Event:
    event = get_for_update(db, models.Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


def _lock_registration(db: Session, registration_id: int) -> models.EventRegistration:
    registration = get_for_update(db, models.EventRegistration, registration_id)
    if registration is None:
        raise NotFoundError("Registration not found")
    return registration


def _change_status(db: Session, registration: models.EventRegistration, status: RegistrationStatus) -> int:
    """Move a registration to ``status``, reserving or releasing its seats.

    Returns the change applied to the event's available seats.
    """
    if status == registration.status:
        return 0
    event = _lock_event(db, registration.event_id)
    previous = registration.status
    try:
        seat_delta = seating.adjust_seats(event, registration, previous, status)
    except CapacityError:
        logger.warning(
            "seat_reservation_rejected",
            registration_id=registration.id,
            event_id=event.id,
            requested=registration.seats_reserved,
            available=event.available_seats,
        )
        raise
    now = utcnow()
    apply_patch(
        registration,
        transition(REGISTRATION_TIMELINE, previous, timestamps_of(registration, REGISTRATION_TIMELINE), status, now),
    )
    registration.status = status
    registration.updated_at = now
    if seat_delta:
        event.updated_at = now
    logger.info(
        "registration_status_updated",
        registration_id=registration.id,
        from_status=previous.value,
        to_status=status.value,
        seat_delta=seat_delta,
        available_seats=event.available_seats,
    )
    return seat_delta


@transactional
def create_event(
    db: Session,
    slug: str,
    title: str,
    starts_at: datetime,
    ends_at: datetime,
    total_seats: int,
    price: int = 0,
    description: str = "",
    location: str = "",
    status=EventStatus.UPCOMING,
) -> models.Event:
    status = parse_status(EventStatus, status)
    if ends_at <= starts_at:
        raise ValidationError("End date must be after start date")
    if total_seats < 0:
        raise ValidationError("Total seats cannot be negative")
    if price < 0:
        raise ValidationError("Price cannot be negative")
    if db.execute(select(models.Event.id).where(models.Event.slug == slug)).first():
        raise ValidationError("An event with this slug already exists")

    event = models.Event(
        slug=slug,
        title=title,
        description=description,
        location=location,
        starts_at=starts_at,
        ends_at=ends_at,
        price=price,
        status=status,
        total_seats=total_seats,
        available_seats=total_seats,
    )
    db.add(event)
    db.flush()
    logger.info("event_created", event_id=event.id, slug=slug, total_seats=total_seats)
    return event


def get_event(db: Session, event_id: int) -> models.Event:
    event = db.get(models.Event, event_id)
    if event is None:
        raise NotFoundError("Event not found")
    return event


@transactional
def update_event_capacity(db: Session, event_id: int, total_seats: int) -> models.Event:
    event = _lock_event(db, event_id)
    before = event.total_seats
    seating.resize_event(event, total_seats)
    event.updated_at = utcnow()
    logger.info("event_capacity_updated", event_id=event.id, old=before, new=total_seats, available_seats=event.available_seats)
    return event


@transactional
def update_event_status(db: Session, event_id: int, status) -> models.Event:
    """Open, deactivate, cancel or complete an event; only open events take registrations."""
    status = parse_status(EventStatus, status)
    event = _lock_event(db, event_id)
    previous = event.status
    if status != previous:
        event.status = status
        event.updated_at = utcnow()
        logger.info("event_status_updated", event_id=event.id, from_status=previous.value, to_status=status.value)
    return event


@transactional
def delete_event(db: Session, event_id: int) -> bool:
    """Delete an event, or cancel it when registrations reference it.

    Returns True when the row was removed.
    """
    event = _lock_event(db, event_id)
    has_registrations = db.execute(
        select(models.EventRegistration.id).where(models.EventRegistration.event_id == event.id)
    ).first()
    if has_registrations:
        event.status = EventStatus.CANCELLED
        event.updated_at = utcnow()
        logger.info("event_cancelled_instead_of_deleted", event_id=event.id)
        return False
    db.delete(event)
    logger.info("event_deleted", event_id=event_id)
    return True


@transactional
def register_for_event(
    db: Session,
    event_id: int,
    user_id: str,
    seats: int = 1,
    status=RegistrationStatus.PENDING,
    price: int | None = None,
    discount: int = 0,
) -> models.EventRegistration:
    """Book ``seats`` on an event for ``user_id``.

    Customers always start in PENDING; the back office may create a
    registration directly in a later status, in which case the seats are
    reserved immediately.
    """
    status = REGISTRATION_TIMELINE.parse(status)
    if seats < 1:
        raise ValidationError("Must reserve at least 1 seat")
    event = _lock_event(db, event_id)
    if event.status not in OPEN_EVENT_STATUSES:
        raise ValidationError("Event is not open for registration")

    existing = db.execute(
        select(models.EventRegistration.id).where(
            models.EventRegistration.event_id == event.id,
            models.EventRegistration.user_id == user_id,
            models.EventRegistration.status.not_in(INACTIVE_REGISTRATION_STATUSES),
        )
    ).first()
    if existing:
        raise ValidationError("Already registered for this event")
    if event.available_seats < seats:
        logger.warning("registration_rejected_full", event_id=event.id, requested=seats, available=event.available_seats)
        raise CapacityError("Not enough seats available")

    if price is None:
        price = event.price * seats
    if price < 0:
        raise ValidationError("Price cannot be negative")
    if discount < 0:
        raise ValidationError("Discount cannot be negative")
    if discount > price:
        raise ValidationError("Discount exceeds registration price")

    now = utcnow()
    registration = models.EventRegistration(
        event_id=event.id,
        user_id=user_id,
        seats_reserved=seats,
        price=price,
        discount=discount,
        status=status,
        request_at=now,
    )
    timestamps = timestamps_of(registration, REGISTRATION_TIMELINE)
    apply_patch(registration, transition(REGISTRATION_TIMELINE, RegistrationStatus.PENDING, timestamps, status, now))
    if seating.consumes_seat(status):
        seating.reserve_seats(event, seats)
        event.updated_at = now
    db.add(registration)
    db.flush()
    logger.info(
        "registration_created",
        registration_id=registration.id,
        event_id=event.id,
        user_id=user_id,
        seats=seats,
        status=status.value,
        available_seats=event.available_seats,
    )
    return registration


def get_registration(db: Session, registration_id: int) -> models.EventRegistration:
    registration = db.get(models.EventRegistration, registration_id)
    if registration is None:
        raise NotFoundError("Registration not found")
    return registration


@transactional
def update_registration_status(db: Session, registration_id: int, status) -> models.EventRegistration:
    status = REGISTRATION_TIMELINE.parse(status)
    registration = _lock_registration(db, registration_id)
    _change_status(db, registration, status)
    return registration


@transactional
def cancel_registration(db: Session, registration_id: int, user_id: str) -> models.EventRegistration:
    registration = _lock_registration(db, registration_id)
    if registration.user_id != user_id:
        raise NotFoundError("Registration not found")
    if registration.status == RegistrationStatus.REJECTED:
        raise ValidationError("Rejected registrations cannot be cancelled")
    _change_status(db, registration, RegistrationStatus.CANCELLED)
    return registration


@transactional
def update_registration_details(
    db: Session,
    registration_id: int,
    price: int | None = None,
    discount: int | None = None,
    seats_reserved: int | None = None,
) -> models.EventRegistration:
    """Edit price, discount and seat count; omitted values stay as they are."""
    if price is not None and price < 0:
        raise ValidationError("Price cannot be negative")
    if discount is not None and discount < 0:
        raise ValidationError("Discount cannot be negative")
    if seats_reserved is not None and seats_reserved < 1:
        raise ValidationError("Must reserve at least 1 seat")

    registration = _lock_registration(db, registration_id)
    new_price = registration.price if price is None else price
    new_discount = registration.discount if discount is None else discount
    if new_discount > new_price:
        raise ValidationError("Discount exceeds registration price")

    now = utcnow()
    if seats_reserved is not None and seats_reserved != registration.seats_reserved:
        event = _lock_event(db, registration.event_id)
        delta = seating.resize_reservation(event, registration, seats_reserved)
        if seating.consumes_seat(registration.status):
            event.updated_at = now
        logger.info(
            "registration_seats_updated",
            registration_id=registration.id,
            delta=delta,
            available_seats=event.available_seats,
        )
    registration.price = new_price
    registration.discount = new_discount
    registration.updated_at = now
    logger.info("registration_details_updated", registration_id=registration.id, price=new_price, discount=new_discount)
    return registration

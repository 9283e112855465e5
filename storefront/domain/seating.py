"""Event seat inventory.

A registration holds its ``seats_reserved`` out of the event's
``available_seats`` for exactly as long as its status consumes seats, so for
every event ``available_seats + held seats == total_seats``.
"""

from storefront.domain.errors import CapacityError, ValidationError
from storefront.domain.timeline import RegistrationStatus

SEAT_CONSUMING = frozenset({RegistrationStatus.CONFIRMED, RegistrationStatus.PAID})


def consumes_seat(status) -> bool:
    return status in SEAT_CONSUMING


def reserve_seats(event, seats: int) -> None:
    if event.available_seats < seats:
        raise CapacityError("Not enough available seats")
    event.available_seats -= seats


def release_seats(event, seats: int) -> None:
    event.available_seats = min(event.available_seats + seats, event.total_seats)


def adjust_seats(event, registration, from_status, to_status) -> int:
    """Move seats in or out of the event for a status change.

    Returns the change applied to ``available_seats`` (negative on reserve).
    """
    before, after = consumes_seat(from_status), consumes_seat(to_status)
    if not before and after:
        reserve_seats(event, registration.seats_reserved)
        return -registration.seats_reserved
    if before and not after:
        available = event.available_seats
        release_seats(event, registration.seats_reserved)
        return event.available_seats - available
    return 0


def resize_reservation(event, registration, seats: int) -> int:
    """Change how many seats a registration holds, keeping the event in step."""
    if seats < 1:
        raise ValidationError("Must reserve at least 1 seat")
    delta = seats - registration.seats_reserved
    if consumes_seat(registration.status) and delta:
        if delta > 0:
            reserve_seats(event, delta)
        else:
            release_seats(event, -delta)
    registration.seats_reserved = seats
    return delta


def resize_event(event, total_seats: int) -> None:
    if total_seats < 0:
        raise ValidationError("Total seats cannot be negative")
    held = event.total_seats - event.available_seats
    if total_seats < held:
        raise CapacityError("Reserved seats exceed the new capacity")
    event.total_seats = total_seats
    event.available_seats = total_seats - held

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_db, http_error, run_mutation
from storefront.api.schemas import (
    AdminRegistrationRequest,
    CapacityUpdate,
    EventCreate,
    EventOut,
    MutationResponse,
    RegistrationDetailsUpdate,
    RegistrationOut,
    RegistrationRequest,
    StatusUpdate,
)
from storefront.core.auth import get_current_identity, require_admin
from storefront.domain.errors import StorefrontError
from storefront.services import registrations

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_admin)])

# --- customer ---

@router.get("/events/{event_id}", response_model=EventOut)
def get_event(event_id: int, db: Session = Depends(get_db)):
    try:
        return EventOut.model_validate(registrations.get_event(db, event_id))
    except StorefrontError as exc:
        raise http_error(exc)

@router.post("/events/{event_id}/registrations", response_model=RegistrationOut, status_code=201)
def register(event_id: int, payload: RegistrationRequest, identity: dict = Depends(get_current_identity), db: Session = Depends(get_db)):
    try:
        reg = registrations.register_for_event(db, event_id, identity["sub"], payload.seats)
    except StorefrontError as exc:
        raise http_error(exc)
    return RegistrationOut.model_validate(reg)

@router.post("/registrations/{registration_id}/cancel", response_model=MutationResponse)
def cancel_registration(registration_id: int, identity: dict = Depends(get_current_identity), db: Session = Depends(get_db)):
    return run_mutation(registrations.cancel_registration, db, registration_id, identity["sub"])

# --- back office ---

@admin_router.post("/admin/events", response_model=EventOut, status_code=201)
def create_event(payload: EventCreate, db: Session = Depends(get_db)):
    try:
        event = registrations.create_event(db, **payload.model_dump())
    except StorefrontError as exc:
        raise http_error(exc)
    return EventOut.model_validate(event)

@admin_router.put("/admin/events/{event_id}/capacity", response_model=MutationResponse)
def update_event_capacity(event_id: int, payload: CapacityUpdate, db: Session = Depends(get_db)):
    return run_mutation(registrations.update_event_capacity, db, event_id, payload.total_seats)

@admin_router.put("/admin/events/{event_id}/status", response_model=MutationResponse)
def update_event_status(event_id: int, payload: StatusUpdate, db: Session = Depends(get_db)):
    return run_mutation(registrations.update_event_status, db, event_id, payload.status)

@admin_router.delete("/admin/events/{event_id}", response_model=MutationResponse)
def delete_event(event_id: int, db: Session = Depends(get_db)):
    try:
        deleted = registrations.delete_event(db, event_id)
    except StorefrontError as exc:
        return MutationResponse(success=False, error=exc.message)
    if not deleted:
        return MutationResponse(success=True, error="Event has registrations and was cancelled instead of deleted")
    return MutationResponse(success=True)

@admin_router.post("/admin/events/{event_id}/registrations", response_model=RegistrationOut, status_code=201)
def create_registration(event_id: int, payload: AdminRegistrationRequest, db: Session = Depends(get_db)):
    try:
        reg = registrations.register_for_event(
            db, event_id, payload.user_id, payload.seats, payload.status, payload.price, payload.discount
        )
    except StorefrontError as exc:
        raise http_error(exc)
    return RegistrationOut.model_validate(reg)

@admin_router.get("/admin/registrations/{registration_id}", response_model=RegistrationOut)
def get_registration(registration_id: int, db: Session = Depends(get_db)):
    try:
        return RegistrationOut.model_validate(registrations.get_registration(db, registration_id))
    except StorefrontError as exc:
        raise http_error(exc)

@admin_router.put("/admin/registrations/{registration_id}/status", response_model=MutationResponse)
def update_registration_status(registration_id: int, payload: StatusUpdate, db: Session = Depends(get_db)):
    return run_mutation(registrations.update_registration_status, db, registration_id, payload.status)

@admin_router.put("/admin/registrations/{registration_id}", response_model=MutationResponse)
def update_registration_details(registration_id: int, payload: RegistrationDetailsUpdate, db: Session = Depends(get_db)):
    return run_mutation(
        registrations.update_registration_details,
        db,
        registration_id,
        payload.price,
        payload.discount,
        payload.seats_reserved,
    )

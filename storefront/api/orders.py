from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.api.deps import get_db, http_error, run_mutation
from storefront.api.schemas import (
    CheckoutRequest,
    DiscountUpdate,
    MutationResponse,
    OrderDiscountUpdate,
    OrderOut,
    QuantityUpdate,
    StatusUpdate,
)
from storefront.core.auth import get_current_identity, require_admin
from storefront.domain.errors import StorefrontError
from storefront.services import orders

router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_admin)])

# --- customer ---

@router.post("/orders/checkout", response_model=OrderOut, status_code=201)
def checkout(payload: CheckoutRequest, identity: dict = Depends(get_current_identity), db: Session = Depends(get_db)):
    try:
        order = orders.checkout(
            db,
            identity["sub"],
            [it.model_dump() for it in payload.items],
            payload.shipping_fee,
            payload.shipping_address.model_dump(),
        )
    except StorefrontError as exc:
        raise http_error(exc)
    return OrderOut.model_validate(order)

@router.get("/orders/{order_id}", response_model=OrderOut)
def get_my_order(order_id: int, identity: dict = Depends(get_current_identity), db: Session = Depends(get_db)):
    try:
        return OrderOut.model_validate(orders.get_order(db, order_id, identity["sub"]))
    except StorefrontError as exc:
        raise http_error(exc)

@router.post("/orders/{order_id}/cancel", response_model=MutationResponse)
def cancel_order(order_id: int, identity: dict = Depends(get_current_identity), db: Session = Depends(get_db)):
    return run_mutation(orders.cancel_order, db, order_id, identity["sub"])

# --- back office ---

@admin_router.get("/admin/orders/{order_id}", response_model=OrderOut)
def get_order(order_id: int, db: Session = Depends(get_db)):
    try:
        return OrderOut.model_validate(orders.get_order(db, order_id))
    except StorefrontError as exc:
        raise http_error(exc)

@admin_router.put("/admin/orders/{order_id}/status", response_model=MutationResponse)
def update_order_status(order_id: int, payload: StatusUpdate, db: Session = Depends(get_db)):
    return run_mutation(orders.update_order_status, db, order_id, payload.status)

@admin_router.put("/admin/orders/{order_id}/discount", response_model=MutationResponse)
def update_order_discount(order_id: int, payload: OrderDiscountUpdate, db: Session = Depends(get_db)):
    return run_mutation(orders.update_order_discount, db, order_id, payload.total_discount)

@admin_router.put("/admin/orders/items/{item_id}/discount", response_model=MutationResponse)
def update_order_item_discount(item_id: int, payload: DiscountUpdate, db: Session = Depends(get_db)):
    return run_mutation(orders.update_order_item_discount, db, item_id, payload.discount)

@admin_router.put("/admin/orders/items/{item_id}/quantity", response_model=MutationResponse)
def update_order_item_quantity(item_id: int, payload: QuantityUpdate, db: Session = Depends(get_db)):
    return run_mutation(orders.update_order_item_quantity, db, item_id, payload.quantity)

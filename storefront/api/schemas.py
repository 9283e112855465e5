from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from storefront.domain.timeline import EventStatus, OrderStatus, RegistrationStatus

class MutationResponse(BaseModel):
    success: bool
    error: Optional[str] = None

# --- orders ---

class ShippingAddress(BaseModel):
    address_line1: str
    address_line2: Optional[str] = ""
    city: str
    state: Optional[str] = ""
    postcode: str
    country: str = Field(min_length=2, max_length=2)

class CheckoutItem(BaseModel):
    product_id: int
    title: Optional[str] = ""
    quantity: float
    price: int

class CheckoutRequest(BaseModel):
    items: List[CheckoutItem]
    shipping_fee: int = 0
    shipping_address: ShippingAddress

# status is a plain string so unknown values come back as a MutationResponse error
class StatusUpdate(BaseModel):
    status: str

class DiscountUpdate(BaseModel):
    discount: int

class OrderDiscountUpdate(BaseModel):
    total_discount: int

class QuantityUpdate(BaseModel):
    quantity: float

class OrderItemOut(BaseModel):
    id: int
    product_id: int
    title_snapshot: str
    quantity: int
    price: int
    discount: int

    class Config:
        from_attributes = True

class OrderOut(BaseModel):
    id: int
    user_id: str
    status: OrderStatus
    shipping_fee: int
    subtotal: int
    discount: int
    total: int
    shipping_address: Optional[dict] = None
    request_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    items: List[OrderItemOut] = []

    class Config:
        from_attributes = True

# --- events & registrations ---

class EventCreate(BaseModel):
    slug: str = Field(min_length=1, max_length=255)
    title: str
    description: str = ""
    location: str = ""
    starts_at: datetime
    ends_at: datetime
    price: int = 0
    total_seats: int
    status: EventStatus = EventStatus.UPCOMING

class CapacityUpdate(BaseModel):
    total_seats: int

class EventOut(BaseModel):
    id: int
    slug: str
    title: str
    description: str
    location: str
    starts_at: datetime
    ends_at: datetime
    price: int
    status: EventStatus
    total_seats: int
    available_seats: int

    class Config:
        from_attributes = True

class RegistrationRequest(BaseModel):
    seats: int = 1

class AdminRegistrationRequest(BaseModel):
    user_id: str
    seats: int = 1
    status: str = RegistrationStatus.PENDING.value
    price: Optional[int] = None
    discount: int = 0

class RegistrationDetailsUpdate(BaseModel):
    price: Optional[int] = None
    discount: Optional[int] = None
    seats_reserved: Optional[int] = None

class RegistrationOut(BaseModel):
    id: int
    event_id: int
    user_id: str
    seats_reserved: int
    price: int
    discount: int
    status: RegistrationStatus
    request_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True

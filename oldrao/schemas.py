"""
Pydantic Schemas for Request/Response Validation

Covers menu management, checkout, reservations, contact messages,
accounts and the admin dashboard.

Version: 1.0.0
"""

import re
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator

from oldrao.models import MenuCategory, OrderStatus, ReservationStatus, UserRole


EMAIL_PATTERN = re.compile(r'^[\w\.\+-]+@[\w\.-]+\.\w+$')


def _validate_phone(v: str) -> str:
    cleaned = re.sub(r'[^\d]', '', v)
    if len(cleaned) < 10:
        raise ValueError('Phone number must have at least 10 digits')
    return v


def _validate_email(v: str) -> str:
    v = v.strip()
    if not EMAIL_PATTERN.match(v):
        raise ValueError('Invalid email format')
    return v.lower()


# =============================================================================
# MENU SCHEMAS
# =============================================================================

class MenuItemCreate(BaseModel):
    """Request schema for adding a dish to the menu."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Paneer Tikka"])
    price: float = Field(..., gt=0, examples=[240.0])
    img: str = Field(default="/images/placeholder.jpg", max_length=500)
    category: MenuCategory = Field(..., examples=["snacks"])


class MenuItemUpdate(BaseModel):
    """Partial update of a menu item; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, gt=0)
    img: Optional[str] = Field(None, max_length=500)
    category: Optional[MenuCategory] = None


class MenuItemResponse(BaseModel):
    id: int
    name: str
    price: float
    img: str
    category: MenuCategory

    class Config:
        from_attributes = True


# =============================================================================
# ORDER SCHEMAS
# =============================================================================

class OrderItemCreate(BaseModel):
    """Single cart line; prices are taken from the menu, not the client."""
    id: int = Field(..., description="Menu item id", examples=[3])
    qty: int = Field(..., ge=1, le=99, examples=[2])


class OrderCreate(BaseModel):
    """Request schema for checkout."""
    items: List[OrderItemCreate] = Field(..., min_length=1)
    name: str = Field(..., min_length=2, max_length=100, examples=["Asha Rao"])
    phone: str = Field(..., min_length=10, max_length=20, examples=["98450 12345"])
    address: str = Field(..., min_length=5, max_length=255, examples=["12 MG Road, Bengaluru"])
    payment: str = Field(default="cash", pattern="^(cash|card|upi)$", examples=["cash"])

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _validate_phone(v)


class OrderItemResponse(BaseModel):
    id: int
    name: str
    price: float
    qty: int
    img: Optional[str] = None


class OrderResponse(BaseModel):
    """Response schema for a single order."""
    id: int
    items: List[OrderItemResponse]
    total: float
    user_id: Optional[int]
    name: str
    phone: str
    address: str
    payment: str
    status: OrderStatus
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class OrderCreateResponse(BaseModel):
    """Response after successfully placing an order."""
    success: bool
    message: str
    order_id: int
    total: float
    status: OrderStatus


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus = Field(..., examples=["Preparing"])


class OrderStatusResponse(BaseModel):
    id: int
    status: OrderStatus


# =============================================================================
# RESERVATION SCHEMAS
# =============================================================================

class ReservationCreate(BaseModel):
    """Request schema for booking a table."""
    name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., min_length=10, max_length=20)
    guests: int = Field(..., ge=1, le=50, examples=[4])
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$", examples=["2026-11-02"])
    time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$", examples=["19:30"])
    message: Optional[str] = Field(None, max_length=500)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return _validate_phone(v)


class ReservationResponse(BaseModel):
    id: int
    name: str
    phone: str
    guests: int
    date: str
    time: str
    message: Optional[str]
    status: ReservationStatus
    created_at: datetime

    class Config:
        from_attributes = True


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus


# =============================================================================
# CONTACT SCHEMAS
# =============================================================================

class ContactCreate(BaseModel):
    """Request schema for the contact form."""
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=255, examples=["guest@example.com"])
    phone: Optional[str] = Field(None, max_length=20)
    message: str = Field(..., min_length=1, max_length=2000)

    @field_validator('name', 'message')
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Must not be blank')
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _validate_email(v)


class ContactResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str]
    message: str
    responded: bool
    responded_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# ACCOUNT SCHEMAS
# =============================================================================

class SignupRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6, max_length=128)
    phone: Optional[str] = Field(None, max_length=20)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _validate_email(v)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str]
    role: UserRole

    class Config:
        from_attributes = True


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    live_subscribers: int
    timestamp: datetime

"""
SQLAlchemy Database Models

Tables for the restaurant:
- Menu items by category
- Orders (guest or customer-linked) and their status workflow
- Table reservations
- Customer / admin accounts
- Contact messages

Version: 1.0.0
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)

from oldrao.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MenuCategory(str, enum.Enum):
    """Sections of the printed menu."""
    SNACKS = "snacks"
    MAIN = "main"
    BREADS = "breads"
    DESSERT = "dessert"
    DRINKS = "drinks"


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "Pending"
    PREPARING = "Preparing"
    OUT_FOR_DELIVERY = "Out for Delivery"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ReservationStatus(str, enum.Enum):
    """Reservation status workflow."""
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class MenuItem(Base):
    """A dish or drink that can be added to the cart."""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    img = Column(String(500), nullable=False, default="/images/placeholder.jpg")
    category = Column(Enum(MenuCategory), nullable=False, index=True)

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - {self.category.value}>"


class User(Base):
    """Customer or admin account."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<User #{self.id} - {self.email} - {self.role.value}>"


class Order(Base):
    """
    Placed order.

    Items are stored as price snapshots taken at checkout, so later menu
    edits never change what a customer was charged. ``user_id`` is NULL
    for guest checkouts.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)  # [{id, name, price, qty, img}]
    total = Column(Float, nullable=False)

    # =========================================================================
    # CUSTOMER
    # =========================================================================
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        default=None,
        index=True,
    )
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)
    address = Column(String(255), nullable=False)
    payment = Column(String(50), nullable=False, default="cash")

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def __repr__(self):
        return f"<Order #{self.id} - {self.name} - {self.status.value}>"


class Reservation(Base):
    """Table booking request."""
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False)
    guests = Column(Integer, nullable=False)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    time = Column(String(5), nullable=False)  # HH:MM
    message = Column(Text, nullable=True)
    status = Column(
        Enum(ReservationStatus),
        default=ReservationStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow)

    def __repr__(self):
        return f"<Reservation #{self.id} - {self.name} - {self.date} {self.time}>"


class ContactMessage(Base):
    """Message left through the contact form."""
    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    message = Column(Text, nullable=False)
    responded = Column(Boolean, default=False, nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    def __repr__(self):
        return f"<ContactMessage #{self.id} - {self.email}>"

"""
Database Schemas

Pydantic models for the MongoDB collections of the store, plus the request
bodies the API accepts. Every document is validated by constructing its
model before it is written.

Model name is converted to lowercase for the collection name:
- User -> "user" collection
- Product -> "product" collection
- Order -> "order" collection
"""

import re
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^\w+([.-]?\w+)*@\w+([.-]?\w+)*(\.\w{2,3})+$")

Role = Literal["user", "admin"]


def normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address.")
    return value


def strip_name(value):
    return value.strip() if isinstance(value, str) else value


# --------------------- Users ---------------------

class User(BaseModel):
    """
    Users collection schema
    Collection name: "user"

    password holds the plaintext while the model is validated; it is
    replaced by its bcrypt hash before the document is written.
    """
    name: str = Field(..., min_length=1, max_length=50, description="Full name")
    email: str = Field(..., description="Unique, lowercased email address")
    password: str = Field(..., min_length=8, description="Password (hashed at rest)")
    role: Role = Field("user", description="Role: user | admin")

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return strip_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return normalize_email(v)


class RegisterRequest(User):
    # Self-registration can never grant a role
    role: Literal["user"] = "user"


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        # Same normalization as registration, no stricter rule
        return v.strip().lower()


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=8)

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return strip_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v is not None else v


class UserAdminUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[str] = None
    role: Optional[Role] = None

    @field_validator("name", mode="before")
    @classmethod
    def check_name(cls, v):
        return strip_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return normalize_email(v) if v is not None else v


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: Role = "user"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# --------------------- Products ---------------------

class Review(BaseModel):
    user_id: str = Field(..., description="Reviewer user id")
    name: str = Field(..., description="Reviewer name snapshot")
    rating: int = Field(..., ge=1, le=5)
    comment: str
    created_at: Optional[datetime] = None


class Product(BaseModel):
    """
    Products collection schema
    Collection name: "product"
    """
    user_id: str = Field(..., description="Admin who created the product")
    name: str = Field(..., min_length=1)
    image: str
    brand: str
    category: str
    description: str
    reviews: List[Review] = Field(default_factory=list)
    rating: float = Field(0, ge=0, le=5, description="Average review rating")
    num_reviews: int = Field(0, ge=0)
    price: float = Field(0, ge=0)
    count_in_stock: int = Field(0, ge=0)


class ProductCreate(BaseModel):
    # An empty body creates a placeholder product the admin edits afterwards
    name: str = "Sample name"
    image: str = "/images/sample.jpg"
    brand: str = "Sample brand"
    category: str = "Sample category"
    description: str = "Sample description"
    price: float = Field(0, ge=0)
    count_in_stock: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    image: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    count_in_stock: Optional[int] = Field(None, ge=0)


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)


# --------------------- Orders ---------------------

class OrderItem(BaseModel):
    name: str
    quantity: int = Field(..., ge=1)
    image: str
    price: float = Field(..., ge=0)
    product_id: str = Field(..., description="Product ObjectId as string")


class ShippingAddress(BaseModel):
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postal_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class PaymentResult(BaseModel):
    id: Optional[str] = Field(None, description="Gateway transaction id")
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "order"
    """
    user_id: str = Field(..., description="User ObjectId as string")
    order_items: List[OrderItem]
    shipping_address: ShippingAddress
    payment_method: str = Field(..., min_length=1)
    payment_result: Optional[PaymentResult] = None
    items_price: float = Field(0.0, ge=0)
    tax_price: float = Field(0.0, ge=0)
    shipping_price: float = Field(0.0, ge=0)
    total_price: float = Field(0.0, ge=0)
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    is_delivered: bool = False
    delivered_at: Optional[datetime] = None


class OrderItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    order_items: List[OrderItemCreate]
    shipping_address: ShippingAddress
    payment_method: str = Field(..., min_length=1)

"""
Database Schemas for the CresceVendas store

MongoDB collections are defined below using Pydantic models. Documents are
stored with camelCase keys (model_dump(by_alias=True)), the same shape the
API speaks.

We will use these collections:
- users: registered customers
- products: catalog, seeded once at startup
- orders: purchases, each owned by exactly one user
"""

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OrderStatus = Literal["pending", "confirmed", "shipped", "delivered"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


class User(Document):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password: str = Field(..., description="BCrypt hash of password")


class Product(Document):
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    category: str
    description: str = ""
    image: str = ""
    in_stock: bool = True
    rating: float = Field(0, ge=0, le=5)
    stock: int = Field(0, ge=0)


class OrderItem(BaseModel):
    """Snapshot of a product line at the time the order was placed.

    Stored as supplied, extra keys included; only the item itself must be present.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    product: Any = Field(None, description="Reference to product id")
    name: Any = None
    price: Any = None
    quantity: Any = 1
    image: Any = None


class ShippingAddress(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class Order(Document):
    user: Any = Field(..., description="Reference to user _id (owner)")
    items: List[OrderItem]
    total: float
    status: OrderStatus = Field("pending")
    shipping_address: Optional[ShippingAddress] = None

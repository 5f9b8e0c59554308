from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime, timezone
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def can_transition_to(self, new_status: "OrderStatus") -> bool:
        return new_status in _ALLOWED_TRANSITIONS[self]


# pending is the only non-terminal status
_ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELLED, OrderStatus.FAILED},
    OrderStatus.PAID: set(),
    OrderStatus.FAILED: set(),
    OrderStatus.CANCELLED: set(),
}


class LifecycleState(str, Enum):
    NO_ORDER = "NO_ORDER"
    PENDING = "PENDING"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class OrderItem(BaseModel):
    product_id: str
    name: Optional[str] = None
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


class Order(BaseModel):
    id: Optional[str] = None  # assigned by the store on creation
    user_id: str
    items: List[OrderItem]
    total_amount: float
    status: OrderStatus = OrderStatus.PENDING
    full_name: Optional[str] = None
    mobile_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    payment_method: Optional[str] = None
    payment_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(use_enum_values=False)

    def to_document(self) -> dict:
        """Serializes the order for the document store (without its id)."""
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_document(cls, order_id: str, document: dict) -> "Order":
        return cls(**{**document, "id": order_id})

    def lifecycle_state(self) -> LifecycleState:
        if self.status == OrderStatus.PAID:
            return LifecycleState.PAID
        if self.status == OrderStatus.PENDING:
            return LifecycleState.AWAITING_PAYMENT
        # failed orders follow the abort path
        return LifecycleState.CANCELLED

from pydantic import BaseModel, Field
from typing import Dict, List

from models.catalog import Product
from models.order import OrderItem


class CartLine(BaseModel):
    product: Product
    quantity: int = Field(..., ge=1)

    def to_order_item(self) -> OrderItem:
        return OrderItem(
            product_id=self.product.id,
            name=self.product.name,
            quantity=self.quantity,
            price=self.product.price,
        )


class Cart(BaseModel):
    """Per-user cart. Lines are keyed by product id and keep insertion order."""

    lines: Dict[str, CartLine] = Field(default_factory=dict)

    def add(self, product: Product, quantity: int = 1) -> CartLine:
        line = self.lines.get(product.id)
        if line:
            line.quantity += quantity
        else:
            line = CartLine(product=product, quantity=quantity)
            self.lines[product.id] = line
        return line

    def set_quantity(self, product_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove(product_id)
            return
        if product_id not in self.lines:
            raise KeyError(product_id)
        self.lines[product_id].quantity = quantity

    def remove(self, product_id: str) -> None:
        self.lines.pop(product_id, None)

    def clear(self) -> None:
        self.lines.clear()

    def is_empty(self) -> bool:
        return not self.lines

    def total(self) -> float:
        return sum(line.product.price * line.quantity for line in self.lines.values())

    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines.values())

    def to_order_items(self) -> List[OrderItem]:
        return [line.to_order_item() for line in self.lines.values()]

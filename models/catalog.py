from pydantic import BaseModel, ConfigDict
from typing import Optional


class Product(BaseModel):
    id: str
    name: str
    price: float
    description: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None

    # product documents carry whatever extra fields the catalog editors add
    model_config = ConfigDict(extra="allow")

    @classmethod
    def from_document(cls, product_id: str, document: dict) -> "Product":
        return cls(**{**document, "id": product_id})

import logging
from typing import Iterable, List, Optional, Tuple

from models.catalog import Product
from services.store import DocumentStore
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

PRODUCTS_COLLECTION = "products"

# storefront page -> product category shown on it
CATEGORY_PAGES = {
    "mac": "Mac",
    "laptop": "Laptop",
    "computer": "Computer",
}

DEFAULT_PRICE_RANGE = (0.0, 1_000_000.0)


class CatalogService:
    def __init__(self, store: DocumentStore):
        self._store = store

    async def list_products(self) -> List[Product]:
        documents = await self._store.list_documents(PRODUCTS_COLLECTION)
        products = []
        for product_id, document in documents:
            try:
                products.append(Product.from_document(product_id, document))
            except ValueError as e:
                logger.warning(f"Skipping malformed product {product_id}: {e}")
        return products

    async def get_product(self, product_id: str) -> Product:
        document = await self._store.get_document(PRODUCTS_COLLECTION, product_id)
        if document is None:
            raise ValidationError(f"Unknown product {product_id}", field="product_id")
        try:
            return Product.from_document(product_id, document)
        except ValueError as e:
            # listed products skip the same documents
            logger.warning(f"Malformed product {product_id}: {e}")
            raise ValidationError(f"Unknown product {product_id}", field="product_id") from e


def filter_products(products: Iterable[Product], page: str = "home", query: Optional[str] = None,
                    price_range: Tuple[float, float] = DEFAULT_PRICE_RANGE) -> List[Product]:
    """Applies the storefront page filters.

    Category pages show products of that category plus those tagged "all",
    and honour the price range. Search applies on every page.
    """
    filtered = list(products)
    on_category_page = page != "home"

    if on_category_page:
        target = (CATEGORY_PAGES.get(page) or page).lower()
        filtered = [
            p for p in filtered
            if (p.category or "").lower() in (target, "all")
        ]

    if query:
        needle = query.lower()
        filtered = [
            p for p in filtered
            if needle in (p.name or "").lower() or needle in (p.description or "").lower()
        ]

    if on_category_page:
        low, high = price_range
        filtered = [p for p in filtered if low <= p.price <= high]

    return filtered

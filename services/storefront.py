import logging
from typing import Callable, Dict, List

from models.cart import Cart
from models.catalog import Product
from models.user import AuthState
from services.identity import AuthStateStream

logger = logging.getLogger(__name__)


class StorefrontState:
    """Carts and favorites of signed-in users, kept in process memory."""

    def __init__(self):
        self._carts: Dict[str, Cart] = {}
        self._favorites: Dict[str, Dict[str, Product]] = {}

    def cart_for(self, user_id: str) -> Cart:
        return self._carts.setdefault(user_id, Cart())

    def clear_cart(self, user_id: str) -> None:
        cart = self._carts.get(user_id)
        if cart:
            cart.clear()

    def favorites_for(self, user_id: str) -> List[Product]:
        return list(self._favorites.get(user_id, {}).values())

    def is_favorite(self, user_id: str, product_id: str) -> bool:
        return product_id in self._favorites.get(user_id, {})

    def toggle_favorite(self, user_id: str, product: Product) -> bool:
        """Adds or removes the product; returns True when it is now a favorite."""
        favorites = self._favorites.setdefault(user_id, {})
        if product.id in favorites:
            del favorites[product.id]
            return False
        favorites[product.id] = product
        return True

    def reset_user(self, user_id: str) -> None:
        self._carts.pop(user_id, None)
        self._favorites.pop(user_id, None)

    def on_auth_state(self, state: AuthState) -> None:
        if not state.logged_in:
            logger.info(f"Clearing cart and favorites for signed-out user {state.user_id}")
            self.reset_user(state.user_id)

    def follow(self, stream: AuthStateStream) -> Callable[[], None]:
        return stream.subscribe(self.on_auth_state)

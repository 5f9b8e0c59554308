import logging
from datetime import datetime, timezone
from typing import Optional

from models.cart import Cart
from models.order import LifecycleState, Order, OrderStatus
from models.payment import BuyerInfo
from models.user import AuthState
from services.store import DocumentStore
from services.storefront import StorefrontState
from utils.errors import (
    AuthRequiredError,
    DocumentNotFoundError,
    OrderNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ORDERS_COLLECTION = "orders"
DEFAULT_PAYMENT_METHOD = "easypaisa"


class OrderLifecycleController:
    """Creates orders from carts and moves them through payment.

    The lifecycle state of an order is read back from its stored status, so
    any process sharing the store (API or worker) sees the same state.
    """

    def __init__(self, store: DocumentStore, storefront: StorefrontState):
        self._store = store
        self._storefront = storefront

    async def _load(self, order_id: str) -> Optional[Order]:
        document = await self._store.get_document(ORDERS_COLLECTION, order_id)
        if document is None:
            return None
        return Order.from_document(order_id, document)

    async def state_of(self, order_id: str) -> LifecycleState:
        order = await self._load(order_id)
        if order is None:
            return LifecycleState.NO_ORDER
        return order.lifecycle_state()

    async def get_order(self, order_id: str) -> Order:
        order = await self._load(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        return order

    async def create_order(self, cart: Cart, buyer: Optional[AuthState],
                           contact: Optional[BuyerInfo] = None) -> Order:
        if cart.is_empty():
            raise ValidationError("Please add items to cart before checkout", field="cart")
        if buyer is None or not buyer.logged_in:
            raise AuthRequiredError()

        items = cart.to_order_items()
        order = Order(
            user_id=buyer.user_id,
            items=items,
            total_amount=sum(item.subtotal for item in items),
            status=OrderStatus.PENDING,
            email=buyer.email,
            full_name=buyer.display_name,
        )
        if contact:
            order = order.model_copy(update=contact.model_dump())

        logger.info(f"Creating order for user {buyer.user_id}: {len(items)} items, total {order.total_amount}")
        # a failed write leaves the caller with no order
        order.id = await self._store.create_document(ORDERS_COLLECTION, order.to_document())
        logger.info(f"Order {order.id} is {LifecycleState.AWAITING_PAYMENT.value}")
        return order

    async def confirm_payment(self, order_id: str, payment_method: str = DEFAULT_PAYMENT_METHOD) -> Order:
        order = await self._load(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if order.lifecycle_state() != LifecycleState.AWAITING_PAYMENT:
            logger.warning(f"Refusing to confirm order {order_id} in status {order.status.value}")
            raise OrderNotFoundError(f"Order {order_id} is not awaiting payment")

        now = datetime.now(timezone.utc)
        fields = {
            "status": OrderStatus.PAID.value,
            "payment_method": payment_method,
            "payment_date": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        try:
            await self._store.update_document(ORDERS_COLLECTION, order_id, fields)
        except DocumentNotFoundError as e:
            raise OrderNotFoundError(f"Order {order_id} not found") from e

        # only a stored payment clears the cart
        self._storefront.clear_cart(order.user_id)
        logger.info(f"Order {order_id} marked {OrderStatus.PAID.value} via {payment_method}")
        return order.model_copy(update={
            "status": OrderStatus.PAID,
            "payment_method": payment_method,
            "payment_date": now,
            "updated_at": now,
        })

    async def cancel_payment(self, order_id: str) -> Order:
        """Marks an unpaid order cancelled. Cancelling twice is a no-op."""
        order = await self._load(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        if order.status == OrderStatus.CANCELLED:
            return order
        if not order.status.can_transition_to(OrderStatus.CANCELLED):
            raise OrderNotFoundError(f"Order {order_id} is not awaiting payment")

        now = datetime.now(timezone.utc)
        try:
            await self._store.update_document(ORDERS_COLLECTION, order_id, {
                "status": OrderStatus.CANCELLED.value,
                "updated_at": now.isoformat(),
            })
        except DocumentNotFoundError as e:
            raise OrderNotFoundError(f"Order {order_id} not found") from e

        logger.info(f"Order {order_id} cancelled before payment")
        return order.model_copy(update={"status": OrderStatus.CANCELLED, "updated_at": now})

    async def delete_orders_for_user(self, user_id: str) -> int:
        """Removes every order of a user; used when the account is deleted."""
        deleted = 0
        for order_id, document in await self._store.list_documents(ORDERS_COLLECTION):
            if document.get("user_id") == user_id:
                await self._store.delete_document(ORDERS_COLLECTION, order_id)
                deleted += 1
        logger.info(f"Deleted {deleted} orders of user {user_id}")
        return deleted

from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import logging

from models.catalog import Product
from models.user import AuthState
from services.catalog import DEFAULT_PRICE_RANGE, filter_products
from services.container import AppContainer
from utils.errors import AuthRequiredError, StorefrontError

from api.deps import get_container, get_current_user, get_optional_user
from api.errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/products", response_model=List[Product])
async def list_products(
    page: str = Query("home", description="home, mac, laptop or computer"),
    q: Optional[str] = Query(None, description="Search in name and description"),
    min_price: float = Query(DEFAULT_PRICE_RANGE[0], ge=0),
    max_price: float = Query(DEFAULT_PRICE_RANGE[1], ge=0),
    user: Optional[AuthState] = Depends(get_optional_user),
    container: AppContainer = Depends(get_container),
):
    """Lists products for a storefront page. Category pages need a signed-in user."""
    if page != "home" and user is None:
        raise to_http_exception(AuthRequiredError("Please sign in to browse categories."))
    try:
        products = await container.catalog.list_products()
    except StorefrontError as e:
        raise to_http_exception(e)
    return filter_products(products, page=page, query=q, price_range=(min_price, max_price))


@router.get("/favorites", response_model=List[Product])
async def list_favorites(
    user: AuthState = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    return container.storefront.favorites_for(user.user_id)


@router.post("/favorites/{product_id}")
async def toggle_favorite(
    product_id: str,
    user: AuthState = Depends(get_current_user),
    container: AppContainer = Depends(get_container),
):
    try:
        product = await container.catalog.get_product(product_id)
    except StorefrontError as e:
        raise to_http_exception(e)
    is_favorite = container.storefront.toggle_favorite(user.user_id, product)
    message = f"{product.name} added to favorites" if is_favorite else f"{product.name} removed from favorites"
    return {"product_id": product_id, "favorite": is_favorite, "message": message}

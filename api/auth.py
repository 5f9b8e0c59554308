from fastapi import APIRouter, Depends
import logging

from models.user import AuthState, Session, SignInRequest, SignUpRequest
from services.container import AppContainer
from utils.errors import StorefrontError

from api.deps import get_container, get_current_user, require_token
from api.errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/sign-up", response_model=Session, status_code=201)
async def sign_up(request: SignUpRequest, container: AppContainer = Depends(get_container)):
    try:
        return await container.identity.sign_up(request.email, request.password, request.display_name)
    except StorefrontError as e:
        raise to_http_exception(e)


@router.post("/sign-in", response_model=Session)
async def sign_in(request: SignInRequest, container: AppContainer = Depends(get_container)):
    try:
        return await container.identity.sign_in(request.email, request.password)
    except StorefrontError as e:
        logger.info(f"Sign-in rejected: {e.message}")
        raise to_http_exception(e)


@router.post("/sign-out", status_code=204)
async def sign_out(token: str = Depends(require_token), container: AppContainer = Depends(get_container)):
    try:
        await container.profile.sign_out(token)
    except StorefrontError as e:
        raise to_http_exception(e)


@router.get("/me", response_model=AuthState)
async def me(user: AuthState = Depends(get_current_user)):
    return user

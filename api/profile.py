from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
import logging

from models.user import AuthState
from services.container import AppContainer
from utils.errors import StorefrontError

from api.deps import get_container, require_token
from api.errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter()


class DisplayNameUpdate(BaseModel):
    display_name: str


class EmailUpdate(BaseModel):
    email: str
    current_password: str = ""


class PasswordUpdate(BaseModel):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""


class AccountDeletion(BaseModel):
    password: str = ""


@router.put("/display-name", response_model=AuthState)
async def update_display_name(
    update: DisplayNameUpdate,
    token: str = Depends(require_token),
    container: AppContainer = Depends(get_container),
):
    try:
        return await container.profile.update_display_name(token, update.display_name)
    except StorefrontError as e:
        raise to_http_exception(e)


@router.put("/email", response_model=AuthState)
async def update_email(
    update: EmailUpdate,
    token: str = Depends(require_token),
    container: AppContainer = Depends(get_container),
):
    try:
        return await container.profile.update_email(token, update.email, update.current_password)
    except StorefrontError as e:
        logger.info(f"Email update rejected: {e.message}")
        raise to_http_exception(e)


@router.put("/password", status_code=status.HTTP_204_NO_CONTENT)
async def update_password(
    update: PasswordUpdate,
    token: str = Depends(require_token),
    container: AppContainer = Depends(get_container),
):
    try:
        await container.profile.update_password(
            token, update.current_password, update.new_password, update.confirm_password
        )
    except StorefrontError as e:
        logger.info(f"Password update rejected: {e.message}")
        raise to_http_exception(e)


@router.post("/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    deletion: AccountDeletion,
    token: str = Depends(require_token),
    container: AppContainer = Depends(get_container),
):
    try:
        await container.profile.delete_account(token, deletion.password)
    except StorefrontError as e:
        logger.warning(f"Account deletion rejected: {e.message}")
        raise to_http_exception(e)

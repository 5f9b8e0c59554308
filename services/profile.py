import logging

from models.user import AuthState
from services.identity import IdentityProvider, MIN_PASSWORD_LENGTH
from services.order_lifecycle import OrderLifecycleController
from utils.errors import StorefrontError, ValidationError

logger = logging.getLogger(__name__)


class ProfileService:
    """Account management on top of the identity provider.

    Passwords given for re-authentication are used for that one call and
    never kept.
    """

    def __init__(self, identity: IdentityProvider, orders: OrderLifecycleController):
        self._identity = identity
        self._orders = orders

    async def update_display_name(self, token: str, display_name: str) -> AuthState:
        display_name = display_name.strip()
        if not display_name:
            raise ValidationError("Display name cannot be empty", field="display_name")
        return await self._identity.update_profile(token, display_name)

    async def update_email(self, token: str, new_email: str, current_password: str) -> AuthState:
        if not new_email.strip():
            raise ValidationError("Email cannot be empty", field="email")
        if not current_password:
            raise ValidationError("Current password is required to update email", field="current_password")
        grant = await self._identity.reauthenticate(token, current_password)
        return await self._identity.update_email(token, grant, new_email.strip())

    async def update_password(self, token: str, current_password: str, new_password: str,
                              confirm_password: str) -> None:
        if not current_password or not new_password or not confirm_password:
            raise ValidationError("All password fields are required", field="password")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters long",
                field="new_password",
            )
        if new_password != confirm_password:
            raise ValidationError("New passwords do not match", field="confirm_password")
        grant = await self._identity.reauthenticate(token, current_password)
        await self._identity.update_password(token, grant, new_password)

    async def delete_account(self, token: str, password: str) -> None:
        if not password:
            raise ValidationError("Password is required to delete account", field="password")
        user = await self._identity.current_user(token)
        grant = await self._identity.reauthenticate(token, password)
        try:
            await self._orders.delete_orders_for_user(user.user_id)
        except StorefrontError as e:
            # the account itself is still removed
            logger.error(f"Could not delete orders of user {user.user_id}: {e.message}")
        await self._identity.delete_user(token, grant)

    async def sign_out(self, token: str) -> None:
        await self._identity.sign_out(token)

import asyncio
import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError

from models.payment import EMAIL_PATTERN
from models.user import AuthState, Session
from utils.errors import AuthRequiredError, IdentityError, ReauthenticationError

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthState], None]

MIN_PASSWORD_LENGTH = 6


class AuthStateStream:
    """Single subscription point for auth changes.

    Every listener receives the new AuthState of a user whenever that user
    signs in, signs out, changes profile data or is deleted.
    """

    def __init__(self):
        self._listeners: List[AuthListener] = []

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, state: AuthState) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.exception(f"Auth state listener failed for user {state.user_id}: {e}")


@dataclass(frozen=True)
class ReauthGrant:
    """Proof of a fresh credential check, good for one sensitive operation."""

    user_id: str
    nonce: str


class IdentityProvider:
    """Contract of the hosted auth service."""

    stream: AuthStateStream

    async def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> Session:
        raise NotImplementedError

    async def sign_in(self, email: str, password: str) -> Session:
        raise NotImplementedError

    async def sign_out(self, token: str) -> None:
        raise NotImplementedError

    async def current_user(self, token: Optional[str]) -> AuthState:
        raise NotImplementedError

    async def update_profile(self, token: str, display_name: str) -> AuthState:
        raise NotImplementedError

    async def reauthenticate(self, token: str, password: str) -> ReauthGrant:
        raise NotImplementedError

    async def update_email(self, token: str, grant: ReauthGrant, new_email: str) -> AuthState:
        raise NotImplementedError

    async def update_password(self, token: str, grant: ReauthGrant, new_password: str) -> None:
        raise NotImplementedError

    async def delete_user(self, token: str, grant: ReauthGrant) -> None:
        raise NotImplementedError

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        return self.stream.subscribe(listener)


@dataclass
class _UserRecord:
    user_id: str
    email: str
    display_name: Optional[str]
    password_hash: str


class InMemoryIdentityProvider(IdentityProvider):
    def __init__(self, hasher: Optional[PasswordHasher] = None):
        self.stream = AuthStateStream()
        self._hasher = hasher or PasswordHasher()
        self._users: Dict[str, _UserRecord] = {}
        self._tokens: Dict[str, str] = {}
        self._grants: Dict[str, str] = {}

    def _state(self, user: _UserRecord, logged_in: bool = True) -> AuthState:
        return AuthState(
            logged_in=logged_in,
            user_id=user.user_id,
            display_name=user.display_name,
            email=user.email,
        )

    def _find_by_email(self, email: str) -> Optional[_UserRecord]:
        email = email.strip().lower()
        return next((u for u in self._users.values() if u.email == email), None)

    def _user_for_token(self, token: Optional[str]) -> _UserRecord:
        user_id = self._tokens.get(token or "")
        if not user_id or user_id not in self._users:
            raise AuthRequiredError("Please sign in to continue.")
        return self._users[user_id]

    def _check_email(self, email: str) -> str:
        email = email.strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise IdentityError("Invalid email address", code="auth/invalid-email")
        return email

    def _check_password(self, password: str) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise IdentityError("New password is too weak", code="auth/weak-password")

    def _consume_grant(self, grant: ReauthGrant, user: _UserRecord) -> None:
        if self._grants.pop(grant.nonce, None) != user.user_id:
            raise IdentityError(
                "Please log out and log back in before making this change",
                code="auth/requires-recent-login",
            )

    async def _hash(self, password: str) -> str:
        # argon2 blocks for tens of milliseconds
        return await asyncio.to_thread(self._hasher.hash, password)

    async def _password_matches(self, user: _UserRecord, password: str) -> bool:
        try:
            return await asyncio.to_thread(self._hasher.verify, user.password_hash, password)
        except (VerifyMismatchError, InvalidHashError):
            return False

    def _issue_session(self, user: _UserRecord) -> Session:
        token = secrets.token_urlsafe(32)
        self._tokens[token] = user.user_id
        state = self._state(user)
        self.stream.publish(state)
        return Session(token=token, user=state)

    async def sign_up(self, email: str, password: str, display_name: Optional[str] = None) -> Session:
        email = self._check_email(email)
        if self._find_by_email(email):
            raise IdentityError("Email is already in use by another account", code="auth/email-already-in-use")
        self._check_password(password)
        password_hash = await self._hash(password)
        if self._find_by_email(email):
            # taken by a concurrent sign-up while hashing
            raise IdentityError("Email is already in use by another account", code="auth/email-already-in-use")
        user = _UserRecord(
            user_id=secrets.token_hex(14),
            email=email,
            display_name=(display_name or "").strip() or None,
            password_hash=password_hash,
        )
        self._users[user.user_id] = user
        logger.info(f"Created account {user.user_id}")
        return self._issue_session(user)

    async def sign_in(self, email: str, password: str) -> Session:
        user = self._find_by_email(email)
        if not user or not await self._password_matches(user, password):
            raise IdentityError("Invalid email or password", code="auth/invalid-credential")
        return self._issue_session(user)

    async def sign_out(self, token: str) -> None:
        user = self._user_for_token(token)
        del self._tokens[token]
        logger.info(f"User {user.user_id} signed out")
        self.stream.publish(self._state(user, logged_in=False))

    async def current_user(self, token: Optional[str]) -> AuthState:
        return self._state(self._user_for_token(token))

    async def update_profile(self, token: str, display_name: str) -> AuthState:
        user = self._user_for_token(token)
        user.display_name = display_name
        state = self._state(user)
        self.stream.publish(state)
        return state

    async def reauthenticate(self, token: str, password: str) -> ReauthGrant:
        user = self._user_for_token(token)
        if not await self._password_matches(user, password):
            raise ReauthenticationError()
        grant = ReauthGrant(user_id=user.user_id, nonce=secrets.token_urlsafe(16))
        self._grants[grant.nonce] = user.user_id
        return grant

    async def update_email(self, token: str, grant: ReauthGrant, new_email: str) -> AuthState:
        user = self._user_for_token(token)
        self._consume_grant(grant, user)
        new_email = self._check_email(new_email)
        existing = self._find_by_email(new_email)
        if existing and existing.user_id != user.user_id:
            raise IdentityError("Email is already in use by another account", code="auth/email-already-in-use")
        user.email = new_email
        state = self._state(user)
        self.stream.publish(state)
        return state

    async def update_password(self, token: str, grant: ReauthGrant, new_password: str) -> None:
        user = self._user_for_token(token)
        self._consume_grant(grant, user)
        self._check_password(new_password)
        user.password_hash = await self._hash(new_password)

    async def delete_user(self, token: str, grant: ReauthGrant) -> None:
        user = self._user_for_token(token)
        self._consume_grant(grant, user)
        del self._users[user.user_id]
        self._tokens = {t: uid for t, uid in self._tokens.items() if uid != user.user_id}
        logger.info(f"Deleted account {user.user_id}")
        self.stream.publish(self._state(user, logged_in=False))

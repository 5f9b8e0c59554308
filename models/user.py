from pydantic import BaseModel
from typing import Optional


class AuthState(BaseModel):
    """What the identity provider publishes on every auth change for a user."""

    logged_in: bool
    user_id: str
    display_name: Optional[str] = None
    email: Optional[str] = None


class SignUpRequest(BaseModel):
    email: str
    password: str
    display_name: Optional[str] = None


class SignInRequest(BaseModel):
    email: str
    password: str


class Session(BaseModel):
    token: str
    user: AuthState

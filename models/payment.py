from pydantic import BaseModel, Field, field_validator
from enum import Enum
from typing import Optional
import re

MOBILE_NUMBER_PATTERN = re.compile(r"^[0-9]{11}$")
POSTAL_CODE_PATTERN = re.compile(r"^[0-9]{5}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class BuyerInfo(BaseModel):
    """Contact and delivery fields entered on the payment form."""

    full_name: str
    mobile_number: str
    email: str
    address: str
    postal_code: str
    city: str

    @field_validator("full_name", "address", "city")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("mobile_number")
    @classmethod
    def valid_mobile_number(cls, value: str) -> str:
        if not MOBILE_NUMBER_PATTERN.match(value):
            raise ValueError("Please enter a valid 11-digit mobile number")
        return value

    @field_validator("postal_code")
    @classmethod
    def valid_postal_code(cls, value: str) -> str:
        if not POSTAL_CODE_PATTERN.match(value):
            raise ValueError("Please enter a valid 5-digit postal code")
        return value

    @field_validator("email")
    @classmethod
    def valid_email(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Please enter a valid email address")
        return value


class PaymentSession(BaseModel):
    """Lives between checkout submission and the redirect to the provider."""

    order_id: str
    amount: float
    buyer: BuyerInfo
    redirect_url: str


class VerificationResult(BaseModel):
    success: bool
    amount: Optional[float] = None
    message: Optional[str] = None


class CallbackState(str, Enum):
    VERIFYING = "VERIFYING"
    VERIFIED = "VERIFIED"
    FAILED = "FAILED"


class CallbackOutcome(BaseModel):
    state: CallbackState
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: Optional[float] = None
    message: Optional[str] = None
    next_path: Optional[str] = Field(default=None, description="Where the UI goes next")

import logging
from typing import Mapping, Optional, Union

import httpx
from pydantic import ValidationError as PydanticValidationError

from models.payment import BuyerInfo, PaymentSession, VerificationResult
from utils.errors import GatewayError, NetworkError, ValidationError

logger = logging.getLogger(__name__)


def parse_buyer_info(fields: Union[BuyerInfo, Mapping[str, str]]) -> BuyerInfo:
    """Validates raw form fields, raising ValidationError on the first bad field."""
    if isinstance(fields, BuyerInfo):
        return fields
    try:
        return BuyerInfo.model_validate(dict(fields))
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error.get("loc") else None
        message = error["msg"].removeprefix("Value error, ")
        raise ValidationError(f"{field}: {message}" if field else message, field=field) from e


class PaymentGatewayClient:
    """Client for the mobile-payment provider's initiate/verify API."""

    def __init__(self, base_url: str, merchant_id: str, secret_key: str, callback_url: str,
                 timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._merchant_id = merchant_id
        self._callback_url = callback_url
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {secret_key}",
            },
            timeout=timeout,
            transport=transport,
        )

    async def _post(self, path: str, payload: dict, failure_message: str) -> dict:
        try:
            response = await self._client.post(path, json=payload)
        except httpx.TransportError as e:
            logger.error(f"Payment gateway {path} unreachable: {e}")
            raise NetworkError(failure_message) from e
        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Payment gateway {path} returned non-JSON body (HTTP {response.status_code})")
            raise GatewayError(failure_message) from e
        if not isinstance(data, dict):
            raise GatewayError(failure_message)
        return data

    async def initiate(self, amount: float, buyer_fields: Union[BuyerInfo, Mapping[str, str]],
                       order_id: str) -> PaymentSession:
        """Asks the provider for a hosted payment page.

        Returns the session holding the redirect URL; navigating there is up
        to the caller.
        """
        if amount <= 0:
            raise ValidationError("Amount must be greater than 0", field="amount")
        buyer = parse_buyer_info(buyer_fields)

        logger.info(f"Initiating payment for order {order_id}, amount {amount}")
        data = await self._post(
            "/initiate-payment",
            {
                "merchantId": self._merchant_id,
                "amount": amount,
                "mobileNumber": buyer.mobile_number,
                "email": buyer.email,
                "orderId": order_id,
                "callbackUrl": self._callback_url,
            },
            "Failed to initiate payment",
        )

        if not data.get("success") or not data.get("paymentUrl"):
            message = data.get("message") or "Payment initiation failed"
            logger.warning(f"Payment gateway rejected order {order_id}: {message}")
            raise GatewayError(message)

        return PaymentSession(order_id=order_id, amount=amount, buyer=buyer, redirect_url=data["paymentUrl"])

    async def verify(self, transaction_id: str) -> VerificationResult:
        logger.info(f"Verifying transaction {transaction_id}")
        data = await self._post(
            "/verify-payment",
            {"merchantId": self._merchant_id, "transactionId": transaction_id},
            "Failed to verify payment",
        )
        return VerificationResult(
            success=bool(data.get("success")),
            amount=data.get("amount"),
            message=data.get("message"),
        )

    async def close(self) -> None:
        await self._client.aclose()

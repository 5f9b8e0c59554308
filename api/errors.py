from fastapi import HTTPException, status

from utils.errors import (
    AuthRequiredError,
    GatewayError,
    IdentityError,
    NetworkError,
    OrderNotFoundError,
    ReauthenticationError,
    StoreUnavailableError,
    StorefrontError,
    ValidationError,
)

_STATUS_CODES = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthRequiredError, status.HTTP_401_UNAUTHORIZED),
    (ReauthenticationError, status.HTTP_403_FORBIDDEN),
    (IdentityError, status.HTTP_400_BAD_REQUEST),
    (OrderNotFoundError, status.HTTP_404_NOT_FOUND),
    (GatewayError, status.HTTP_502_BAD_GATEWAY),
    (NetworkError, status.HTTP_504_GATEWAY_TIMEOUT),
    (StoreUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def to_http_exception(error: StorefrontError, **extra) -> HTTPException:
    """Maps a storefront failure to the response the UI shows."""
    status_code = next(
        (code for error_type, code in _STATUS_CODES if isinstance(error, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    detail = {"message": error.message, **extra}
    if isinstance(error, ValidationError) and error.field:
        detail["field"] = error.field
    if isinstance(error, IdentityError):
        detail["code"] = error.code
    return HTTPException(status_code=status_code, detail=detail)

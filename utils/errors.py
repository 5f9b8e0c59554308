from typing import Optional


class StorefrontError(Exception):
    """Base for every failure the storefront surfaces to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class AuthRequiredError(StorefrontError):
    def __init__(self, message: str = "Please sign in to complete your purchase."):
        super().__init__(message)


class StoreUnavailableError(StorefrontError):
    pass


class DocumentNotFoundError(StorefrontError):
    pass


class NetworkError(StorefrontError):
    pass


class GatewayError(StorefrontError):
    """The payment provider answered but rejected the request."""


class OrderNotFoundError(StorefrontError):
    pass


class ReauthenticationError(StorefrontError):
    def __init__(self, message: str = "Current password is incorrect"):
        super().__init__(message)


class IdentityError(StorefrontError):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code

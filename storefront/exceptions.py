"""
Custom exceptions for the storefront service.
"""
from typing import Optional


class StorefrontException(Exception):
    """Base exception for storefront operations"""
    pass


class ValidationError(StorefrontException):
    """Raised when validation fails"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CartLineNotFoundError(StorefrontException):
    """Raised when a cart line does not exist"""
    def __init__(self, line_id: str):
        self.line_id = line_id
        super().__init__(f"Cart line not found: {line_id}")


class StorageConnectionError(StorefrontException):
    """Raised when the cart storage backend is unreachable"""
    pass


class ApiError(StorefrontException):
    """Raised when the remote storefront API returns an error"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthenticationError(ApiError):
    """Raised when the remote API rejects the credentials or token"""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


class NotFoundError(ApiError):
    """Raised when the remote API has no such resource"""
    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class ApiUnavailableError(ApiError):
    """Raised when the remote API cannot be reached"""
    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class AdminAuthError(StorefrontException):
    """Raised when an admin session is missing or invalid"""
    def __init__(self, message: str = "Admin login required"):
        self.message = message
        super().__init__(message)

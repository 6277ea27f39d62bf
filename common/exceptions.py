"""
GiftShop - Custom Exceptions
=============================
Business-level exceptions that are converted to JSON HTTP responses
by the handler registered in main.py.
"""


class GiftShopError(Exception):
    """Base exception for all business logic errors."""
    status_code = 400

    def __init__(self, message: str = "Something went wrong", status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(GiftShopError):
    """Raised when request input is missing or malformed."""
    status_code = 400


class NotFoundError(GiftShopError):
    """Raised when a requested resource doesn't exist."""
    status_code = 404


class DuplicateError(GiftShopError):
    """Raised for unique constraint violations at the business level."""
    status_code = 409


class PaymentError(GiftShopError):
    """Raised for payment gateway errors."""
    status_code = 400


class OrderSaveError(GiftShopError):
    """Raised when an order could not be written to the database."""
    status_code = 500

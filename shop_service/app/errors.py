"""Domain errors.

Every error carries the HTTP status the routing layer answers with and the
message that goes into the ``{"error": ...}`` body.
"""


class ShopError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ShopError):
    """A required field is missing or malformed."""
    status_code = 400


class InvalidRequest(ValidationError):
    """The request is well-formed but cannot be processed (e.g. an empty order)."""


class Unauthorized(ShopError):
    status_code = 401


class InvalidToken(ShopError):
    # Bad or expired tokens answer 400, unlike a missing token (401).
    status_code = 400


class NotFound(ShopError):
    status_code = 404


class Conflict(ShopError):
    # Duplicate registrations are reported as a plain bad request.
    status_code = 400


class InsufficientStock(ShopError):
    status_code = 400

    def __init__(self, message: str, product_id: int = None, available: int = None, requested: int = None):
        super().__init__(message)
        self.product_id = product_id
        self.available = available
        self.requested = requested


class TotalMismatch(ShopError):
    status_code = 400

    def __init__(self, message: str, computed=None, claimed=None):
        super().__init__(message)
        self.computed = computed
        self.claimed = claimed

"""Domain errors raised by services and mapped to HTTP responses in main.py."""


class WarehouseError(Exception):
    """Base class for errors reported back to the API caller."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WarehouseError):
    """Missing or malformed input."""

    status_code = 400


class NotFoundError(WarehouseError):
    """Referenced material, product, user or other record does not exist."""

    status_code = 404


class InsufficientStock(WarehouseError):
    """A stock decrease would drive the quantity on hand below zero."""

    status_code = 400

    def __init__(self, message: str, available: float | None = None, requested: float | None = None):
        super().__init__(message)
        self.available = available
        self.requested = requested


class ConflictError(WarehouseError):
    """Operation blocked by dependent records or a duplicate."""

    status_code = 400

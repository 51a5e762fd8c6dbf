# Overview: Service-level exception taxonomy; each error carries its HTTP status.

"""
Every failure a service can report maps to exactly one HTTP status.

Routes never build error responses by hand for these: the handler
registered in create_app renders them into the standard envelope.
"""


class ServiceError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ServiceError, ValueError):
    """400-level input problem."""
    status_code = 400


class ConstraintViolationError(ServiceError):
    """400-level uniqueness or reference violation (e.g., duplicate name)."""
    status_code = 400


class UnauthenticatedError(ServiceError):
    """No credential was presented."""
    status_code = 401


class InvalidCredentialError(UnauthenticatedError):
    """Credential presented but unknown, expired, or revoked."""


class ForbiddenError(ServiceError):
    """Authenticated, but the role or account state does not allow it."""
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ProductNotFoundError(NotFoundError):
    def __init__(self, product_id: int):
        super().__init__(f"Product with ID {product_id} not found", details={"product_id": product_id})
        self.product_id = product_id


class InsufficientStockError(ServiceError):
    """A negative stock delta would take the product below zero."""
    status_code = 409

    def __init__(self, product_id: int, available: int, requested: int, product_name: str | None = None):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, requested: {requested}",
            details={
                "product_id": product_id,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class UnitOfWorkError(ServiceError):
    """A unit of work was concluded twice."""
    status_code = 500

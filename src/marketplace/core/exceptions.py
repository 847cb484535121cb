from typing import Any, Dict, List, Optional


class BaseAPIException(Exception):
    """
    Base for every error the API reports to clients.

    ``message`` is shown to the caller, ``internal_message`` only goes to the
    log. ``error_code`` defaults to the class name without the Error suffix.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        internal_message: Optional[str] = None,
    ):
        self.message = message
        self.internal_message = internal_message or message
        if status_code is not None:
            self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__.replace("Error", "").upper()
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            },
        }


class ValidationError(BaseAPIException):
    """Raised when request validation fails"""

    def __init__(
        self,
        message: str = "Validation failed",
        field_errors: Optional[List[Dict[str, str]]] = None,
    ):
        details = {"field_errors": field_errors} if field_errors else {}
        super().__init__(message, 400, "VALIDATION_ERROR", details)


class InsufficientStockError(BaseAPIException):
    """A product cannot cover the requested quantity; the whole order is refused"""

    def __init__(self, product_id: int, product_name: str, requested: int):
        super().__init__(
            f"Product {product_name} is out of stock",
            400,
            "INSUFFICIENT_STOCK",
            {"product_id": product_id, "requested": requested},
        )


class ShopUnavailableError(BaseAPIException):
    """The product belongs to a shop that is not accepting orders"""

    def __init__(self, product_id: int, product_name: str):
        super().__init__(
            f"Product {product_name} is not currently available",
            400,
            "SHOP_UNAVAILABLE",
            {"product_id": product_id},
        )


class UnauthorizedError(BaseAPIException):
    """Raised when user is not authenticated"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, 401, "UNAUTHORIZED")


class ForbiddenError(BaseAPIException):
    """Raised when user lacks permission for the requested action"""

    def __init__(self, message: str = "Access forbidden"):
        super().__init__(message, 403, "FORBIDDEN")


class NotFoundError(BaseAPIException):
    def __init__(self, resource: str = "Resource", resource_id: Optional[Any] = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id} not found"
        super().__init__(message, 404, "NOT_FOUND")


class ConflictError(BaseAPIException):
    """Raised when the request clashes with current state (duplicates, illegal moves)"""

    def __init__(
        self,
        message: str = "Resource conflict",
        conflict_field: Optional[str] = None,
        error_code: str = "CONFLICT",
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if conflict_field:
            details["conflict_field"] = conflict_field
        super().__init__(message, 409, error_code, details)


class InvalidStatusTransitionError(ConflictError):
    """A sub-order cannot move from its current status to the requested one"""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot change order status from {current} to {target}",
            conflict_field="status",
            error_code="INVALID_STATUS_TRANSITION",
            details={"from": current, "to": target},
        )


class RateLimitError(BaseAPIException):
    """Raised when a client exceeds its request quota"""

    def __init__(
        self,
        message: str = "Too many requests from this IP, please try again later",
        limit: Optional[str] = None,
    ):
        details = {"limit": limit} if limit else {}
        super().__init__(message, 429, "RATE_LIMIT_ERROR", details)


class DatabaseError(BaseAPIException):
    """Raised when database operations fail"""

    def __init__(self, message: str = "Database operation failed"):
        # driver messages can leak schema details
        super().__init__(
            "An internal error occurred. Please try again later.",
            500,
            "DATABASE_ERROR",
            internal_message=message,
        )


class InternalServerError(BaseAPIException):
    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(
            "An internal server error occurred. Please try again later.",
            500,
            "INTERNAL_ERROR",
            internal_message=message,
        )

"""
Error taxonomy for the payment schedule services.

Routers translate these into HTTP responses; services never raise
HTTPException themselves.
"""

from typing import Any, Dict, List, Optional


class PaymentScheduleError(Exception):
    """Base error carrying a machine-readable code and structured details"""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, **details: Any):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload = {"code": self.code, "message": self.message}
        payload.update(self.details)
        return payload


class NotFoundError(PaymentScheduleError):
    """Entity missing, or owned by another agency"""

    status_code = 404
    default_code = "NOT_FOUND"


class ValidationFailedError(PaymentScheduleError):
    """Structural or business-rule violation detected before persistence"""

    status_code = 400
    default_code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        warnings: Optional[List[Dict[str, Any]]] = None,
        **details: Any
    ):
        if errors is not None:
            details["errors"] = errors
        if warnings is not None:
            details["warnings"] = warnings
        super().__init__(message, code=code, **details)
        self.errors = errors or []
        self.warnings = warnings or []


class ConflictError(PaymentScheduleError):
    """Duplicate create of a one-per-activity entity"""

    status_code = 409
    default_code = "CONFLICT"

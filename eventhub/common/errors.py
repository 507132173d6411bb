"""Service error codes and HTTP-mapped exceptions.

Every rejection a workflow can produce carries a machine-readable reason so
clients can tell "limit reached" apart from "already registered" without
parsing the message text.
"""

from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class Reason(str, Enum):
    """Machine-distinguishable rejection reasons."""

    # Validation
    INVALID_INPUT = "INVALID_INPUT"
    NOT_OPEN = "NOT_OPEN"
    DEADLINE_PASSED = "DEADLINE_PASSED"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    PAYMENT_PROOF_REQUIRED = "PAYMENT_PROOF_REQUIRED"
    INVALID_VARIANT = "INVALID_VARIANT"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    EDIT_NOT_ALLOWED = "EDIT_NOT_ALLOWED"
    FORM_LOCKED = "FORM_LOCKED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CANNOT_CANCEL = "CANNOT_CANCEL"
    NOT_ATTENDABLE = "NOT_ATTENDABLE"
    PAYMENT_NOT_APPROVED = "PAYMENT_NOT_APPROVED"

    # Authorization
    FORBIDDEN = "FORBIDDEN"
    UNAUTHENTICATED = "UNAUTHENTICATED"

    # Not found
    NOT_FOUND = "NOT_FOUND"

    # Conflict
    LIMIT_REACHED = "LIMIT_REACHED"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    PURCHASE_LIMIT_REACHED = "PURCHASE_LIMIT_REACHED"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    DUPLICATE_SCAN = "DUPLICATE_SCAN"
    ALREADY_EXISTS = "ALREADY_EXISTS"


class ServiceError(HTTPException):
    """HTTPException carrying a reason code alongside the user-safe message."""

    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        reason: Reason,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.reason = reason
        self.message = message
        self.extra = extra or {}
        detail: Dict[str, Any] = {"reason": reason.value, "message": message}
        detail.update(self.extra)
        super().__init__(status_code=status_code or self.status_code_default, detail=detail)

    def __str__(self) -> str:
        return f"{self.reason.value}: {self.message}"


class ValidationFailed(ServiceError):
    status_code_default = status.HTTP_400_BAD_REQUEST


class PermissionDenied(ServiceError):
    status_code_default = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Access denied", reason: Reason = Reason.FORBIDDEN) -> None:
        super().__init__(reason, message)


class NotFound(ServiceError):
    status_code_default = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(Reason.NOT_FOUND, message)


class Conflict(ServiceError):
    status_code_default = status.HTTP_409_CONFLICT

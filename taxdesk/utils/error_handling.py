"""
Error Handling Module for UAE TaxDesk

Exception hierarchy raised by the engine and the FastAPI handlers that turn
it into the JSON error envelope:

    {"detail": {"code": ..., "message": ..., "timestamp": ..., "field": ..., "details": ...}}

Threshold breaches (de minimis, Small Business Relief) are reported as flags
on the result and never raised.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import logging
import re

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("taxdesk.errors")


TRN_PATTERN = re.compile(r"^\d{15}$")


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the envelope"""

    # Input (422)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TRN = "INVALID_TRN"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_CATEGORY = "INVALID_CATEGORY"
    MISSING_RECEIPT = "MISSING_RECEIPT"
    INVOICE_INVARIANT_VIOLATED = "INVOICE_INVARIANT_VIOLATED"
    INVOICE_LOCKED = "INVOICE_LOCKED"

    # Access (403)
    FORBIDDEN = "FORBIDDEN"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"

    # Lookup (4xx)
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    # Server (500)
    DOCUMENT_GENERATION_FAILED = "DOCUMENT_GENERATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


HTTP_STATUS_CODES = {
    400: ErrorCode.BAD_REQUEST,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    422: ErrorCode.VALIDATION_ERROR,
}


class AppException(Exception):
    """Base class of every engine error; carries its code and HTTP status"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Envelope body for this error"""
        body: Dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat() + "Z",
        }
        if self.field:
            body["field"] = self.field
        if self.details:
            body["details"] = self.details
        return body


# ============================================================================
# Validation (422)
# ============================================================================

class ValidationException(AppException):
    """A record failed boundary validation"""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(code, message, details=details, field=field)


class InvalidTRNException(ValidationException):
    """Tax Registration Number is not 15 digits"""

    def __init__(self, trn: str, field: str = "trn_number"):
        super().__init__(
            f"Invalid TRN '{trn}': a UAE TRN is exactly 15 digits",
            field=field,
            code=ErrorCode.INVALID_TRN,
            details={"provided_trn": trn},
        )


class InvalidAmountException(ValidationException):
    """Amount is missing, not a finite number, or negative"""

    def __init__(self, amount: Any, field: str = "amount"):
        super().__init__(
            f"Invalid amount '{amount}': expected a non-negative AED value",
            field=field,
            code=ErrorCode.INVALID_AMOUNT,
            details={"provided_amount": str(amount)},
        )


class MissingCategoryException(ValidationException):
    """Transaction submitted without a category"""

    def __init__(self, field: str = "category"):
        super().__init__(
            "A transaction category is required",
            field=field,
            code=ErrorCode.INVALID_CATEGORY,
        )


class MissingReceiptException(ValidationException):
    """Expense lacks a receipt reference in FTA-compliant mode"""

    def __init__(self, expense_id: str):
        super().__init__(
            f"Expense {expense_id} has no receipt attached and cannot be filed in FTA-compliant mode",
            field="receipt_file_id",
            code=ErrorCode.MISSING_RECEIPT,
            details={"expense_id": expense_id},
        )


class InvoiceValidationException(ValidationException):
    """One or more canonical invoice invariants failed"""

    def __init__(self, invoice_number: str, violations: List[str]):
        self.violations = violations
        super().__init__(
            f"Invoice {invoice_number} failed validation: " + "; ".join(violations),
            code=ErrorCode.INVOICE_INVARIANT_VIOLATED,
            details={"invoice_number": invoice_number, "violations": violations},
        )


class InvoiceLockedException(AppException):
    """Revenue entry already has an invoice issued against it"""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, entry_id: str, invoice_id: Optional[str] = None):
        super().__init__(
            ErrorCode.INVOICE_LOCKED,
            f"Revenue entry {entry_id} is invoiced and cannot be modified in place",
            details={"entry_id": entry_id, "invoice_id": invoice_id},
        )


# ============================================================================
# Access (403) / Lookup (404)
# ============================================================================

class InsufficientPermissionsException(AppException):
    """Caller role does not hold the required permission"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, required_permission: str, user_role: Optional[str] = None):
        details = {"required_permission": required_permission}
        if user_role:
            details["current_role"] = user_role
        super().__init__(
            ErrorCode.INSUFFICIENT_PERMISSIONS,
            f"Insufficient permissions. Required: {required_permission}",
            details=details,
        )


class NotificationNotFoundException(AppException):
    """Notification id is not in the active set"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, notification_id: str):
        super().__init__(
            ErrorCode.NOTIFICATION_NOT_FOUND,
            f"Notification '{notification_id}' not found",
            details={"notification_id": notification_id},
        )


# ============================================================================
# Document generation (500)
# ============================================================================

class DocumentGenerationException(AppException):
    """One or more compliance document renders failed"""

    def __init__(
        self,
        invoice_number: str,
        failures: Dict[str, str],
        original_error: Optional[Exception] = None,
    ):
        self.failures = failures
        super().__init__(
            ErrorCode.DOCUMENT_GENERATION_FAILED,
            f"Could not generate documents for invoice {invoice_number} ({', '.join(sorted(failures))})",
            details={"invoice_number": invoice_number, "failures": failures},
            original_error=original_error,
        )


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Wrap an error in the {"detail": {...}} envelope"""
    detail: Dict[str, Any] = {
        "code": code.value,
        "message": message,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }
    if field:
        detail["field"] = field
    if details:
        detail["details"] = details
    return JSONResponse(status_code=status_code, content={"detail": detail})


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.code.value} on {request.method} {request.url.path}: {exc.message}",
        exc_info=exc.original_error,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    logger.warning(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {message}")
    return create_error_response(
        code=HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR),
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query failed FastAPI's own validation"""
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(f"Rejected {request.method} {request.url.path}: {len(errors)} invalid field(s)")
    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.critical(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )
    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


# ============================================================================
# Utility Functions
# ============================================================================

def validate_trn(trn: str, field: str = "trn_number") -> str:
    """Validate and clean a UAE TRN (spaces and dashes are tolerated)"""
    cleaned = trn.replace("-", "").replace(" ", "")
    if not TRN_PATTERN.match(cleaned):
        raise InvalidTRNException(trn, field=field)
    return cleaned

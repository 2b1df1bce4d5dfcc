from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base for errors the API turns into a structured response.

    Subclasses pin ``status_code`` and ``error_code``; callers only pass
    the message and, where useful, a ``details`` dict for the client.
    """
    status_code: int = 400
    error_code: str = "BUSINESS_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        super().__init__(self.message)


class ValidationError(AppException):
    """Bad input shape: unknown leave type, end before start, unknown role."""
    status_code = 422
    error_code = "VALIDATION_ERROR"


class NotFoundError(AppException):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class InsufficientCreditsError(AppException):
    status_code = 409
    error_code = "INSUFFICIENT_CREDITS"


class NotEligibleError(AppException):
    """Credited leave used before the post-hire eligibility window closes."""
    status_code = 403
    error_code = "NOT_ELIGIBLE"


class StateConflictError(AppException):
    status_code = 409
    error_code = "STATE_CONFLICT"


class LedgerIntegrityError(AppException):
    status_code = 409
    error_code = "LEDGER_INTEGRITY"


class ImportParseError(AppException):
    """Structurally invalid biometric export. Recorded on the upload row, never surfaced."""
    error_code = "IMPORT_PARSE_ERROR"


class UnmatchedEmployeeWarning(UserWarning):
    """Non-fatal: a scan name that did not resolve to an employee."""

    def __init__(self, raw_name: str, scan_count: int = 1):
        self.raw_name = raw_name
        self.scan_count = scan_count
        super().__init__(f"No employee matched biometric name '{raw_name}'")

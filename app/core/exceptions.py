# app/core/exceptions.py
from typing import Optional, Dict, Any

from app.core.error_codes import ANALYSIS_CANCELLED


class AppError(Exception):
    """
    Base of every error that maps onto the ErrorResponse contract.

    Subclasses pin the HTTP status and the default retry hint; code and
    message are per raise site.
    """
    http_status: int = 500
    default_retryable: bool = False

    def __init__(
        self,
        *,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        retryable: Optional[bool] = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.retryable = self.default_retryable if retryable is None else retryable
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class RequestError(AppError):
    """Bad upload or form field (400)."""
    http_status = 400


class AnalysisError(AppError):
    """Input was well formed but cannot be analyzed as given (422)."""
    http_status = 422


class UpstreamError(AppError):
    """Advisory text service failure (502)."""
    http_status = 502
    default_retryable = True


class AnalysisCancelledError(AppError):
    http_status = 409
    default_retryable = True

    def __init__(self, *, message: str = "Analysis was cancelled", details=None):
        super().__init__(code=ANALYSIS_CANCELLED, message=message, details=details)


class ConfigError(Exception):
    """Raised when settings cannot be loaded or fail validation."""

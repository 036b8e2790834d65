# core/exceptions.py
"""
Error taxonomy for the reader screenshot service.

Every request-level failure is a ``ReaderServiceException`` carrying an
HTTP status and a stable ``code``; the FastAPI exception handler in
``main.py`` turns it into ``{"error": {...}}`` via ``to_dict()``.
"""

from typing import Any, Dict, List, Optional


class ReaderServiceException(Exception):
    """Base class for all errors surfaced to API callers."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "status": self.status_code,
        }
        if self.details:
            payload["details"] = self.details
        return {"error": payload}


class InvalidRequest(ReaderServiceException):
    """Missing or malformed ``url`` parameter – caller error."""

    code = "INVALID_REQUEST"
    status_code = 400


class UpstreamLoadFailure(ReaderServiceException):
    """Navigation to the target URL failed (timeout, DNS, connection, ...)."""

    code = "UPSTREAM_LOAD_FAILURE"
    status_code = 502


class ExtractionMiss(ReaderServiceException):
    """No article (or no content image) could be located on the page."""

    code = "NOT_FOUND"
    status_code = 404


class CaptureFailure(ReaderServiceException):
    """An element screenshot failed; skipped per image, raised only when every image fails."""

    code = "CAPTURE_FAILURE"
    status_code = 500


class BrowserFailure(ReaderServiceException):
    """The shared browser could not serve a page for this request."""

    code = "BROWSER_FAILURE"
    status_code = 500


class BrowserFatal(ReaderServiceException):
    """The browser process could not be launched; the service must not start."""

    code = "BROWSER_FATAL"
    status_code = 500


class ServiceBusy(ReaderServiceException):
    """No page slot became free within the admission timeout."""

    code = "SERVICE_BUSY"
    status_code = 503


class ValidationError(ReaderServiceException):
    """Wraps FastAPI request validation errors."""

    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, errors: List[Any]):
        super().__init__("Request validation failed", details={"errors": errors})

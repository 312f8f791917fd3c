"""
Analytics error taxonomy.

Every error carries a stable ``error_code`` and the HTTP status the route
layer should map it to, so callers can translate errors without parsing
messages.
"""

from typing import Any, Dict, Optional


class AnalyticsError(Exception):
    """Base analytics error with consistent structure"""

    error_code = "ANALYTICS_ERROR"
    status_code = 500

    def __init__(self, detail: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_code,
            "message": self.detail,
            "details": self.details,
        }


class InvalidDateRange(AnalyticsError):
    """Start date falls after end date"""

    error_code = "INVALID_DATE_RANGE"
    status_code = 400


class InvalidSortField(AnalyticsError):
    """Unrecognized sort key"""

    error_code = "INVALID_SORT_FIELD"
    status_code = 400


class InvalidParameter(AnalyticsError):
    """Parameter present but outside its allowed values"""

    error_code = "INVALID_PARAMETER"
    status_code = 400


class MissingRequiredParameter(AnalyticsError):
    """A required parameter was not supplied"""

    error_code = "MISSING_REQUIRED_PARAMETER"
    status_code = 400


class ResourceNotFound(AnalyticsError):
    """Referenced product or customer does not exist"""

    error_code = "RESOURCE_NOT_FOUND"
    status_code = 404


class InsufficientData(AnalyticsError):
    """Fewer data points than the caller explicitly required"""

    error_code = "INSUFFICIENT_DATA"
    status_code = 422

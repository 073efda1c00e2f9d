"""
PyHeaderBlock Exception Classes

Centralized exception handling for the PyHeaderBlock system.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for PyHeaderBlock"""
    # Configuration errors
    CONFIG_INVALID = "CONFIG_INVALID"
    CONFIG_MISSING = "CONFIG_MISSING"
    RULE_INVALID = "RULE_INVALID"

    # Access decisions
    ACCESS_DENIED = "ACCESS_DENIED"
    IP_NOT_ALLOWED = "IP_NOT_ALLOWED"
    HEADER_BLOCKED = "HEADER_BLOCKED"

    # Forwarding errors
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    UPSTREAM_TIMEOUT = "UPSTREAM_TIMEOUT"

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class PyHeaderBlockError(Exception):
    """Base exception class for all PyHeaderBlock errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or ErrorCode.INTERNAL_ERROR
        self.status_code = status_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization"""
        return {
            "error": {
                "code": self.error_code.value,
                "message": self.message,
                "status_code": self.status_code,
                "details": self.details
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class ConfigurationError(PyHeaderBlockError):
    """Configuration-related errors.

    Raised at engine construction when a header pattern does not compile,
    and when a configuration file cannot be read or validated.
    """

    def __init__(
        self,
        message: str,
        config_section: Optional[str] = None,
        pattern: Optional[str] = None,
        validation_errors: Optional[list] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if config_section:
            details['config_section'] = config_section
        if pattern is not None:
            details['pattern'] = pattern
        if validation_errors:
            details['validation_errors'] = validation_errors
        kwargs.setdefault('error_code', ErrorCode.CONFIG_INVALID)

        super().__init__(
            message=message,
            status_code=400,
            details=details,
            **kwargs
        )


class AccessDeniedError(PyHeaderBlockError):
    """Request rejected by the filter"""

    def __init__(
        self,
        message: str,
        client_ip: Optional[str] = None,
        url: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if client_ip:
            details['client_ip'] = client_ip
        if url:
            details['url'] = url
        kwargs.setdefault('error_code', ErrorCode.ACCESS_DENIED)

        super().__init__(
            message=message,
            status_code=403,
            details=details,
            **kwargs
        )


class IPNotAllowedError(AccessDeniedError):
    """Client address outside the allowlist"""

    def __init__(self, message: str = "IP not allowed", **kwargs):
        kwargs.setdefault('error_code', ErrorCode.IP_NOT_ALLOWED)
        super().__init__(message=message, **kwargs)


class BlockedHeaderError(AccessDeniedError):
    """Request carries a blocked, non-whitelisted header"""

    def __init__(
        self,
        message: str = "Blocked header",
        header: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if header:
            details['header'] = header
        kwargs.setdefault('error_code', ErrorCode.HEADER_BLOCKED)
        self.header = header

        super().__init__(message=message, details=details, **kwargs)


class UpstreamError(PyHeaderBlockError):
    """Upstream server errors"""

    def __init__(
        self,
        message: str,
        upstream_url: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if upstream_url:
            details['upstream_url'] = upstream_url
        kwargs.setdefault('error_code', ErrorCode.UPSTREAM_ERROR)
        kwargs.setdefault('status_code', 502)

        super().__init__(
            message=message,
            details=details,
            **kwargs
        )


class UpstreamTimeoutError(UpstreamError):
    """Upstream timeout errors"""

    def __init__(
        self,
        message: str = "Upstream server timeout",
        timeout_duration: Optional[float] = None,
        **kwargs
    ):
        details = kwargs.pop('details', None) or {}
        if timeout_duration:
            details['timeout_duration'] = timeout_duration

        super().__init__(
            message=message,
            error_code=ErrorCode.UPSTREAM_TIMEOUT,
            status_code=504,
            details=details,
            **kwargs
        )

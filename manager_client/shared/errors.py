"""
Shared error handling for the JWT revocation manager client.
"""

from typing import Dict, Any, Optional


class ManagerClientException(Exception):
    """Base exception for manager client failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a diagnostic dictionary."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class AuthorizationError(ManagerClientException):
    """The manager rejected the bearer token, even after a refresh."""

    def __init__(self, message: str = "Authorization failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHORIZATION_ERROR", message, details)


class ValidationError(ManagerClientException):
    """Caller supplied arguments the manager contract does not allow."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ServiceUnavailableError(ManagerClientException):
    """Connection, DNS or timeout failure talking to the manager."""

    def __init__(self, message: str = "Manager service unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_UNAVAILABLE", message, details)


class DecodingError(ManagerClientException):
    """A successful response whose body does not match the expected shape."""

    def __init__(self, message: str = "Malformed response body", details: Optional[Dict[str, Any]] = None):
        super().__init__("DECODING_ERROR", message, details)


class UnexpectedStatusError(ManagerClientException):
    """A status code the endpoint does not document."""

    def __init__(self, status_code: int, body: str, message: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.status_code = status_code
        self.body = body
        merged = {"status_code": status_code, "body": body}
        merged.update(details or {})
        super().__init__(
            "UNEXPECTED_STATUS",
            message or f"Manager responded with unexpected status {status_code}",
            merged,
        )

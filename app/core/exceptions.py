"""
Custom application exceptions
"""

from typing import Optional, Dict, Any, List


class TrustDinerException(Exception):
    """Base exception for TrustDiner application"""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(TrustDinerException):
    """Authentication related errors"""

    def __init__(self, message: str = "Authentication failed", code: str = "AUTH_ERROR"):
        super().__init__(
            message=message,
            code=code,
            status_code=401
        )


class AuthorizationError(TrustDinerException):
    """Authorization related errors"""

    def __init__(self, message: str = "Not authorized", details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="AUTH_FORBIDDEN",
            status_code=403,
            details=details
        )


class NotFoundError(TrustDinerException):
    """Resource not found errors"""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with id {identifier} not found"
        super().__init__(
            message=message,
            code="NOT_FOUND",
            status_code=404
        )


class ValidationError(TrustDinerException):
    """Validation errors"""

    def __init__(self, message: str, field: Optional[str] = None, code: str = "VALIDATION_ERROR"):
        details = {"field": field} if field else {}
        super().__init__(
            message=message,
            code=code,
            status_code=400,
            details=details
        )


class ConflictError(TrustDinerException):
    """Resource conflict errors"""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            details=details
        )


class NonDiningVenueError(TrustDinerException):
    """Place rejected by the dining venue-type rules"""

    def __init__(self, name: str, place_types: List[str], excluded_reasons: List[str]):
        super().__init__(
            message=f"{name} is not a dining establishment",
            code="NON_DINING_VENUE",
            status_code=400,
            details={
                "place_types": place_types,
                "excluded_reasons": excluded_reasons
            }
        )


class PlaceDetailsError(TrustDinerException):
    """Provider refused or failed a details lookup for a caller-supplied place"""

    def __init__(self, place_id: str, message: Optional[str] = None):
        super().__init__(
            message=message or "Failed to fetch place details",
            code="PLACE_DETAILS_FAILED",
            status_code=400,
            details={"place_id": place_id}
        )


class RateLimitError(TrustDinerException):
    """Rate limit exceeded error"""

    def __init__(self, limit: int, window: int):
        super().__init__(
            message=f"Rate limit exceeded. Max {limit} requests per {window} seconds",
            code="RATE_LIMIT_EXCEEDED",
            status_code=429,
            details={"limit": limit, "window": window}
        )


class ExternalServiceError(TrustDinerException):
    """External service error"""

    def __init__(self, service: str, message: str = None, status: Optional[int] = None):
        super().__init__(
            message=message or f"External service {service} is unavailable",
            code="EXTERNAL_SERVICE_ERROR",
            status_code=503,
            details={"service": service, "upstream_status": status}
        )


class ProviderConfigurationError(TrustDinerException):
    """External provider credential missing on the server"""

    def __init__(self, service: str = "google_places"):
        super().__init__(
            message=f"{service} API key not configured",
            code="PROVIDER_NOT_CONFIGURED",
            status_code=503,
            details={"service": service}
        )

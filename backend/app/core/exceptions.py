"""
Custom Exceptions for SocietyPro
================================

Use these instead of generic Exception in services so the API layer can map
failures to consistent status codes and payloads.

Usage:
    from app.core.exceptions import PaymentGatewayError

    try:
        payment = await gateway.fetch_payment(payment_id)
    except PaymentGatewayError as e:
        logger.error(f"Gateway lookup failed: {e}")
        raise
"""

from typing import Optional, Any, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse


class SocietyError(Exception):
    """Base exception for all SocietyPro errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authorization Errors
# ============================================

class AuthorizationError(SocietyError):
    """User not authorized for this action"""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, code="NOT_AUTHORIZED")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(SocietyError):
    """Base class for not found errors"""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class FlatNotFoundError(ResourceNotFoundError):
    """Flat not found"""

    def __init__(self, flat_id: str):
        super().__init__("Flat", flat_id)


class MaintenanceBillNotFoundError(ResourceNotFoundError):
    """Maintenance bill not found"""

    def __init__(self, bill_id: str):
        super().__init__("Maintenance bill", bill_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(SocietyError):
    """Input validation failed"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Storage Errors
# ============================================

class StorageError(SocietyError):
    """Storage operation failed"""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")


class ImageUploadError(StorageError):
    """Upload to object storage failed"""

    def __init__(self, key: str, message: str = "Upload failed"):
        super().__init__(f"Failed to upload image: {message}")
        self.code = "IMAGE_UPLOAD_FAILED"
        self.details["object_key"] = key


class InvalidImageError(ValidationError):
    """Uploaded file is not an accepted image"""

    def __init__(self, message: str, filename: Optional[str] = None):
        super().__init__(message, field="images")
        self.code = "INVALID_IMAGE"
        if filename:
            self.details["filename"] = filename


# ============================================
# Payment Errors
# ============================================

class PaymentError(SocietyError):
    """Payment operation failed"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message, code="PAYMENT_ERROR")


class PaymentNotConfiguredError(PaymentError):
    """Gateway credentials are missing"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self):
        super().__init__("Payment gateway is not configured. Please contact administrator.")
        self.code = "PAYMENT_NOT_CONFIGURED"


class PaymentGatewayError(PaymentError):
    """Gateway call failed (network, auth or API error)"""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, gateway_status: Optional[int] = None):
        super().__init__(message)
        self.code = "PAYMENT_GATEWAY_ERROR"
        if gateway_status:
            self.details["gateway_status"] = gateway_status

# ============================================
# Helpers for API responses
# ============================================

def error_response(error: SocietyError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "error": error.to_dict()
    }


async def society_error_handler(request: Request, exc: SocietyError) -> JSONResponse:
    """FastAPI handler that renders domain exceptions with their mapped status"""
    return JSONResponse(status_code=exc.status_code, content=error_response(exc))

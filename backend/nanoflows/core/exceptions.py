"""
Custom Exceptions for NanoFlows
===============================

Raise these from services instead of generic Exception. The handler
registered in main.py turns each one into an HTTP response using the
class-level status_code.

Usage:
    from nanoflows.core.exceptions import InsufficientStockError

    if product.stock < quantity:
        raise InsufficientStockError(product.name, available=product.stock)
"""

from typing import Optional, Any, Dict


class NanoFlowsError(Exception):
    """Base exception for all NanoFlows errors"""

    status_code: int = 500

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
# Authentication Errors
# ============================================

class AuthenticationError(NanoFlowsError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class TokenExpiredError(AuthenticationError):
    """JWT token has expired"""

    def __init__(self):
        super().__init__("Token has expired")
        self.code = "TOKEN_EXPIRED"


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid"""

    def __init__(self):
        super().__init__("Invalid token")
        self.code = "INVALID_TOKEN"


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(NanoFlowsError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class InsufficientStockError(ValidationError):
    """Requested quantity exceeds product stock"""

    def __init__(self, product_name: Optional[str] = None, available: Optional[int] = None):
        message = f"Insufficient stock for {product_name}" if product_name else "Insufficient stock"
        super().__init__(message, field="quantity")
        self.code = "INSUFFICIENT_STOCK"
        if available is not None:
            self.details["available"] = available


class InvalidFileTypeError(ValidationError):
    """File type not allowed"""

    def __init__(self, file_type: str, allowed_types: list):
        super().__init__(
            f"File type '{file_type}' not allowed. Allowed: {', '.join(allowed_types)}"
        )
        self.code = "INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


class FileTooLargeError(NanoFlowsError):
    """Uploaded file exceeds MAX_UPLOAD_SIZE"""

    status_code = 413

    def __init__(self, size: int, max_size: int):
        super().__init__(
            f"File too large. Maximum size is {max_size // 1024 // 1024}MB",
            code="FILE_TOO_LARGE",
            details={"size": size, "max_size": max_size}
        )


# ============================================
# Payment Errors
# ============================================

class PaymentError(NanoFlowsError):
    """Payment operation failed"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, code="PAYMENT_ERROR")


class PaymentNotConfiguredError(PaymentError):
    """Razorpay keys are missing"""

    status_code = 503

    def __init__(self):
        super().__init__("Payment service not configured. Please contact support.")
        self.code = "PAYMENT_NOT_CONFIGURED"


class PaymentGatewayError(PaymentError):
    """Razorpay rejected or failed the request"""

    status_code = 502

    def __init__(self, message: str = "Payment gateway error. Please try again."):
        super().__init__(message)
        self.code = "PAYMENT_GATEWAY_ERROR"


class InvalidSignatureError(PaymentError):
    """Razorpay signature did not match"""

    def __init__(self):
        super().__init__("Payment verification failed. Invalid signature.")
        self.code = "INVALID_SIGNATURE"


# ============================================
# Storage Errors
# ============================================

class StorageError(NanoFlowsError):
    """Storage operation failed"""

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")


class CertificateGenerationError(NanoFlowsError):
    """Certificate PDF could not be rendered"""

    def __init__(self, message: str = "Certificate generation failed"):
        super().__init__(message, code="CERTIFICATE_GENERATION_FAILED")


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: NanoFlowsError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "detail": error.message,
        "error": error.to_dict()
    }

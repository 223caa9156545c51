"""
Error taxonomy for the ElectroMart backend.

Every error raised by the services carries an ErrorKind. The HTTP layer maps
kinds to status codes through a lookup table, so a new kind has to be added to
the table explicitly.
"""
from enum import Enum
from typing import Optional

from .config import CLOUDINARY_ENV_VARS, FIREBASE_ENV_VARS, RAZORPAY_ENV_VARS


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INVALID_STATUS = "invalid_status"
    INVALID_TRANSITION = "invalid_transition"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"


HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATUS: 400,
    ErrorKind.INVALID_TRANSITION: 400,
    ErrorKind.UNAVAILABLE: 500,
    ErrorKind.INTERNAL: 500,
}


class ServiceError(Exception):
    """Base class for all errors that are reported to API clients."""
    kind = ErrorKind.INTERNAL
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION
    default_message = "Invalid request"


class SignatureFormatError(ValidationError):
    default_message = "Payment signature must be a 64 character hex string"


class UnauthenticatedError(ServiceError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Authentication required"


class UnauthorizedError(ServiceError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Not authorized"


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class InvalidStatusError(ServiceError):
    kind = ErrorKind.INVALID_STATUS
    default_message = "Invalid status update"


class InvalidTransitionError(ServiceError):
    kind = ErrorKind.INVALID_TRANSITION
    default_message = "Cannot downgrade order status"


class UnavailableError(ServiceError):
    kind = ErrorKind.UNAVAILABLE


class StoreUnavailableError(UnavailableError):
    default_message = (
        f"Firestore is not available. Firebase is not properly configured; set {FIREBASE_ENV_VARS}."
    )


class IdentityUnavailableError(UnavailableError):
    default_message = (
        f"Firebase Auth is not available. Firebase is not properly configured; set {FIREBASE_ENV_VARS}."
    )


class MediaUnavailableError(UnavailableError):
    default_message = f"Cloudinary is not configured. Please set valid {CLOUDINARY_ENV_VARS}."


class PaymentUnavailableError(UnavailableError):
    default_message = f"Razorpay is not configured. Please set valid {RAZORPAY_ENV_VARS}."


class InternalError(ServiceError):
    kind = ErrorKind.INTERNAL


class UpstreamError(InternalError):
    """An external platform rejected or failed a call."""
    default_message = "External service request failed"

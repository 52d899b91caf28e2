# backend/schoolmaster/core/exceptions.py
"""
Domain-specific exceptions for the SchoolMaster platform.

These exceptions carry the user-facing (Polish) message, a stable code and
optional details, and are converted to HTTP responses at the API layer.
"""

from typing import Any, Dict, List, NoReturn, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when request data fails business validation."""

    status_code = status.HTTP_400_BAD_REQUEST


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated (booking gating, limits, funds)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class UnauthorizedException(DomainException):
    """Raised when user is not authenticated."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        message: str = "Brak dostępu",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "Wystąpił błąd podczas przetwarzania żądania",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class PaymentException(DomainException):
    """Raised when the payment gateway rejects an authorization, capture or refund."""

    status_code = status.HTTP_400_BAD_REQUEST


class PaymentsUnavailableException(ServiceException):
    """Raised when card payments are requested but Stripe is not configured."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self) -> None:
        super().__init__(
            "Płatności kartą są chwilowo niedostępne",
            code="PAYMENTS_UNAVAILABLE",
        )


class BookingConflictException(ConflictException):
    """Raised when a lesson would occupy a tutor slot that is already taken."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Ten termin jest już zajęty",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class AvailabilityConflictException(ConflictException):
    """Raised when a tutor accepts an invitation for a slot they can no longer teach."""

    def __init__(self, details: Dict[str, Any], suggested_times: List[str]):
        super().__init__(
            message="AVAILABILITY_CONFLICT",
            code="AVAILABILITY_CONFLICT",
            details=details,
        )
        self.suggested_times = suggested_times

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
                "suggestedTimes": self.suggested_times,
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

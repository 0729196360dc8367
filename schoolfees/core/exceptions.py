from typing import List, Optional
from uuid import UUID

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_detail(self):
        return self.message


class ValidationError(ServiceError):
    """Bad input. Raised before any write is attempted."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> None:
        super().__init__(message, status_code)


class AuthenticationError(ServiceError):
    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class PermissionDeniedError(ServiceError):
    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(ValidationError):
    """Record missing, or owned by another account."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class TransportError(ServiceError):
    """Storage or SMS collaborator unreachable. Retryable by the caller."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class PartialFailureError(ServiceError):
    """
    Multi-record operation where the primary write succeeded but some dependent
    writes did not. Re-running the same operation (or reconcile) is safe.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        primary_id: Optional[UUID] = None,
        failed_ids: Optional[List[UUID]] = None,
    ) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.operation = operation
        self.primary_id = primary_id
        self.failed_ids = list(failed_ids or [])

    def to_detail(self):
        return {
            "message": self.message,
            "operation": self.operation,
            "primary_id": str(self.primary_id) if self.primary_id else None,
            "failed_ids": [str(i) for i in self.failed_ids],
        }

from typing import Any, Dict, Optional

from fastapi import status

from school_ledger.core.enums import ErrorKind


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"message": self.message}
        if self.kind is not None:
            detail["kind"] = self.kind.value
        return detail


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class InvalidInputError(ServiceError):
    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ReadFailed(ServiceError):
    """Reading the current section value failed. Nothing was written; safe to retry."""

    kind = ErrorKind.READ_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class AuditWriteFailed(ServiceError):
    """The audit entry could not be written, so the mutation was not attempted. Safe to retry."""

    kind = ErrorKind.AUDIT_WRITE_FAILED

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class MutationFailed(ServiceError):
    """Persisting the new value failed after the audit entry was written."""

    kind = ErrorKind.MUTATION_FAILED
    warning = "State may be inconsistent - please refresh and verify before editing again."

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["state_may_be_inconsistent"] = True
        detail["warning"] = self.warning
        return detail


class ReconciliationInputInvalid(ServiceError):
    kind = ErrorKind.RECONCILIATION_INPUT_INVALID

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY)


class DuplicateBaseFeesSetup(ServiceError):
    kind = ErrorKind.DUPLICATE_BASE_FEES_SETUP

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)

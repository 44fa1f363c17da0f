"""
Onboarding error types.

Validation errors are the caller's fault and carry every violation found;
operation errors hide collaborator and storage failures behind an opaque
message while the cause is logged server-side.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from clinichub.services.base import ServiceError, ValidationError

ErrorDetail = Dict[str, Any]


def error_detail(message: str, field: Optional[str] = None, **extra: Any) -> ErrorDetail:
    """Build one entry of an onboarding error list."""
    detail: ErrorDetail = {"field": field, "message": message}
    detail.update({key: value for key, value in extra.items() if value is not None})
    return detail


class OnboardingValidationError(ValidationError):
    """Payload shape or business rules violated."""

    def __init__(self, errors: Iterable[Union[ErrorDetail, str]], message: str = "Onboarding validation failed"):
        super().__init__(message)
        self.error_code = "ONBOARDING_VALIDATION_FAILED"
        self.errors: List[ErrorDetail] = [
            error if isinstance(error, dict) else error_detail(str(error)) for error in errors
        ]
        self.details = {"errors": self.errors}

    @property
    def messages(self) -> List[str]:
        return [error["message"] for error in self.errors]


class OnboardingOperationError(ServiceError):
    """A collaborator or the store failed while the hierarchy was being built."""

    PUBLIC_MESSAGE = "Onboarding failed due to an internal error. No changes were saved."

    def __init__(self, message: str = PUBLIC_MESSAGE, cause: Optional[BaseException] = None):
        super().__init__(message, "ONBOARDING_OPERATION_FAILED")
        self.cause = cause

from typing import Dict

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind = "Internal"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.kind, "message": self.message}

    def to_http(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class UnauthorizedError(ServiceError):
    kind = "Unauthorized"

    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(ServiceError):
    kind = "NotFound"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ValidationError(ServiceError):
    kind = "ValidationError"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ConflictError(ServiceError):
    kind = "Conflict"

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class InternalError(ServiceError):
    kind = "Internal"

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class NotConfiguredError(ServiceError):
    """Grading thresholds have not been set up."""

    kind = "NotConfigured"

    def __init__(self, message: str = "Grading system is not configured") -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class NotApprovedError(ServiceError):
    kind = "NotApproved"

    def __init__(self, message: str = "Report card must be approved first") -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NoParentError(ServiceError):
    kind = "NoParent"

    def __init__(self, message: str = "No parent assigned to this student") -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)

from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    USER_INACTIVE = ErrorDefinition(
        "USER_INACTIVE",
        "User is inactive",
        status.HTTP_403_FORBIDDEN,
    )
    PERMISSION_DENIED = ErrorDefinition(
        "PERMISSION_DENIED",
        "Permission denied",
        status.HTTP_403_FORBIDDEN,
    )
    TRANSFER_NOT_FOUND = ErrorDefinition(
        "TRANSFER_NOT_FOUND",
        "Transfer not found",
        status.HTTP_404_NOT_FOUND,
    )
    EQUIPMENT_NOT_FOUND = ErrorDefinition(
        "EQUIPMENT_NOT_FOUND",
        "One or more equipment records do not exist",
        status.HTTP_404_NOT_FOUND,
    )
    TRANSFER_DELETE_FORBIDDEN = ErrorDefinition(
        "TRANSFER_DELETE_FORBIDDEN",
        "Only the master admin can delete a delivered transfer",
        status.HTTP_403_FORBIDDEN,
    )
    TRANSFER_CONCURRENT_MODIFICATION = ErrorDefinition(
        "TRANSFER_CONCURRENT_MODIFICATION",
        "Transfer was modified by another request, reload and retry",
        status.HTTP_409_CONFLICT,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)

"""Mapping of application errors to HTTP errors."""

from typing import List, Tuple, Type

from fastapi import HTTPException, status

from app.core.exceptions import (
    AppError,
    DuplicateSectionError,
    NotFoundError,
    PatchConflictError,
    IrreversiblePatchError,
    PreconditionError,
    ValidationError,
    WorkflowStateError,
)
from app.utils.logging import get_logger
from app.utils.responses import create_error_detail

LOGGER = get_logger(__name__)

# Most specific first
ERROR_STATUS: List[Tuple[Type[AppError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (DuplicateSectionError, status.HTTP_409_CONFLICT),
    (WorkflowStateError, status.HTTP_409_CONFLICT),
    (PreconditionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (PatchConflictError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (IrreversiblePatchError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def to_http_exception(error: AppError, message: str) -> HTTPException:
    """Build the HTTPException for an application error.

    Args:
        error: Raised application error
        message: Human-readable message for the failed operation
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in ERROR_STATUS:
        if isinstance(error, error_type):
            status_code = code
            break

    if status_code >= 500:
        LOGGER.error(message, exc_info=True, extra={"error": str(error)})
    else:
        LOGGER.warning(message, extra={"error": str(error), "status_code": status_code})

    return HTTPException(
        status_code=status_code,
        detail=create_error_detail(type(error).__name__, message, error.message),
    )

"""Translation of workflow errors into HTTP responses."""

import logging

from fastapi import HTTPException, status

from infoline.core.approval.errors import (
    WorkflowError,
    EntryNotFoundError,
    InvalidTransitionError,
    UnauthorizedError,
    DataValidationError,
    PersistenceError,
    TransitionTimeoutError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    EntryNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    UnauthorizedError: status.HTTP_403_FORBIDDEN,
    DataValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PersistenceError: status.HTTP_503_SERVICE_UNAVAILABLE,
    TransitionTimeoutError: status.HTTP_504_GATEWAY_TIMEOUT,
}


def http_error(error: WorkflowError) -> HTTPException:
    """HTTPException carrying the error's context as its detail."""
    code = STATUS_CODES.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    context = error.context()
    if code >= 500:
        logger.error("Workflow request failed: %s", context)
    else:
        logger.info("Workflow request refused: %s", context)
    return HTTPException(status_code=code, detail=context)

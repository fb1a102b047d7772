from enum import Enum
from typing import Optional

from fastapi import HTTPException, status


class BaseAppException(HTTPException):
    def __init__(self, status_code: int, detail):
        super().__init__(status_code=status_code, detail=detail)

class NotFoundError(BaseAppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class WorkflowErrorCode(str, Enum):
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    REQUEST_NOT_FOUND = "REQUEST_NOT_FOUND"
    REQUEST_ALREADY_CLOSED = "REQUEST_ALREADY_CLOSED"
    NOT_AUTHORIZED_ACTOR = "NOT_AUTHORIZED_ACTOR"
    NO_ACTIVE_STEP = "NO_ACTIVE_STEP"
    UNKNOWN_ACTION = "UNKNOWN_ACTION"
    RESOLUTION_FAILED = "RESOLUTION_FAILED"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
    INVALID_FORWARD_TARGET = "INVALID_FORWARD_TARGET"
    COMMENT_REQUIRED = "COMMENT_REQUIRED"
    INVALID_VISIBILITY = "INVALID_VISIBILITY"
    INVALID_ATTACHMENT = "INVALID_ATTACHMENT"


# HTTP status used when a workflow error has to leave the API as an error response
WORKFLOW_ERROR_STATUS = {
    WorkflowErrorCode.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    WorkflowErrorCode.REQUEST_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    WorkflowErrorCode.REQUEST_ALREADY_CLOSED: status.HTTP_409_CONFLICT,
    WorkflowErrorCode.NOT_AUTHORIZED_ACTOR: status.HTTP_403_FORBIDDEN,
    WorkflowErrorCode.NO_ACTIVE_STEP: status.HTTP_409_CONFLICT,
    WorkflowErrorCode.UNKNOWN_ACTION: status.HTTP_400_BAD_REQUEST,
    WorkflowErrorCode.RESOLUTION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    WorkflowErrorCode.DUPLICATE_REQUEST: status.HTTP_409_CONFLICT,
    WorkflowErrorCode.INVALID_FORWARD_TARGET: status.HTTP_400_BAD_REQUEST,
    WorkflowErrorCode.COMMENT_REQUIRED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    WorkflowErrorCode.INVALID_VISIBILITY: status.HTTP_422_UNPROCESSABLE_ENTITY,
    WorkflowErrorCode.INVALID_ATTACHMENT: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


class WorkflowError(Exception):
    """Expected, user-facing workflow condition (never an infrastructure fault)"""

    def __init__(self, code: WorkflowErrorCode, message: Optional[str] = None):
        self.code = code
        self.message = message or code.value.replace("_", " ").capitalize()
        super().__init__(self.message)

    def to_http(self) -> BaseAppException:
        return BaseAppException(
            status_code=WORKFLOW_ERROR_STATUS.get(self.code, status.HTTP_400_BAD_REQUEST),
            detail={"success": False, "code": self.code.value, "message": self.message},
        )

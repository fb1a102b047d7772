from enum import Enum

# region Request Workflow Enums

class RequestStatus(str, Enum):
    DRAFT = "draft"
    PENDING_SUPERVISOR_APPROVAL = "pending_supervisor_approval"
    PENDING_HR_REVIEW = "pending_hr_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED_FOR_CORRECTION = "returned_for_correction"
    CLOSED = "closed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_REQUEST_STATUSES

    @property
    def is_pending(self) -> bool:
        return self in PENDING_REQUEST_STATUSES

class StepStatus(str, Enum):
    PENDING = "pending"
    WAITING = "waiting"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"
    SKIPPED = "skipped"

class RequestAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    RETURN = "return"
    FORWARD = "forward"
    ADD_COMMENT = "add_comment"
    CLOSE = "close"

class CommentVisibility(str, Enum):
    ALL = "all"
    INTERNAL = "internal"

class RequestEventType(str, Enum):
    CREATED = "created"
    SUBMITTED = "submitted"
    STATUS_CHANGED = "status_changed"
    APPROVED = "approved"
    REJECTED = "rejected"
    FORWARDED = "forwarded"
    RETURNED_FOR_CORRECTION = "returned_for_correction"
    CLOSED = "closed"
    COMMENT_ADDED = "comment_added"
    METADATA_UPDATED = "metadata_updated"
    ATTACHMENT_ADDED = "attachment_added"

class NotificationType(str, Enum):
    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_NEEDS_ATTENTION = "request_needs_attention"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"
    REQUEST_RETURNED = "request_returned"
    REQUEST_CLOSED = "request_closed"
    REQUEST_FORWARDED = "request_forwarded"
    COMMENT_ADDED = "comment_added"
    ATTACHMENT_ADDED = "attachment_added"

TERMINAL_REQUEST_STATUSES = frozenset({
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
    RequestStatus.CLOSED,
})

PENDING_REQUEST_STATUSES = frozenset({
    RequestStatus.PENDING_SUPERVISOR_APPROVAL,
    RequestStatus.PENDING_HR_REVIEW,
})

TERMINAL_STEP_STATUSES = frozenset({
    StepStatus.APPROVED,
    StepStatus.REJECTED,
    StepStatus.RETURNED,
    StepStatus.SKIPPED,
})

# endregion

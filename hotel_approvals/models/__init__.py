from hotel_approvals.models.auth.profile import Profile
from hotel_approvals.models.auth.user_role import UserRole
from hotel_approvals.models.workflow.request import Request
from hotel_approvals.models.workflow.request_step import RequestStep
from hotel_approvals.models.workflow.request_comment import RequestComment
from hotel_approvals.models.workflow.request_event import RequestEvent
from hotel_approvals.models.workflow.request_attachment import RequestAttachment
from hotel_approvals.models.alerts.notification_queue import NotificationQueue


__all__ = [
    "Profile",
    "UserRole",
    "Request",
    "RequestStep",
    "RequestComment",
    "RequestEvent",
    "RequestAttachment",
    "NotificationQueue",
]

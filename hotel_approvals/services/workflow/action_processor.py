import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_approvals.core.config import settings
from hotel_approvals.core.exceptions import WorkflowError, WorkflowErrorCode
from hotel_approvals.db.base import utcnow
from hotel_approvals.models.shared.enums import (
    CommentVisibility,
    NotificationType,
    RequestAction,
    RequestEventType,
    RequestStatus,
    StepStatus,
)
from hotel_approvals.models.auth.profile import Profile
from hotel_approvals.models.workflow.request import Request
from hotel_approvals.models.workflow.request_comment import RequestComment
from hotel_approvals.models.workflow.request_step import RequestStep
from hotel_approvals.schemas.workflow.request_schema import ActionResult
from hotel_approvals.services.notification.notification_service import (
    NotificationDispatcher,
    NotificationService,
)
from hotel_approvals.services.workflow.assignee_resolver import (
    AssigneeResolver,
    DirectoryAssigneeResolver,
)
from hotel_approvals.services.workflow.audit import record_event

logger = logging.getLogger(__name__)


def pending_status_for_role(role: Optional[str], current: RequestStatus) -> RequestStatus:
    """Pending label a request carries while a step with `role` is active"""
    if role and role in settings.HR_ROLES:
        return RequestStatus.PENDING_HR_REVIEW
    if role == "supervisor":
        return RequestStatus.PENDING_SUPERVISOR_APPROVAL
    if current.is_pending:
        return current
    return RequestStatus.PENDING_SUPERVISOR_APPROVAL


async def is_participant(session: AsyncSession, request: Request, actor_id: int) -> bool:
    """Requester, supervisor, current assignee or anyone holding a step of the request"""
    if actor_id in (request.requester_id, request.supervisor_id, request.current_assignee_id):
        return True
    step_id = await session.scalar(
        select(RequestStep.id).where(
            RequestStep.request_id == request.id,
            RequestStep.assignee_id == actor_id,
        ).limit(1)
    )
    return step_id is not None


@dataclass
class PendingNotification:
    recipient_id: int
    notification_type: NotificationType
    title: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TransitionOutcome:
    message: str
    notifications: List[PendingNotification] = field(default_factory=list)


class ActionProcessor:
    """
    Single entry point that advances a request.

    Every transition (step update, request update, next-step promotion,
    comment and audit rows) is committed as one transaction. Expected
    conditions come back as ``ActionResult(success=False)``; only
    infrastructure failures raise.
    """

    def __init__(
        self,
        session: AsyncSession,
        resolver: Optional[AssigneeResolver] = None,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        self.session = session
        self.resolver = resolver or DirectoryAssigneeResolver(session)
        self.notifier = notifier or NotificationService(session)

    async def apply_action(
        self,
        request_id: int,
        actor_id: Optional[int],
        action: Union[str, RequestAction],
        comment: Optional[str] = None,
        forward_to: Optional[int] = None,
        visibility: CommentVisibility = CommentVisibility.ALL,
    ) -> ActionResult:
        """Apply an actor's action to a request and report the outcome"""
        try:
            action = RequestAction(str(getattr(action, "value", action)).strip().lower())
        except ValueError:
            return ActionResult(
                success=False,
                code=WorkflowErrorCode.UNKNOWN_ACTION.value,
                message=f"Unknown action '{action}'",
                request_id=request_id,
            )

        if actor_id is None:
            return ActionResult(
                success=False,
                code=WorkflowErrorCode.NOT_AUTHENTICATED.value,
                message="User not authenticated",
                request_id=request_id,
                action=action,
            )

        try:
            outcome = await self._apply(request_id, actor_id, action, comment, forward_to, visibility)
            await self.session.commit()

        except WorkflowError as e:
            await self.session.rollback()
            logger.info(
                f"Action '{action.value}' on request {request_id} by user {actor_id} "
                f"refused: {e.code.value}"
            )
            return ActionResult(
                success=False,
                code=e.code.value,
                message=e.message,
                request_id=request_id,
                action=action,
            )
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error applying '{action.value}' to request {request_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error processing request action"
            )

        logger.info(f"Action '{action.value}' applied to request {request_id} by user {actor_id}")
        await self._dispatch(outcome.notifications)

        return ActionResult(
            success=True,
            message=outcome.message,
            request_id=request_id,
            action=action,
        )

    # region ========== Preconditions ==========

    async def _apply(
        self,
        request_id: int,
        actor_id: int,
        action: RequestAction,
        comment: Optional[str],
        forward_to: Optional[int],
        visibility: CommentVisibility,
    ) -> TransitionOutcome:
        request = await self._load_request(request_id)
        if request is None:
            raise WorkflowError(WorkflowErrorCode.REQUEST_NOT_FOUND, "Request not found")

        if request.status.is_terminal:
            raise WorkflowError(
                WorkflowErrorCode.REQUEST_ALREADY_CLOSED,
                f"Request is already {request.status.value}",
            )

        if action == RequestAction.ADD_COMMENT:
            return await self._add_comment(request, actor_id, comment, visibility)

        if action == RequestAction.CLOSE:
            return await self._close(request, actor_id, comment)

        if not self._may_act_on_step(request, actor_id, action):
            raise WorkflowError(
                WorkflowErrorCode.NOT_AUTHORIZED_ACTOR,
                "You are not the current assignee of this request",
            )

        step = await self._load_active_step(request)
        if step is None or step.assignee_id != request.current_assignee_id:
            raise WorkflowError(WorkflowErrorCode.NO_ACTIVE_STEP, "There is no pending step for you to act on")

        if action == RequestAction.APPROVE:
            return await self._approve(request, step, actor_id, comment)
        if action == RequestAction.REJECT:
            return await self._reject(request, step, actor_id, comment)
        if action == RequestAction.RETURN:
            return await self._return(request, step, actor_id, comment)
        return await self._forward(request, step, actor_id, comment, forward_to)

    def _may_act_on_step(self, request: Request, actor_id: int, action: RequestAction) -> bool:
        if request.current_assignee_id is not None:
            return request.current_assignee_id == actor_id
        # No approver could be resolved at submission: the requester may hand it to someone
        return action == RequestAction.FORWARD and request.requester_id == actor_id

    async def _load_request(self, request_id: int) -> Optional[Request]:
        result = await self.session.execute(
            select(Request)
            .where(Request.id == request_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _load_active_step(self, request: Request) -> Optional[RequestStep]:
        result = await self.session.execute(
            select(RequestStep)
            .where(
                RequestStep.request_id == request.id,
                RequestStep.status == StepStatus.PENDING,
            )
            .order_by(RequestStep.step_order)
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # endregion

    # region ========== Compare-and-swap writes ==========

    @staticmethod
    def _assignee_is(column, assignee_id: Optional[int]):
        return column.is_(None) if assignee_id is None else column == assignee_id

    async def _claim_step(self, step: RequestStep, **values) -> None:
        """Move the active step out of `pending` only if nobody else did first"""
        result = await self.session.execute(
            update(RequestStep)
            .where(
                RequestStep.id == step.id,
                RequestStep.status == StepStatus.PENDING,
                self._assignee_is(RequestStep.assignee_id, step.assignee_id),
            )
            .values(**values)
        )
        if result.rowcount != 1:
            raise WorkflowError(
                WorkflowErrorCode.NO_ACTIVE_STEP,
                "This step was already acted on",
            )

    async def _swap_request(self, request: Request, **values) -> None:
        """Update the request only if status and assignee still match what was validated"""
        values.setdefault("updated_at", utcnow())
        result = await self.session.execute(
            update(Request)
            .where(
                Request.id == request.id,
                Request.status == request.status,
                self._assignee_is(Request.current_assignee_id, request.current_assignee_id),
            )
            .values(**values)
        )
        if result.rowcount != 1:
            raise WorkflowError(
                WorkflowErrorCode.NO_ACTIVE_STEP,
                "The request changed while the action was being applied",
            )

    # endregion

    # region ========== Transitions ==========

    async def _approve(
        self, request: Request, step: RequestStep, actor_id: int, comment: Optional[str]
    ) -> TransitionOutcome:
        now = utcnow()
        previous_status = request.status
        await self._claim_step(step, status=StepStatus.APPROVED, acted_at=now, comment=comment)

        next_step = await self.session.scalar(
            select(RequestStep).where(
                RequestStep.request_id == request.id,
                RequestStep.step_order == step.step_order + 1,
                RequestStep.status == StepStatus.WAITING,
            )
        )

        title = self._title(request)
        notifications: List[PendingNotification] = []

        if next_step is not None:
            new_status = pending_status_for_role(next_step.assignee_role, previous_status)
            next_step.status = StepStatus.PENDING
            await self._swap_request(
                request,
                status=new_status,
                current_assignee_id=next_step.assignee_id,
            )
            record_event(
                self.session, request.id, actor_id, RequestEventType.APPROVED,
                {
                    "step_order": step.step_order,
                    "comment": comment,
                    "next_step_order": next_step.step_order,
                    "next_assignee_id": next_step.assignee_id,
                },
            )
            if new_status != previous_status:
                record_event(
                    self.session, request.id, actor_id, RequestEventType.STATUS_CHANGED,
                    {"from": previous_status.value, "to": new_status.value},
                )
            if next_step.assignee_id is not None:
                notifications.append(PendingNotification(
                    recipient_id=next_step.assignee_id,
                    notification_type=NotificationType.REQUEST_NEEDS_ATTENTION,
                    title="Approval Required",
                    message=(
                        f"Request #{request.request_no} ({title}) was approved by the previous "
                        f"reviewer and now requires your attention"
                    ),
                    data=self._payload(request),
                ))
            return TransitionOutcome(
                message=f"Step {step.step_order} approved; request moved to step {next_step.step_order}",
                notifications=notifications,
            )

        await self._swap_request(
            request,
            status=RequestStatus.APPROVED,
            current_assignee_id=None,
            completed_at=now,
        )
        record_event(
            self.session, request.id, actor_id, RequestEventType.APPROVED,
            {"step_order": step.step_order, "comment": comment, "final": True},
        )
        notifications.append(self._requester_notice(
            request, NotificationType.REQUEST_APPROVED, "Request Approved", "approved"
        ))
        return TransitionOutcome(message="Request approved", notifications=notifications)

    async def _reject(
        self, request: Request, step: RequestStep, actor_id: int, comment: Optional[str]
    ) -> TransitionOutcome:
        now = utcnow()
        await self._claim_step(step, status=StepStatus.REJECTED, acted_at=now, comment=comment)
        await self._swap_request(
            request,
            status=RequestStatus.REJECTED,
            current_assignee_id=None,
            completed_at=now,
        )
        record_event(
            self.session, request.id, actor_id, RequestEventType.REJECTED,
            {"step_order": step.step_order, "comment": comment},
        )
        return TransitionOutcome(
            message="Request rejected",
            notifications=[self._requester_notice(
                request, NotificationType.REQUEST_REJECTED, "Request Rejected", "rejected"
            )],
        )

    async def _return(
        self, request: Request, step: RequestStep, actor_id: int, comment: Optional[str]
    ) -> TransitionOutcome:
        now = utcnow()
        await self._claim_step(step, status=StepStatus.RETURNED, acted_at=now, comment=comment)
        await self._swap_request(
            request,
            status=RequestStatus.RETURNED_FOR_CORRECTION,
            current_assignee_id=request.requester_id,
        )
        record_event(
            self.session, request.id, actor_id, RequestEventType.RETURNED_FOR_CORRECTION,
            {"step_order": step.step_order, "comment": comment},
        )
        return TransitionOutcome(
            message="Request returned for correction",
            notifications=[self._requester_notice(
                request, NotificationType.REQUEST_RETURNED, "Request Returned", "returned for correction"
            )],
        )

    async def _forward(
        self,
        request: Request,
        step: RequestStep,
        actor_id: int,
        comment: Optional[str],
        forward_to: Optional[int],
    ) -> TransitionOutcome:
        if forward_to is None:
            forward_to = await self.resolver.resolve_approver(
                request.requester_id,
                step.assignee_role or "supervisor",
                (request.request_metadata or {}).get("property_id"),
                exclude={actor_id},
            )
            if forward_to is None:
                raise WorkflowError(
                    WorkflowErrorCode.RESOLUTION_FAILED,
                    f"No other '{step.assignee_role}' could be found to forward to",
                )

        if forward_to == actor_id or forward_to == step.assignee_id:
            raise WorkflowError(
                WorkflowErrorCode.INVALID_FORWARD_TARGET,
                "The request is already assigned to this user",
            )
        if forward_to == request.requester_id:
            raise WorkflowError(
                WorkflowErrorCode.INVALID_FORWARD_TARGET,
                "A request cannot be forwarded to its requester",
            )
        target = await self.session.scalar(
            select(Profile.id).where(Profile.id == forward_to, Profile.is_active == True)
        )
        if target is None:
            raise WorkflowError(
                WorkflowErrorCode.INVALID_FORWARD_TARGET,
                "The request can only be forwarded to an active user",
            )

        previous_assignee = step.assignee_id
        values = {"assignee_id": forward_to}
        if comment is not None:
            values["comment"] = comment
        await self._claim_step(step, status=StepStatus.PENDING, **values)
        await self._swap_request(request, current_assignee_id=forward_to)
        record_event(
            self.session, request.id, actor_id, RequestEventType.FORWARDED,
            {
                "step_order": step.step_order,
                "from": previous_assignee,
                "forward_to": forward_to,
                "comment": comment,
            },
        )
        return TransitionOutcome(
            message="Request forwarded",
            notifications=[PendingNotification(
                recipient_id=forward_to,
                notification_type=NotificationType.REQUEST_FORWARDED,
                title="Request Forwarded To You",
                message=f"Request #{request.request_no} ({self._title(request)}) was forwarded to you for review",
                data=self._payload(request),
            )],
        )

    async def _add_comment(
        self,
        request: Request,
        actor_id: int,
        comment: Optional[str],
        visibility: CommentVisibility,
    ) -> TransitionOutcome:
        text = (comment or "").strip()
        if not text:
            raise WorkflowError(WorkflowErrorCode.COMMENT_REQUIRED, "Comment text is required")
        try:
            visibility = CommentVisibility(getattr(visibility, "value", visibility))
        except ValueError:
            raise WorkflowError(
                WorkflowErrorCode.INVALID_VISIBILITY,
                f"Unknown comment visibility '{visibility}'",
            )

        if not await is_participant(self.session, request, actor_id):
            raise WorkflowError(
                WorkflowErrorCode.NOT_AUTHORIZED_ACTOR,
                "Only participants of this request can comment on it",
            )

        request_comment = RequestComment(
            request_id=request.id,
            author_id=actor_id,
            comment=text,
            visibility=visibility,
        )
        self.session.add(request_comment)
        await self.session.flush()

        record_event(
            self.session, request.id, actor_id, RequestEventType.COMMENT_ADDED,
            {"comment_id": request_comment.id, "visibility": visibility.value},
        )

        recipients = []
        if request.current_assignee_id is not None and request.current_assignee_id != actor_id:
            recipients.append(request.current_assignee_id)
        if (
            visibility == CommentVisibility.ALL
            and request.requester_id != actor_id
            and request.requester_id not in recipients
        ):
            recipients.append(request.requester_id)

        notifications = [
            PendingNotification(
                recipient_id=recipient_id,
                notification_type=NotificationType.COMMENT_ADDED,
                title="New Comment Added",
                message=f"A new comment was added to request #{request.request_no}",
                data={**self._payload(request), "comment_id": request_comment.id},
            )
            for recipient_id in recipients
        ]
        return TransitionOutcome(message="Comment added", notifications=notifications)

    async def _close(self, request: Request, actor_id: int, comment: Optional[str]) -> TransitionOutcome:
        if actor_id not in (request.requester_id, request.current_assignee_id):
            raise WorkflowError(
                WorkflowErrorCode.NOT_AUTHORIZED_ACTOR,
                "Only the requester or the current assignee can close this request",
            )

        now = utcnow()
        previous_assignee = request.current_assignee_id
        await self.session.execute(
            update(RequestStep)
            .where(
                RequestStep.request_id == request.id,
                RequestStep.status.in_([StepStatus.PENDING, StepStatus.WAITING]),
            )
            .values(status=StepStatus.SKIPPED)
        )
        await self._swap_request(
            request,
            status=RequestStatus.CLOSED,
            current_assignee_id=None,
            completed_at=now,
        )
        record_event(
            self.session, request.id, actor_id, RequestEventType.CLOSED,
            {"comment": comment},
        )

        notifications = []
        if request.requester_id != actor_id:
            notifications.append(self._requester_notice(
                request, NotificationType.REQUEST_CLOSED, "Request Closed", "closed"
            ))
        if previous_assignee is not None and previous_assignee != actor_id:
            notifications.append(PendingNotification(
                recipient_id=previous_assignee,
                notification_type=NotificationType.REQUEST_CLOSED,
                title="Request Closed",
                message=f"Request #{request.request_no} ({self._title(request)}) was closed",
                data=self._payload(request),
            ))
        return TransitionOutcome(message="Request closed", notifications=notifications)

    # endregion

    # region ========== Helpers ==========

    @staticmethod
    def _title(request: Request) -> str:
        return (request.request_metadata or {}).get("title") or request.entity_type

    @staticmethod
    def _payload(request: Request) -> Dict[str, Any]:
        return {
            "request_id": request.id,
            "request_no": request.request_no,
            "entity_type": request.entity_type,
            "entity_id": request.entity_id,
        }

    def _requester_notice(
        self, request: Request, notification_type: NotificationType, title: str, verb: str
    ) -> PendingNotification:
        return PendingNotification(
            recipient_id=request.requester_id,
            notification_type=notification_type,
            title=f"Request #{request.request_no} {verb}",
            message=f"Your request ({self._title(request)}) has been {verb}",
            data=self._payload(request),
        )

    async def _dispatch(self, notifications: List[PendingNotification]) -> None:
        for notice in notifications:
            try:
                await self.notifier.notify(
                    recipient_id=notice.recipient_id,
                    notification_type=notice.notification_type.value,
                    title=notice.title,
                    message=notice.message,
                    data=notice.data,
                )
            except Exception as e:
                logger.error(f"Error sending {notice.notification_type.value} notification: {e}")

    # endregion

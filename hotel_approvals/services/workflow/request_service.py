import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_approvals.core.config import settings
from hotel_approvals.core.exceptions import WorkflowError, WorkflowErrorCode
from hotel_approvals.db.base import utcnow
from hotel_approvals.models.shared.enums import (
    NotificationType,
    RequestEventType,
    RequestStatus,
    StepStatus,
    TERMINAL_STEP_STATUSES,
)
from hotel_approvals.models.workflow.request import Request
from hotel_approvals.models.workflow.request_attachment import RequestAttachment
from hotel_approvals.models.workflow.request_step import RequestStep
from hotel_approvals.schemas.workflow.request_schema import ActionResult, RequestResponse
from hotel_approvals.services.notification.notification_service import (
    NotificationDispatcher,
    NotificationService,
)
from hotel_approvals.services.workflow.action_processor import is_participant
from hotel_approvals.services.workflow.assignee_resolver import (
    SUPERVISOR_ROLE,
    AssigneeResolver,
    DirectoryAssigneeResolver,
)
from hotel_approvals.services.workflow.audit import record_event
from hotel_approvals.services.workflow.request_query_service import RequestQueryService
from hotel_approvals.utils.date_time_serializer import serialize_dates

logger = logging.getLogger(__name__)


class RequestService:
    """Creates approval requests and maintains their metadata and attachments"""

    def __init__(
        self,
        session: AsyncSession,
        resolver: Optional[AssigneeResolver] = None,
        notifier: Optional[NotificationDispatcher] = None,
    ):
        self.session = session
        self.resolver = resolver or DirectoryAssigneeResolver(session)
        self.notifier = notifier or NotificationService(session)

    # region ========== Submission ==========

    async def submit_request(
        self,
        entity_type: str,
        entity_id: Any,
        requester_id: Optional[int],
        property_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> RequestResponse:
        """
        Create a request and its approval chain for an entity.

        The chain comes from the configured flow for `entity_type`; each slot
        is resolved to a concrete approver and unresolved slots are dropped.
        When nothing resolves the request is still created with a single
        unassigned pending step, unless REQUIRE_RESOLVED_APPROVER is set.
        A previous request for the same entity that was returned for
        correction is closed and superseded by the new one.
        """
        if requester_id is None:
            raise WorkflowError(WorkflowErrorCode.NOT_AUTHENTICATED, "User not authenticated")

        entity_type = (entity_type or "").strip().lower()
        entity_id = str(entity_id)
        metadata = dict(metadata or {})
        if property_id is not None:
            metadata["property_id"] = property_id

        try:
            latest = await self._latest_for_entity(entity_type, entity_id)
            if latest is not None and latest.status.is_pending:
                raise WorkflowError(
                    WorkflowErrorCode.DUPLICATE_REQUEST,
                    f"Request #{latest.request_no} for this {entity_type} is already awaiting approval",
                )

            chain = await self._resolve_chain(entity_type, requester_id, property_id)
            supervisor_id = await self.resolver.resolve_supervisor(requester_id)
            now = utcnow()

            if latest is not None and latest.status == RequestStatus.RETURNED_FOR_CORRECTION:
                await self._supersede(latest, requester_id, now)

            first_assignee = chain[0][1]
            request = Request(
                request_no=await self._next_request_no(),
                entity_type=entity_type,
                entity_id=entity_id,
                requester_id=requester_id,
                supervisor_id=supervisor_id,
                current_assignee_id=first_assignee,
                status=RequestStatus.PENDING_SUPERVISOR_APPROVAL,
                submitted_at=now,
                request_metadata=serialize_dates(metadata),
            )
            self.session.add(request)
            await self.session.flush()

            for order, (role, assignee_id) in enumerate(chain, start=1):
                self.session.add(RequestStep(
                    request_id=request.id,
                    step_order=order,
                    assignee_id=assignee_id,
                    assignee_role=role,
                    status=StepStatus.PENDING if order == 1 else StepStatus.WAITING,
                    created_by=requester_id,
                ))

            record_event(
                self.session, request.id, requester_id, RequestEventType.CREATED,
                {"entity_type": entity_type, "entity_id": entity_id, "request_no": request.request_no},
            )
            record_event(
                self.session, request.id, requester_id, RequestEventType.SUBMITTED,
                {
                    "assignee_id": first_assignee,
                    "flow": [role for role, _ in chain],
                    "resubmission_of": latest.id if latest is not None else None,
                },
            )

            await self.session.commit()

        except WorkflowError:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error submitting {entity_type} {entity_id} for approval: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error submitting request"
            )

        logger.info(
            f"Request #{request.request_no} submitted for {entity_type} {entity_id} "
            f"by user {requester_id} ({len(chain)} step(s))"
        )

        if first_assignee is not None:
            title = metadata.get("title") or entity_type
            try:
                await self.notifier.notify(
                    recipient_id=first_assignee,
                    notification_type=NotificationType.REQUEST_SUBMITTED.value,
                    title="New Request Submitted",
                    message=f"Request #{request.request_no} ({title}) requires your approval",
                    data={
                        "request_id": request.id,
                        "request_no": request.request_no,
                        "entity_type": entity_type,
                        "entity_id": entity_id,
                    },
                )
            except Exception as e:
                logger.error(f"Error sending submission notification for request {request.id}: {e}")

        return await RequestQueryService(self.session).get_request(request.id)

    async def _resolve_chain(
        self, entity_type: str, requester_id: int, property_id: Optional[int]
    ) -> List[Tuple[str, Optional[int]]]:
        slots = settings.flow_for(entity_type)
        chain: List[Tuple[str, Optional[int]]] = []

        for role in slots:
            assignee_id = await self.resolver.resolve_approver(requester_id, role, property_id)
            if assignee_id is None:
                logger.warning(f"Dropping '{role}' step for {entity_type}: no approver resolved")
                continue
            # Same person on consecutive slots approves once
            if chain and chain[-1][1] == assignee_id:
                continue
            chain.append((role, assignee_id))

        if chain:
            return chain

        if settings.REQUIRE_RESOLVED_APPROVER:
            raise WorkflowError(
                WorkflowErrorCode.RESOLUTION_FAILED,
                f"No approver could be found for {entity_type} requests",
            )

        logger.warning(f"No approver resolved for {entity_type} by user {requester_id}; request left unassigned")
        return [(slots[0] if slots else SUPERVISOR_ROLE, None)]

    async def _latest_for_entity(self, entity_type: str, entity_id: str) -> Optional[Request]:
        result = await self.session.execute(
            select(Request)
            .where(Request.entity_type == entity_type, Request.entity_id == entity_id)
            .order_by(Request.created_at.desc(), Request.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _next_request_no(self) -> int:
        current = await self.session.scalar(select(func.max(Request.request_no)))
        return (current or 0) + 1

    async def _supersede(self, previous: Request, actor_id: int, now) -> None:
        await self.session.execute(
            update(RequestStep)
            .where(
                RequestStep.request_id == previous.id,
                RequestStep.status.notin_(list(TERMINAL_STEP_STATUSES)),
            )
            .values(status=StepStatus.SKIPPED)
        )
        previous.status = RequestStatus.CLOSED
        previous.current_assignee_id = None
        previous.completed_at = now
        record_event(
            self.session, previous.id, actor_id, RequestEventType.CLOSED,
            {"reason": "resubmitted"},
        )

    # endregion

    # region ========== Metadata ==========

    async def update_request_metadata(
        self,
        request_id: int,
        actor_id: Optional[int],
        updates: Dict[str, Any],
    ) -> ActionResult:
        """Merge `updates` into the request metadata (requester or current assignee only)"""
        if actor_id is None:
            return ActionResult(
                success=False,
                code=WorkflowErrorCode.NOT_AUTHENTICATED.value,
                message="User not authenticated",
                request_id=request_id,
            )

        try:
            result = await self.session.execute(
                select(Request)
                .where(Request.id == request_id)
                .execution_options(populate_existing=True)
            )
            request = result.scalar_one_or_none()

            if request is None:
                raise WorkflowError(WorkflowErrorCode.REQUEST_NOT_FOUND, "Request not found")
            if request.status.is_terminal:
                raise WorkflowError(
                    WorkflowErrorCode.REQUEST_ALREADY_CLOSED,
                    f"Request is already {request.status.value}",
                )
            if actor_id not in (request.requester_id, request.current_assignee_id):
                raise WorkflowError(
                    WorkflowErrorCode.NOT_AUTHORIZED_ACTOR,
                    "Only the requester or the current assignee can update this request",
                )

            merged = dict(request.request_metadata or {})
            merged.update(serialize_dates(updates))
            request.request_metadata = merged

            record_event(
                self.session, request.id, actor_id, RequestEventType.METADATA_UPDATED,
                {"keys": sorted(updates.keys())},
            )
            await self.session.commit()

        except WorkflowError as e:
            await self.session.rollback()
            return ActionResult(success=False, code=e.code.value, message=e.message, request_id=request_id)
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating metadata of request {request_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error updating request"
            )

        logger.info(f"Request {request_id} metadata updated by user {actor_id}")
        return ActionResult(success=True, message="Request updated", request_id=request_id)

    # endregion

    # region ========== Attachments ==========

    async def add_attachment(
        self,
        request_id: int,
        actor_id: Optional[int],
        storage_path: str,
        file_name: Optional[str] = None,
        file_type: Optional[str] = None,
        file_size: Optional[int] = None,
    ) -> ActionResult:
        """
        Record a file uploaded for a request.

        The file itself lives in object storage under
        ``requests/{request_id}/``; only its location and description are
        stored here. Any participant may attach while the request is not
        terminal. Size and content type are checked against
        ATTACHMENT_MAX_BYTES and ATTACHMENT_ALLOWED_TYPES.
        """
        if actor_id is None:
            return ActionResult(
                success=False,
                code=WorkflowErrorCode.NOT_AUTHENTICATED.value,
                message="User not authenticated",
                request_id=request_id,
            )

        try:
            result = await self.session.execute(
                select(Request)
                .where(Request.id == request_id)
                .execution_options(populate_existing=True)
            )
            request = result.scalar_one_or_none()

            if request is None:
                raise WorkflowError(WorkflowErrorCode.REQUEST_NOT_FOUND, "Request not found")
            if request.status.is_terminal:
                raise WorkflowError(
                    WorkflowErrorCode.REQUEST_ALREADY_CLOSED,
                    f"Request is already {request.status.value}",
                )
            if not await is_participant(self.session, request, actor_id):
                raise WorkflowError(
                    WorkflowErrorCode.NOT_AUTHORIZED_ACTOR,
                    "Only participants of this request can attach files to it",
                )

            file_name = self._validate_attachment(request.id, storage_path, file_name, file_type, file_size)

            attachment = RequestAttachment(
                request_id=request.id,
                uploaded_by=actor_id,
                storage_bucket=settings.ATTACHMENT_BUCKET,
                storage_path=storage_path,
                file_name=file_name,
                file_type=file_type,
                file_size=file_size,
            )
            self.session.add(attachment)
            await self.session.flush()

            record_event(
                self.session, request.id, actor_id, RequestEventType.ATTACHMENT_ADDED,
                {"attachment_id": attachment.id, "file_name": file_name},
            )
            await self.session.commit()

        except WorkflowError as e:
            await self.session.rollback()
            return ActionResult(success=False, code=e.code.value, message=e.message, request_id=request_id)
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error attaching file to request {request_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error attaching file"
            )

        logger.info(f"File '{file_name}' attached to request {request_id} by user {actor_id}")

        recipients = [
            user_id
            for user_id in dict.fromkeys((request.current_assignee_id, request.requester_id))
            if user_id is not None and user_id != actor_id
        ]
        for recipient_id in recipients:
            try:
                await self.notifier.notify(
                    recipient_id=recipient_id,
                    notification_type=NotificationType.ATTACHMENT_ADDED.value,
                    title="New Attachment",
                    message=f"A file ({file_name}) was attached to request #{request.request_no}",
                    data={
                        "request_id": request.id,
                        "request_no": request.request_no,
                        "attachment_id": attachment.id,
                    },
                )
            except Exception as e:
                logger.error(f"Error sending attachment notification for request {request_id}: {e}")

        return ActionResult(success=True, message="File attached", request_id=request_id)

    @staticmethod
    def _validate_attachment(
        request_id: int,
        storage_path: str,
        file_name: Optional[str],
        file_type: Optional[str],
        file_size: Optional[int],
    ) -> str:
        prefix = f"requests/{request_id}/"
        stored_name = (storage_path or "")[len(prefix):]
        if not (storage_path or "").startswith(prefix) or not stored_name or "/" in stored_name:
            raise WorkflowError(
                WorkflowErrorCode.INVALID_ATTACHMENT,
                f"Attachments of this request must be stored under '{prefix}'",
            )
        if file_size is not None and file_size > settings.ATTACHMENT_MAX_BYTES:
            raise WorkflowError(
                WorkflowErrorCode.INVALID_ATTACHMENT,
                f"Attachments cannot be larger than {settings.ATTACHMENT_MAX_BYTES} bytes",
            )
        if file_type is not None and file_type not in settings.ATTACHMENT_ALLOWED_TYPES:
            raise WorkflowError(
                WorkflowErrorCode.INVALID_ATTACHMENT,
                f"Files of type '{file_type}' cannot be attached",
            )
        return file_name or stored_name

    # endregion

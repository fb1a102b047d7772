import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hotel_approvals.core.config import settings
from hotel_approvals.models.shared.enums import (
    CommentVisibility,
    PENDING_REQUEST_STATUSES,
    RequestStatus,
)
from hotel_approvals.models.workflow.request import Request
from hotel_approvals.models.workflow.request_event import RequestEvent
from hotel_approvals.schemas.workflow.request_schema import (
    OverdueRequest,
    RequestEventInfo,
    RequestResponse,
    RequestSummary,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RequestQueryService:
    """Read side of the workflow: request detail, inboxes and listings"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _detail_query(self):
        return (
            select(Request)
            .options(
                selectinload(Request.steps),
                selectinload(Request.comments),
                selectinload(Request.attachments),
            )
            .execution_options(populate_existing=True)
        )

    @staticmethod
    def _to_response(request: Request, viewer_id: Optional[int] = None) -> RequestResponse:
        response = RequestResponse.model_validate(request, from_attributes=True)
        if viewer_id is not None and viewer_id == request.requester_id:
            response.comments = [
                c for c in response.comments if c.visibility != CommentVisibility.INTERNAL
            ]
        return response

    # region ========== Single request ==========

    async def get_latest_request(
        self,
        entity_type: str,
        entity_id: Any,
        viewer_id: Optional[int] = None,
    ) -> Optional[RequestResponse]:
        """Most recent request for an entity, or None when it was never submitted"""
        try:
            result = await self.session.execute(
                self._detail_query()
                .where(
                    Request.entity_type == entity_type.strip().lower(),
                    Request.entity_id == str(entity_id),
                )
                .order_by(Request.created_at.desc(), Request.id.desc())
                .limit(1)
            )
            request = result.scalar_one_or_none()
            if request is None:
                return None
            return self._to_response(request, viewer_id)

        except Exception as e:
            logger.error(f"Error getting latest request for {entity_type} {entity_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error getting request"
            )

    async def get_request(self, request_id: int, viewer_id: Optional[int] = None) -> Optional[RequestResponse]:
        """Get a specific request with its steps and comments"""
        try:
            result = await self.session.execute(
                self._detail_query().where(Request.id == request_id)
            )
            request = result.scalar_one_or_none()
            if request is None:
                return None
            return self._to_response(request, viewer_id)

        except Exception as e:
            logger.error(f"Error getting request {request_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error getting request"
            )

    async def get_request_events(self, request_id: int) -> List[RequestEventInfo]:
        """Audit trail of a request, oldest first"""
        try:
            result = await self.session.execute(
                select(RequestEvent)
                .where(RequestEvent.request_id == request_id)
                .order_by(RequestEvent.id)
            )
            return [
                RequestEventInfo.model_validate(event, from_attributes=True)
                for event in result.scalars().all()
            ]

        except Exception as e:
            logger.error(f"Error getting events of request {request_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error getting request events"
            )

    # endregion

    # region ========== Listings ==========

    async def list_requests(
        self,
        request_status: Optional[RequestStatus] = None,
        entity_type: Optional[str] = None,
        requester_id: Optional[int] = None,
        assignee_id: Optional[int] = None,
        page_index: int = 1,
        page_size: int = 100,
    ) -> Dict[str, Any]:
        """Get paginated requests with filtering"""
        conditions = []

        if request_status:
            conditions.append(Request.status == request_status)
        if entity_type:
            conditions.append(Request.entity_type == entity_type.strip().lower())
        if requester_id is not None:
            conditions.append(Request.requester_id == requester_id)
        if assignee_id is not None:
            conditions.append(Request.current_assignee_id == assignee_id)

        try:
            # Get total count
            total_count = await self.session.scalar(
                select(func.count(Request.id)).where(*conditions)
            )

            # Calculate offset
            skip = (page_index - 1) * page_size

            result = await self.session.execute(
                select(Request)
                .where(*conditions)
                .order_by(Request.created_at.desc(), Request.id.desc())
                .offset(skip)
                .limit(page_size)
                .execution_options(populate_existing=True)
            )

            return {
                "page_index": page_index,
                "page_size": page_size,
                "count": total_count or 0,
                "data": [
                    RequestSummary.model_validate(req, from_attributes=True)
                    for req in result.scalars().all()
                ]
            }

        except Exception as e:
            logger.error(f"Error listing requests: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error listing requests"
            )

    async def get_pending_for_assignee(self, assignee_id: int) -> List[RequestResponse]:
        """Requests currently waiting on this user ("my approvals")"""
        try:
            result = await self.session.execute(
                self._detail_query()
                .where(
                    Request.current_assignee_id == assignee_id,
                    Request.status.in_(list(PENDING_REQUEST_STATUSES)),
                )
                .order_by(Request.submitted_at, Request.id)
            )
            return [self._to_response(req, assignee_id) for req in result.scalars().all()]

        except Exception as e:
            logger.error(f"Error getting pending requests for user {assignee_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error getting pending requests"
            )

    async def get_overdue_requests(
        self,
        threshold_hours: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[OverdueRequest]:
        """Pending requests submitted more than `threshold_hours` ago, oldest first"""
        threshold_hours = threshold_hours if threshold_hours is not None else settings.OVERDUE_THRESHOLD_HOURS
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=threshold_hours)

        try:
            result = await self.session.execute(
                select(Request)
                .where(
                    Request.status.in_(list(PENDING_REQUEST_STATUSES)),
                    Request.submitted_at.is_not(None),
                    Request.submitted_at <= cutoff,
                )
                .order_by(Request.submitted_at, Request.id)
                .execution_options(populate_existing=True)
            )

            overdue = []
            for req in result.scalars().all():
                summary = RequestSummary.model_validate(req, from_attributes=True)
                hours_pending = int((now - _as_utc(req.submitted_at)).total_seconds() // 3600)
                overdue.append(OverdueRequest(**summary.model_dump(), hours_pending=hours_pending))
            return overdue

        except Exception as e:
            logger.error(f"Error getting overdue requests: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error getting overdue requests"
            )

    # endregion

import logging
from fastapi import APIRouter, Depends, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from hotel_approvals.api.dependencies import get_current_actor
from hotel_approvals.core.database import get_async_session
from hotel_approvals.core.exceptions import NotFoundError, WorkflowError
from hotel_approvals.models.auth.profile import Profile
from hotel_approvals.models.shared.enums import RequestStatus
from hotel_approvals.schemas.common.pagination import PaginatedResponse
from hotel_approvals.schemas.workflow.request_schema import (
    ActionResult,
    OverdueRequest,
    RequestActionRequest,
    RequestAttachmentCreate,
    RequestEventInfo,
    RequestMetadataUpdate,
    RequestResponse,
    RequestSubmit,
    RequestSummary,
)
from hotel_approvals.services.workflow.action_processor import ActionProcessor
from hotel_approvals.services.workflow.request_query_service import RequestQueryService
from hotel_approvals.services.workflow.request_service import RequestService

router = APIRouter()
logger = logging.getLogger(__name__)

# region ========== Submission ==========

@router.post("", response_model=RequestResponse, status_code=201)
async def submit_request(
    payload: RequestSubmit,
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Submit an entity for approval"""
    service = RequestService(session)
    try:
        return await service.submit_request(
            entity_type=payload.entity_type,
            entity_id=payload.entity_id,
            requester_id=current_actor.id,
            property_id=payload.property_id,
            metadata=payload.metadata,
        )
    except WorkflowError as e:
        raise e.to_http()

# endregion

# region ========== Queries ==========

@router.get("/latest", response_model=Optional[RequestResponse])
async def get_latest_request(
    entity_type: str = Query(..., min_length=1),
    entity_id: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Latest request for an entity (null when it was never submitted)"""
    service = RequestQueryService(session)
    return await service.get_latest_request(entity_type, entity_id, viewer_id=current_actor.id)

@router.get("", response_model=PaginatedResponse[RequestSummary])
async def list_requests(
    request_status: Optional[RequestStatus] = Query(None, alias="status", description="Filter by status"),
    entity_type: Optional[str] = Query(None, description="Filter by entity type"),
    requester_id: Optional[int] = Query(None, description="Filter by requester"),
    assignee_id: Optional[int] = Query(None, description="Filter by current assignee"),
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=500),
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Get paginated requests with filtering"""
    service = RequestQueryService(session)
    return await service.list_requests(
        request_status=request_status,
        entity_type=entity_type,
        requester_id=requester_id,
        assignee_id=assignee_id,
        page_index=page_index,
        page_size=page_size,
    )

@router.get("/pending/my-approvals", response_model=List[RequestResponse])
async def get_my_pending_approvals(
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Requests waiting on the current user"""
    service = RequestQueryService(session)
    return await service.get_pending_for_assignee(current_actor.id)

@router.get("/overdue", response_model=List[OverdueRequest])
async def get_overdue_requests(
    threshold_hours: Optional[int] = Query(None, ge=1, description="Defaults to OVERDUE_THRESHOLD_HOURS"),
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Pending requests older than the escalation threshold"""
    service = RequestQueryService(session)
    return await service.get_overdue_requests(threshold_hours)

@router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: int = Path(...),
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Get a specific request"""
    service = RequestQueryService(session)
    request = await service.get_request(request_id, viewer_id=current_actor.id)

    if not request:
        raise NotFoundError("Request not found")

    return request

@router.get("/{request_id}/events", response_model=List[RequestEventInfo])
async def get_request_events(
    request_id: int = Path(...),
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Audit trail of a request"""
    service = RequestQueryService(session)
    return await service.get_request_events(request_id)

# endregion

# region ========== Actions ==========

@router.post("/{request_id}/actions", response_model=ActionResult)
async def apply_request_action(
    request_id: int = Path(...),
    payload: RequestActionRequest = ...,
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Approve, reject, return, forward, comment on or close a request"""
    processor = ActionProcessor(session)
    return await processor.apply_action(
        request_id=request_id,
        actor_id=current_actor.id,
        action=payload.action,
        comment=payload.comment,
        forward_to=payload.forward_to,
        visibility=payload.visibility,
    )

@router.patch("/{request_id}/metadata", response_model=ActionResult)
async def update_request_metadata(
    request_id: int = Path(...),
    payload: RequestMetadataUpdate = ...,
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Merge keys into a request's metadata"""
    service = RequestService(session)
    return await service.update_request_metadata(request_id, current_actor.id, payload.updates)

@router.post("/{request_id}/attachments", response_model=ActionResult)
async def add_request_attachment(
    request_id: int = Path(...),
    payload: RequestAttachmentCreate = ...,
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Record a file uploaded to the request's storage folder"""
    service = RequestService(session)
    return await service.add_attachment(
        request_id,
        current_actor.id,
        storage_path=payload.storage_path,
        file_name=payload.file_name,
        file_type=payload.file_type,
        file_size=payload.file_size,
    )

# endregion

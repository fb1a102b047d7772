from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from hotel_approvals.api.dependencies import get_current_actor
from hotel_approvals.core.database import get_async_session
from hotel_approvals.core.exceptions import NotFoundError
from hotel_approvals.models.auth.profile import Profile
from hotel_approvals.schemas.notification.notification_schema import NotificationResponse
from hotel_approvals.services.notification.notification_service import NotificationService

router = APIRouter()

@router.get("", response_model=List[NotificationResponse])
async def get_my_notifications(
    limit: int = Query(50, ge=1, le=200),
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Get the current user's recent notifications"""
    service = NotificationService(session)
    return await service.get_user_notifications(current_actor.id, limit)

@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int = Path(...),
    session: AsyncSession = Depends(get_async_session),
    current_actor: Profile = Depends(get_current_actor)
):
    """Mark one of the current user's notifications as read"""
    service = NotificationService(session)
    if not await service.mark_notification_read(notification_id, current_actor.id):
        raise NotFoundError("Notification not found")
    return {"success": True}

import logging
from typing import Dict, Any, Optional, Protocol
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from datetime import datetime, timezone
from hotel_approvals.core.config import settings
from hotel_approvals.models.alerts.notification_queue import NotificationQueue

logger = logging.getLogger(__name__)

UI_NOTIFICATION = "UI_NOTIFICATION"


class NotificationDispatcher(Protocol):
    """Fire-and-forget "a request needs your attention" style signal"""

    async def notify(
        self,
        recipient_id: int,
        notification_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...


class NotificationService:
    """Service for in-app UI notifications"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        recipient_id: int,
        notification_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Queue a notification; failures are logged and never raised"""
        if not settings.NOTIFICATIONS_ENABLED:
            logger.info(f"Notifications disabled; skipping {notification_type} for user {recipient_id}")
            return

        try:
            await self.send_real_time_notification(
                user_id=recipient_id,
                notification_type=notification_type,
                title=title,
                message=message,
                data=data,
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error queuing {notification_type} notification for user {recipient_id}: {e}")

    async def send_real_time_notification(
        self,
        user_id: int,
        notification_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None
    ) -> NotificationQueue:
        """Store notification for the user"""
        notification = NotificationQueue(
            notification_type=UI_NOTIFICATION,
            recipient_id=user_id,
            subject=title,
            message=message,
            template_data=data or {},
            priority=1,
            status="PENDING",
            reference_type=notification_type,
            reference_id=(data or {}).get("request_id"),
        )

        self.db.add(notification)
        await self.db.commit()
        return notification

    async def get_user_notifications(self, user_id: int, limit: int = 50) -> list:
        """Get user's recent notifications"""
        result = await self.db.execute(
            select(NotificationQueue)
            .where(
                and_(
                    NotificationQueue.recipient_id == user_id,
                    NotificationQueue.notification_type == UI_NOTIFICATION
                )
            )
            .order_by(NotificationQueue.created_at.desc(), NotificationQueue.id.desc())
            .limit(limit)
        )
        notifications = result.scalars().all()

        return [
            {
                "id": notif.id,
                "type": notif.reference_type,
                "title": notif.subject,
                "message": notif.message,
                "data": notif.template_data or {},
                "timestamp": notif.created_at,
                "read": notif.status == "SENT"
            }
            for notif in notifications
        ]

    async def mark_notification_read(self, notification_id: int, user_id: int) -> bool:
        """Mark notification as read"""
        result = await self.db.execute(
            select(NotificationQueue)
            .where(
                and_(
                    NotificationQueue.id == notification_id,
                    NotificationQueue.recipient_id == user_id
                )
            )
        )
        notification = result.scalar_one_or_none()

        if not notification:
            return False

        notification.status = "SENT"
        notification.sent_at = datetime.now(timezone.utc)
        await self.db.commit()
        return True

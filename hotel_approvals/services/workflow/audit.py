from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hotel_approvals.models.shared.enums import RequestEventType
from hotel_approvals.models.workflow.request_event import RequestEvent
from hotel_approvals.utils.date_time_serializer import serialize_dates


def record_event(
    session: AsyncSession,
    request_id: int,
    actor_id: Optional[int],
    event_type: RequestEventType,
    payload: Optional[Dict[str, Any]] = None,
) -> RequestEvent:
    """
    Add an audit row for a request transition.
    Not committed here: it belongs to the caller's transaction.
    """
    event = RequestEvent(
        request_id=request_id,
        actor_id=actor_id,
        event_type=event_type,
        payload=serialize_dates(payload or {}),
    )
    session.add(event)
    return event

from typing import Optional

from sqlalchemy import func, select

from hotel_approvals.models.shared.enums import RequestStatus, StepStatus
from hotel_approvals.models.workflow.request_step import RequestStep
from hotel_approvals.services.workflow.action_processor import ActionProcessor
from hotel_approvals.services.workflow.request_query_service import RequestQueryService
from hotel_approvals.services.workflow.request_service import RequestService


async def submit(session, notifier, requester_id, entity_type="memo", entity_id="E-1", **kwargs):
    service = RequestService(session, notifier=notifier)
    return await service.submit_request(
        entity_type=entity_type,
        entity_id=entity_id,
        requester_id=requester_id,
        **kwargs,
    )


async def act(session, notifier, request_id, actor_id, action, **kwargs):
    processor = ActionProcessor(session, notifier=notifier)
    return await processor.apply_action(request_id, actor_id, action, **kwargs)


async def reload(session_factory, request_id, viewer_id: Optional[int] = None):
    """Read a request through a fresh session"""
    async with session_factory() as db:
        return await RequestQueryService(db).get_request(request_id, viewer_id=viewer_id)


async def assert_invariants(session_factory, request_id):
    """Structural rules every request must satisfy after any transition"""
    request = await reload(session_factory, request_id)

    pending = [s for s in request.steps if s.status == StepStatus.PENDING]
    assert len(pending) <= 1

    # No approver resolved at submission: pending with nobody assigned
    degraded = bool(pending) and pending[0].assignee_id is None

    terminal = request.status in (RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CLOSED)
    if terminal:
        assert request.current_assignee_id is None
        assert request.completed_at is not None
    else:
        assert request.current_assignee_id is not None or degraded
        if request.status == RequestStatus.RETURNED_FOR_CORRECTION:
            assert request.current_assignee_id == request.requester_id
        elif pending:
            assert request.current_assignee_id == pending[0].assignee_id

    # Steps before the pending one are approved, steps after it still wait
    if pending:
        active = pending[0].step_order
        for step in request.steps:
            if step.step_order < active:
                assert step.status == StepStatus.APPROVED
            elif step.step_order > active:
                assert step.status == StepStatus.WAITING

    orders = [s.step_order for s in request.steps]
    assert orders == list(range(1, len(orders) + 1))

    async with session_factory() as db:
        duplicates = await db.scalar(
            select(func.count())
            .select_from(RequestStep)
            .where(RequestStep.request_id == request_id)
            .group_by(RequestStep.step_order)
            .having(func.count() > 1)
        )
    assert duplicates is None

    return request


class RecordingNotifier:
    """Notification dispatcher that keeps what it was asked to send"""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def notify(self, recipient_id, notification_type, title, message, data=None):
        if self.fail:
            raise RuntimeError("notification backend unavailable")
        self.sent.append({
            "recipient_id": recipient_id,
            "type": notification_type,
            "title": title,
            "message": message,
            "data": data or {},
        })

    def types_for(self, recipient_id):
        return [n["type"] for n in self.sent if n["recipient_id"] == recipient_id]

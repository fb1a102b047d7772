import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import update

from hotel_approvals.models.shared.enums import CommentVisibility, RequestEventType, RequestStatus
from hotel_approvals.models.workflow.request import Request
from hotel_approvals.models.workflow.request_comment import RequestComment
from hotel_approvals.services.workflow.request_query_service import RequestQueryService
from hotel_approvals.services.workflow.request_service import RequestService
from tests.integration.helpers import act, reload, submit


@pytest.mark.asyncio
class TestRequestQueries:
    """Read side: latest request, inboxes, listings, overdue and audit trail"""

    async def test_latest_for_unsubmitted_entity(self, session, directory):
        """Entities never submitted have no request"""
        latest = await RequestQueryService(session).get_latest_request("document", "nothing-here")

        assert latest is None

    async def test_latest_includes_steps_in_order(self, session, directory, notifier):
        """The latest request comes with its ordered steps"""
        request = await submit(session, notifier, directory["staff"], entity_type="document", entity_id="D-9")

        latest = await RequestQueryService(session).get_latest_request("document", "D-9")

        assert latest.id == request.id
        assert [s.step_order for s in latest.steps] == [1, 2]

    async def test_comments_in_creation_order(self, session, session_factory, directory, notifier):
        """Comments are listed oldest first"""
        request = await submit(session, notifier, directory["staff"])
        for text in ("first", "second", "third"):
            await act(session, notifier, request.id, directory["staff"], "add_comment", comment=text)

        stored = await reload(session_factory, request.id)

        assert [c.comment for c in stored.comments] == ["first", "second", "third"]

    async def test_comments_follow_creation_time(self, session, session_factory, directory, notifier):
        """Comment order follows created_at even when rows were written out of order"""
        request = await submit(session, notifier, directory["staff"])
        now = datetime.now(timezone.utc)
        for text, age in (("latest", 1), ("earliest", 3), ("middle", 2)):
            session.add(RequestComment(
                request_id=request.id,
                author_id=directory["staff"],
                comment=text,
                visibility=CommentVisibility.ALL,
                created_at=now - timedelta(hours=age),
            ))
        await session.commit()

        stored = await reload(session_factory, request.id)

        assert [c.comment for c in stored.comments] == ["earliest", "middle", "latest"]

    async def test_pending_for_assignee(self, session, directory, notifier):
        """My approvals lists requests waiting on the user only"""
        waiting = await submit(session, notifier, directory["staff"], entity_id="W")
        done = await submit(session, notifier, directory["staff"], entity_id="D")
        await act(session, notifier, done.id, directory["supervisor"], "approve")

        pending = await RequestQueryService(session).get_pending_for_assignee(directory["supervisor"])

        assert [r.id for r in pending] == [waiting.id]
        assert await RequestQueryService(session).get_pending_for_assignee(directory["hr"]) == []

    async def test_list_requests_paginated(self, session, directory, notifier):
        """Listings are filtered and paginated"""
        for n in range(5):
            await submit(session, notifier, directory["staff"], entity_id=f"L-{n}")
        await submit(session, notifier, directory["staff"], entity_type="document", entity_id="L-doc")

        service = RequestQueryService(session)
        page = await service.list_requests(entity_type="memo", page_index=2, page_size=2)

        assert page["count"] == 5
        assert page["page_index"] == 2
        assert len(page["data"]) == 2

        by_status = await service.list_requests(request_status=RequestStatus.APPROVED)
        assert by_status["count"] == 0
        assert by_status["data"] == []

    async def test_overdue_requests(self, session, directory, notifier):
        """Requests pending past the threshold are reported with their age"""
        old = await submit(session, notifier, directory["staff"], entity_id="OLD")
        await submit(session, notifier, directory["staff"], entity_id="NEW")

        now = datetime.now(timezone.utc)
        await session.execute(
            update(Request)
            .where(Request.id == old.id)
            .values(submitted_at=now - timedelta(hours=72))
            .execution_options(synchronize_session=False)
        )
        await session.commit()

        overdue = await RequestQueryService(session).get_overdue_requests(now=now)

        assert [r.id for r in overdue] == [old.id]
        assert overdue[0].hours_pending == 72
        assert overdue[0].is_overdue

        assert await RequestQueryService(session).get_overdue_requests(threshold_hours=100, now=now) == []

    async def test_event_trail(self, session, directory, notifier):
        """Every transition is written to the audit trail"""
        request = await submit(session, notifier, directory["staff"], entity_type="document")
        await act(session, notifier, request.id, directory["supervisor"], "approve")
        await act(session, notifier, request.id, directory["hr"], "add_comment", comment="Reviewing")
        await act(session, notifier, request.id, directory["hr"], "approve")

        events = await RequestQueryService(session).get_request_events(request.id)

        assert [e.event_type for e in events] == [
            RequestEventType.CREATED,
            RequestEventType.SUBMITTED,
            RequestEventType.APPROVED,
            RequestEventType.STATUS_CHANGED,
            RequestEventType.COMMENT_ADDED,
            RequestEventType.APPROVED,
        ]
        assert events[3].payload == {"from": "pending_supervisor_approval", "to": "pending_hr_review"}
        assert all(e.actor_id is not None for e in events)


@pytest.mark.asyncio
class TestMetadataUpdate:
    """Editing request details while it is in flight"""

    async def test_requester_merges_keys(self, session, session_factory, directory, notifier):
        """Updates are merged into the existing metadata"""
        request = await submit(session, notifier, directory["staff"], metadata={"title": "Leave", "days": 2})

        result = await RequestService(session, notifier=notifier).update_request_metadata(
            request.id, directory["staff"], {"days": 3, "reason": "Family"}
        )

        assert result.success
        stored = await reload(session_factory, request.id)
        assert stored.metadata == {"title": "Leave", "days": 3, "reason": "Family"}

    async def test_outsider_cannot_update(self, session, directory, notifier):
        """Only the requester or the current assignee may edit"""
        request = await submit(session, notifier, directory["staff"])

        result = await RequestService(session, notifier=notifier).update_request_metadata(
            request.id, directory["outsider"], {"days": 1}
        )

        assert result.code == "NOT_AUTHORIZED_ACTOR"

    async def test_terminal_request_is_frozen(self, session, directory, notifier):
        """Finished requests cannot be edited"""
        request = await submit(session, notifier, directory["staff"])
        await act(session, notifier, request.id, directory["supervisor"], "approve")

        result = await RequestService(session, notifier=notifier).update_request_metadata(
            request.id, directory["staff"], {"days": 1}
        )

        assert result.code == "REQUEST_ALREADY_CLOSED"

    async def test_unknown_request(self, session, directory, notifier):
        """Missing requests are reported"""
        result = await RequestService(session, notifier=notifier).update_request_metadata(
            404, directory["staff"], {"days": 1}
        )

        assert result.code == "REQUEST_NOT_FOUND"

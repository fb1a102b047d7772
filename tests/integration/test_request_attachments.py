import pytest
from httpx import AsyncClient
from fastapi import status

from hotel_approvals.core.config import settings
from hotel_approvals.models.shared.enums import RequestEventType
from hotel_approvals.services.workflow.request_query_service import RequestQueryService
from hotel_approvals.services.workflow.request_service import RequestService
from tests.integration.helpers import act, reload, submit


async def attach(session, notifier, request_id, actor_id, **kwargs):
    kwargs.setdefault("storage_path", f"requests/{request_id}/signed-form.pdf")
    return await RequestService(session, notifier=notifier).add_attachment(request_id, actor_id, **kwargs)


@pytest.mark.asyncio
class TestRequestAttachments:
    """Files uploaded alongside a request"""

    async def test_requester_attaches_file(self, session, session_factory, directory, notifier):
        """The attachment is listed on the request and written to the audit trail"""
        request = await submit(session, notifier, directory["staff"], entity_type="document")

        result = await attach(
            session, notifier, request.id, directory["staff"],
            file_type="application/pdf", file_size=2048,
        )

        assert result.success
        stored = await reload(session_factory, request.id)
        assert [(a.file_name, a.storage_bucket, a.uploaded_by, a.file_size) for a in stored.attachments] == [
            ("signed-form.pdf", settings.ATTACHMENT_BUCKET, directory["staff"], 2048),
        ]

        events = await RequestQueryService(session).get_request_events(request.id)
        assert events[-1].event_type == RequestEventType.ATTACHMENT_ADDED
        assert events[-1].payload["file_name"] == "signed-form.pdf"
        assert notifier.types_for(directory["supervisor"])[-1] == "attachment_added"

    async def test_later_approver_can_attach(self, session, session_factory, directory, notifier):
        """Anyone holding a step of the request is a participant"""
        request = await submit(session, notifier, directory["staff"], entity_type="document")

        result = await attach(
            session, notifier, request.id, directory["hr"],
            storage_path=f"requests/{request.id}/policy.docx", file_name="Leave policy.docx",
        )

        assert result.success
        stored = await reload(session_factory, request.id)
        assert stored.attachments[0].file_name == "Leave policy.docx"
        assert set(notifier.types_for(directory["staff"])) == {"attachment_added"}

    async def test_outsider_cannot_attach(self, session, session_factory, directory, notifier):
        """People unrelated to the request cannot add files"""
        request = await submit(session, notifier, directory["staff"])

        result = await attach(session, notifier, request.id, directory["outsider"])

        assert result.code == "NOT_AUTHORIZED_ACTOR"
        stored = await reload(session_factory, request.id)
        assert stored.attachments == []

    async def test_finished_request_is_frozen(self, session, directory, notifier):
        """No files can be added once the request is finished"""
        request = await submit(session, notifier, directory["staff"])
        await act(session, notifier, request.id, directory["supervisor"], "approve")

        result = await attach(session, notifier, request.id, directory["staff"])

        assert result.code == "REQUEST_ALREADY_CLOSED"

    async def test_path_outside_request_folder(self, session, directory, notifier):
        """Files must live in the folder of their own request"""
        request = await submit(session, notifier, directory["staff"])

        other_folder = await attach(
            session, notifier, request.id, directory["staff"],
            storage_path=f"requests/{request.id + 1}/form.pdf",
        )
        nested = await attach(
            session, notifier, request.id, directory["staff"],
            storage_path=f"requests/{request.id}/../{request.id + 1}/form.pdf",
        )
        folder_only = await attach(
            session, notifier, request.id, directory["staff"],
            storage_path=f"requests/{request.id}/",
        )

        assert other_folder.code == "INVALID_ATTACHMENT"
        assert nested.code == "INVALID_ATTACHMENT"
        assert folder_only.code == "INVALID_ATTACHMENT"

    async def test_size_and_type_limits(self, session, session_factory, directory, notifier):
        """Oversized files and unsupported types are refused"""
        request = await submit(session, notifier, directory["staff"])

        too_big = await attach(
            session, notifier, request.id, directory["staff"],
            file_size=settings.ATTACHMENT_MAX_BYTES + 1,
        )
        executable = await attach(
            session, notifier, request.id, directory["staff"],
            file_type="application/x-msdownload",
        )

        assert too_big.code == "INVALID_ATTACHMENT"
        assert executable.code == "INVALID_ATTACHMENT"
        stored = await reload(session_factory, request.id)
        assert stored.attachments == []

    async def test_unknown_request(self, session, directory, notifier):
        """Missing requests are reported"""
        result = await attach(session, notifier, 404, directory["staff"])

        assert result.code == "REQUEST_NOT_FOUND"


@pytest.mark.asyncio
class TestAttachmentsApi:
    """HTTP surface for attachments"""

    async def test_attach_and_read_back(self, client: AsyncClient, directory, auth_headers):
        """Attachments show up in the request detail"""
        headers = auth_headers(directory["staff"])
        response = await client.post(
            "/api/v1/requests", json={"entity_type": "memo", "entity_id": "A-1"}, headers=headers
        )
        request_id = response.json()["id"]
        assert response.json()["attachments"] == []

        response = await client.post(
            f"/api/v1/requests/{request_id}/attachments",
            json={
                "storage_path": f"requests/{request_id}/receipt.png",
                "file_type": "image/png",
                "file_size": 512,
            },
            headers=headers,
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["success"] is True

        response = await client.get(f"/api/v1/requests/{request_id}", headers=headers)
        attachments = response.json()["attachments"]
        assert [(a["file_name"], a["file_type"]) for a in attachments] == [("receipt.png", "image/png")]

    async def test_refused_attachment_is_a_result(self, client: AsyncClient, directory, auth_headers):
        """Invalid attachments answer 200 with success false and a code"""
        headers = auth_headers(directory["staff"])
        response = await client.post(
            "/api/v1/requests", json={"entity_type": "memo", "entity_id": "A-2"}, headers=headers
        )
        request_id = response.json()["id"]

        response = await client.post(
            f"/api/v1/requests/{request_id}/attachments",
            json={"storage_path": "elsewhere/receipt.png"},
            headers=headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["code"] == "INVALID_ATTACHMENT"

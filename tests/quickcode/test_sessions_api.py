from uuid import uuid4

from httpx import ASGITransport, AsyncClient
from fastapi import status

from src.quickcode.api.dependencies import get_review_session_service
from src.quickcode.domain.errors import ServiceUnavailable
from src.quickcode.main import app
from src.quickcode.services.extraction.gateway import ExtractionGateway
from src.quickcode.services.review.service import InMemoryReviewSessionService
from src.quickcode.services.review.session import ReviewSession

from fakes import RecordingBackend

NOTE = (
    "Established patient with type 2 diabetes presenting for follow-up. "
    "Also completed preventive screening today."
)


def _client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


async def test_review_flow_from_analysis_to_export():
    async with _client() as ac:
        create_resp = await ac.post("/api/v1/sessions/")
        assert create_resp.status_code == status.HTTP_201_CREATED
        session = create_resp.json()
        session_id = session["id"]
        assert session["codes"] == []
        assert session["busy"] is False

        analyze_resp = await ac.post(f"/api/v1/sessions/{session_id}/analyze", json={"note": NOTE})
        assert analyze_resp.status_code == status.HTTP_200_OK
        state = analyze_resp.json()
        assert [c["code"] for c in state["codes"]] == ["E11.9", "99214", "99396"]
        assert all(c["status"] == "suggested" for c in state["codes"])
        assert state["generation"] == 1

        accept_resp = await ac.post(
            f"/api/v1/sessions/{session_id}/codes/E11.9/status",
            json={"status": "accepted"},
        )
        assert accept_resp.status_code == status.HTTP_200_OK
        assert accept_resp.json()["status"] == "accepted"
        assert accept_resp.json()["confidence_level"] == "High"

        check_resp = await ac.post(f"/api/v1/sessions/{session_id}/conflicts")
        assert check_resp.status_code == status.HTTP_200_OK
        assert check_resp.json()["status"] == "clean"

        for code in ("99214", "99396"):
            resp = await ac.post(
                f"/api/v1/sessions/{session_id}/codes/{code}/status",
                json={"status": "accepted"},
            )
            assert resp.status_code == status.HTTP_200_OK

        # Accepting more codes invalidated the earlier clean result.
        state = (await ac.get(f"/api/v1/sessions/{session_id}")).json()
        assert state["conflict_result"] is None

        check_resp = await ac.post(f"/api/v1/sessions/{session_id}/conflicts")
        outcome = check_resp.json()
        assert outcome["status"] == "conflict"
        assert outcome["conflicts"] == [
            {"reason": "Conflict: 99214 and 99396 generally not billable together."}
        ]

        reject_resp = await ac.post(
            f"/api/v1/sessions/{session_id}/codes/99396/status",
            json={"status": "rejected"},
        )
        assert reject_resp.status_code == status.HTTP_409_CONFLICT

        accepted = (await ac.get(f"/api/v1/sessions/{session_id}/accepted")).json()
        assert [c["code"] for c in accepted] == ["E11.9", "99214", "99396"]

        export_resp = await ac.post(f"/api/v1/sessions/{session_id}/export")
        assert export_resp.status_code == status.HTTP_201_CREATED
        receipt = export_resp.json()
        assert [c["code"] for c in receipt["codes"]] == ["E11.9", "99214", "99396"]
        assert receipt["message"] == "Codes sent to billing queue!"

        end_resp = await ac.delete(f"/api/v1/sessions/{session_id}")
        assert end_resp.status_code == status.HTTP_204_NO_CONTENT

        gone_resp = await ac.get(f"/api/v1/sessions/{session_id}")
        assert gone_resp.status_code == status.HTTP_404_NOT_FOUND


async def test_export_without_accepted_codes_is_rejected():
    async with _client() as ac:
        session_id = (await ac.post("/api/v1/sessions/")).json()["id"]
        await ac.post(f"/api/v1/sessions/{session_id}/analyze", json={"note": NOTE})

        export_resp = await ac.post(f"/api/v1/sessions/{session_id}/export")

    assert export_resp.status_code == status.HTTP_400_BAD_REQUEST
    assert export_resp.json()["detail"] == "No codes have been accepted for export."


async def test_conflict_check_without_accepted_codes_is_info():
    async with _client() as ac:
        session_id = (await ac.post("/api/v1/sessions/")).json()["id"]

        check_resp = await ac.post(f"/api/v1/sessions/{session_id}/conflicts")

    assert check_resp.json() == {
        "status": "info",
        "message": "No accepted codes to check.",
        "conflicts": [],
    }


async def test_unknown_session_and_code_return_404():
    async with _client() as ac:
        missing_resp = await ac.get(f"/api/v1/sessions/{uuid4()}")
        assert missing_resp.status_code == status.HTTP_404_NOT_FOUND

        session_id = (await ac.post("/api/v1/sessions/")).json()["id"]
        code_resp = await ac.post(
            f"/api/v1/sessions/{session_id}/codes/Z99.9/status",
            json={"status": "accepted"},
        )
        assert code_resp.status_code == status.HTTP_404_NOT_FOUND


async def test_suggested_is_not_a_valid_review_decision():
    async with _client() as ac:
        session_id = (await ac.post("/api/v1/sessions/")).json()["id"]
        await ac.post(f"/api/v1/sessions/{session_id}/analyze", json={"note": NOTE})

        resp = await ac.post(
            f"/api/v1/sessions/{session_id}/codes/E11.9/status",
            json={"status": "suggested"},
        )

    assert resp.status_code == status.HTTP_409_CONFLICT


async def test_blank_note_is_rejected_with_prompt_message():
    async with _client() as ac:
        session_id = (await ac.post("/api/v1/sessions/")).json()["id"]

        resp = await ac.post(f"/api/v1/sessions/{session_id}/analyze", json={"note": "  "})

    assert resp.status_code == status.HTTP_400_BAD_REQUEST
    assert resp.json()["detail"] == "Please paste a clinical note to analyze."


async def test_extraction_failure_is_reported_and_codes_stay_empty(dependency_overrides):
    gateway = ExtractionGateway(backend=RecordingBackend(error=ServiceUnavailable("provider down")))
    sessions = InMemoryReviewSessionService(session_factory=lambda: ReviewSession(gateway=gateway))
    dependency_overrides[get_review_session_service] = lambda: sessions

    async with _client() as ac:
        session_id = (await ac.post("/api/v1/sessions/")).json()["id"]

        resp = await ac.post(f"/api/v1/sessions/{session_id}/analyze", json={"note": NOTE})
        assert resp.status_code == status.HTTP_502_BAD_GATEWAY
        assert resp.json()["detail"] == "Failed to analyze the note. Please try again."

        state = (await ac.get(f"/api/v1/sessions/{session_id}")).json()

    assert state["codes"] == []
    assert state["error"] == "Failed to analyze the note. Please try again."
    assert state["busy"] is False

"""
Tests for proposal generation, quota, dashboard and export
"""
import random
from datetime import datetime

import pytest

from config.plans import PLANS, PlanId
from database_models import Proposal, Subscription
from models.proposal import EmotionalScore, ProposalRequest, Tone
from services.export_service import build_mailto, export_proposal, render_html
from services.proposal_service import ProposalService, generate_content, score_proposal, to_out
from utils.errors import ExportNotAllowedError, QuotaExceededError
from tests.conftest import auth_headers


FORM = {
    "clientName": "Acme Co",
    "projectType": "Website Redesign",
    "projectDescription": "A refreshed marketing site with a blog.",
    "tone": "formal",
    "industry": "design",
    "budget": "$5,000",
}


async def _make_paid(session_factory, user_id="U1", plan_id="pro"):
    async with session_factory() as session:
        session.add(Subscription(
            user_id=user_id,
            plan_id=plan_id,
            plan_name=PLANS[PlanId(plan_id)].name,
            status="active",
            provider_order_reference="O1",
        ))
        await session.commit()


def test_generated_content_follows_template():
    request = ProposalRequest.model_validate(FORM)

    content = generate_content(request)

    assert content.startswith("Dear valued client, I am pleased to present this comprehensive proposal.")
    assert "A refreshed marketing site with a blog." in content
    assert "Based on your needs for Website Redesign in the design industry" in content
    assert "Based on your budget of $5,000, we've designed a phased approach" in content
    assert "Let's make Website Redesign a resounding success!" in content


def test_content_without_budget():
    request = ProposalRequest.model_validate({**FORM, "budget": "  ", "tone": "playful"})

    content = generate_content(request)

    assert request.budget is None
    assert "We've designed a phased approach" in content
    assert "budget" not in content.split("Timeline & Investment")[1].split("Phase 1")[0]
    assert content.startswith("🎨")


def test_blank_required_field_is_rejected():
    with pytest.raises(ValueError):
        ProposalRequest.model_validate({**FORM, "clientName": "   "})


def test_scores_stay_within_bands():
    rng = random.Random(42)
    for _ in range(200):
        score = score_proposal(rng)
        assert 80 <= score.warmth <= 99
        assert 75 <= score.clarity <= 94
        assert 85 <= score.confidence <= 100
        assert 0 <= score.overall <= 100


def test_emotional_score_shape_is_fixed():
    with pytest.raises(ValueError):
        EmotionalScore.model_validate({"warmth": 90, "clarity": 90, "confidence": 90, "joy": 5})
    with pytest.raises(ValueError):
        EmotionalScore.model_validate({"warmth": 120, "clarity": 90, "confidence": 90})
    assert EmotionalScore(warmth=90, clarity=80, confidence=100).overall == 90


@pytest.mark.asyncio
async def test_free_plan_quota(test_db):
    """
    Test the monthly proposal limit on the free plan.

    This test verifies:
    - Three proposals are allowed
    - The fourth raises QuotaExceededError and stores nothing
    """
    service = ProposalService(test_db, rng=random.Random(1))
    request = ProposalRequest.model_validate(FORM)

    for _ in range(3):
        await service.create_proposal("U1", request)
    assert await service.remaining_this_month("U1") == 0

    with pytest.raises(QuotaExceededError):
        await service.create_proposal("U1", request)

    assert len(await service.list_recent("U1", limit=10)) == 3


@pytest.mark.asyncio
async def test_create_proposal_endpoint(async_client):
    response = await async_client.post("/api/proposals", json=FORM, headers=auth_headers("U1"))

    assert response.status_code == 201
    data = response.json()
    assert data["client_name"] == "Acme Co"
    assert data["tone"] == "formal"
    assert set(data["emotional_score"]) == {"warmth", "clarity", "confidence"}
    assert 0 <= data["overall_score"] <= 100


@pytest.mark.asyncio
async def test_quota_exceeded_is_402(async_client):
    for _ in range(3):
        response = await async_client.post("/api/proposals", json=FORM, headers=auth_headers("U1"))
        assert response.status_code == 201

    response = await async_client.post("/api/proposals", json=FORM, headers=auth_headers("U1"))

    assert response.status_code == 402
    assert "limit" in response.json()["error"]


@pytest.mark.asyncio
async def test_paid_plan_is_unlimited(async_client, session_factory):
    await _make_paid(session_factory)

    for _ in range(5):
        response = await async_client.post("/api/proposals", json=FORM, headers=auth_headers("U1"))
        assert response.status_code == 201

    dashboard = (await async_client.get("/api/dashboard", headers=auth_headers("U1"))).json()
    assert dashboard["total_proposals"] == 5
    assert dashboard["remaining_this_month"] is None
    assert dashboard["plan_name"] == "Pro"


@pytest.mark.asyncio
async def test_proposals_require_authentication(async_client):
    response = await async_client.post("/api/proposals", json=FORM)

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_is_newest_first_and_scoped_to_user(async_client):
    for name in ("First", "Second"):
        await async_client.post("/api/proposals", json={**FORM, "clientName": name}, headers=auth_headers("U1"))
    await async_client.post("/api/proposals", json={**FORM, "clientName": "Other"}, headers=auth_headers("U2"))

    response = await async_client.get("/api/proposals", headers=auth_headers("U1"))

    names = [p["client_name"] for p in response.json()["proposals"]]
    assert names == ["Second", "First"]


@pytest.mark.asyncio
async def test_other_users_proposal_is_not_found(async_client):
    created = await async_client.post("/api/proposals", json=FORM, headers=auth_headers("U1"))
    proposal_id = created.json()["id"]

    assert (await async_client.get(f"/api/proposals/{proposal_id}", headers=auth_headers("U1"))).status_code == 200
    assert (await async_client.get(f"/api/proposals/{proposal_id}", headers=auth_headers("U2"))).status_code == 404
    export = await async_client.get(f"/api/proposals/{proposal_id}/export", headers=auth_headers("U2"))
    assert export.status_code == 404


@pytest.mark.asyncio
async def test_dashboard_for_new_user(async_client):
    response = await async_client.get("/api/dashboard", headers=auth_headers("U9"))

    assert response.json() == {
        "total_proposals": 0,
        "remaining_this_month": 3,
        "average_resonance": 0,
        "plan_id": "free",
        "plan_name": "Free",
    }


@pytest.mark.asyncio
async def test_dashboard_average_counts_malformed_scores(test_db):
    for score in (
        {"warmth": 90, "clarity": 80, "confidence": 100},
        {"warmth": 80, "clarity": 80, "confidence": 80},
        {"unexpected": "shape"},
    ):
        test_db.add(Proposal(
            user_id="U1",
            client_name="Acme Co",
            project_type="Website",
            project_description="desc",
            tone="formal",
            industry="design",
            content="body",
            emotional_score=score,
        ))
    await test_db.commit()

    summary = await ProposalService(test_db).dashboard("U1")

    # (90 + 80 + 0) / 3
    assert summary["average_resonance"] == 57
    assert summary["total_proposals"] == 3


@pytest.mark.asyncio
async def test_free_plan_can_export_pdf(async_client):
    created = await async_client.post("/api/proposals", json=FORM, headers=auth_headers("U1"))
    proposal_id = created.json()["id"]

    response = await async_client.get(f"/api/proposals/{proposal_id}/export?format=pdf", headers=auth_headers("U1"))

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    assert 'filename="proposal-acme-co.pdf"' in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_free_plan_cannot_export_docx(async_client):
    created = await async_client.post("/api/proposals", json=FORM, headers=auth_headers("U1"))
    proposal_id = created.json()["id"]

    response = await async_client.get(f"/api/proposals/{proposal_id}/export?format=docx", headers=auth_headers("U1"))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_paid_plan_exports_docx_and_rejects_unknown_format(async_client, session_factory):
    await _make_paid(session_factory)
    created = await async_client.post("/api/proposals", json=FORM, headers=auth_headers("U1"))
    proposal_id = created.json()["id"]

    docx = await async_client.get(f"/api/proposals/{proposal_id}/export?format=docx", headers=auth_headers("U1"))
    assert docx.status_code == 200
    # DOCX files are zip archives
    assert docx.content.startswith(b"PK")

    odt = await async_client.get(f"/api/proposals/{proposal_id}/export?format=odt", headers=auth_headers("U1"))
    assert odt.status_code == 400


@pytest.mark.asyncio
async def test_html_export_escapes_user_text(test_db):
    service = ProposalService(test_db)
    request = ProposalRequest.model_validate({**FORM, "clientName": "<script>alert(1)</script>"})
    proposal = await service.create_proposal("U1", request)

    page = render_html(proposal).decode("utf-8")

    assert "<script>" not in page
    assert "&lt;script&gt;" in page
    with pytest.raises(ExportNotAllowedError):
        export_proposal(proposal, "html", PLANS[PlanId.FREE])


@pytest.mark.asyncio
async def test_mailto_link(test_db):
    service = ProposalService(test_db)
    proposal = await service.create_proposal("U1", ProposalRequest.model_validate(FORM))

    link = build_mailto(proposal, recipient="client@acme.test")

    assert link.startswith("mailto:client@acme.test?subject=Proposal%20for%20Acme%20Co")
    assert "&body=Dear%20valued%20client" in link


@pytest.mark.asyncio
async def test_mailto_endpoint_without_recipient(async_client):
    created = await async_client.post("/api/proposals", json=FORM, headers=auth_headers("U1"))

    response = await async_client.get(f"/api/proposals/{created.json()['id']}/mailto", headers=auth_headers("U1"))

    assert response.status_code == 200
    assert response.json()["mailto"].startswith("mailto:?subject=")


def test_to_out_tolerates_malformed_score():
    proposal = Proposal(
        id=1,
        user_id="U1",
        client_name="Acme Co",
        project_type="Website",
        project_description="desc",
        tone=Tone.FRIENDLY.value,
        industry="design",
        content="body",
        emotional_score="not a dict",
    )
    proposal.created_at = datetime(2024, 1, 1)

    out = to_out(proposal)

    assert out.emotional_score is None
    assert out.overall_score is None

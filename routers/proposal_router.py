"""
Proposal Router - generate, list, export and share proposals
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from database import get_db
from models.proposal import ProposalRequest
from models.user import CurrentUser
from services.export_service import build_mailto, export_proposal
from services.proposal_service import ProposalService, to_out
from services.subscription_service import SubscriptionService
from utils.errors import ExportNotAllowedError, QuotaExceededError
from utils.responses import success_response, error_response
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

proposal_router = APIRouter(prefix="/api", tags=["proposals"])


async def _get_owned_proposal(service: ProposalService, user: CurrentUser, proposal_id: int):
    proposal = await service.get_proposal(user.user_id, proposal_id)
    if proposal is None:
        raise HTTPException(status_code=404, detail="Proposal not found")
    return proposal


@proposal_router.post("/proposals")
async def create_proposal(
    request: ProposalRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Generate a proposal from the project details and store it."""
    service = ProposalService(db)
    try:
        proposal = await service.create_proposal(current_user.user_id, request)
    except QuotaExceededError as e:
        log_endpoint_event("/proposals", current_user.user_id, "quota_exceeded")
        return error_response(str(e), status=402)

    log_endpoint_event("/proposals", current_user.user_id, details={"proposal_id": proposal.id})
    return success_response(to_out(proposal).model_dump(mode="json"), status=201)


@proposal_router.get("/proposals")
async def list_proposals(
    limit: int = Query(5, ge=1, le=50),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Most recent proposals, newest first."""
    proposals = await ProposalService(db).list_recent(current_user.user_id, limit=limit)
    return {"proposals": [to_out(p).model_dump(mode="json") for p in proposals]}


@proposal_router.get("/proposals/{proposal_id}")
async def get_proposal(
    proposal_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    proposal = await _get_owned_proposal(ProposalService(db), current_user, proposal_id)
    return to_out(proposal).model_dump(mode="json")


@proposal_router.get("/proposals/{proposal_id}/export")
async def export(
    proposal_id: int,
    format: str = Query("pdf"),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Download the proposal as PDF, DOCX or HTML."""
    proposal = await _get_owned_proposal(ProposalService(db), current_user, proposal_id)
    plan = await SubscriptionService(db).get_active_plan(current_user.user_id)
    try:
        document = export_proposal(proposal, format, plan)
    except ValueError as e:
        return error_response(str(e), status=400)
    except ExportNotAllowedError as e:
        return error_response(str(e), status=403)

    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )


@proposal_router.get("/proposals/{proposal_id}/mailto")
async def mailto(
    proposal_id: int,
    to: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """mailto: link for sending the proposal from the user's mail client."""
    proposal = await _get_owned_proposal(ProposalService(db), current_user, proposal_id)
    return {"mailto": build_mailto(proposal, recipient=to)}


@proposal_router.get("/dashboard")
async def dashboard(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ProposalService(db).dashboard(current_user.user_id)

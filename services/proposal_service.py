"""
Proposal Service - template-filled proposals with an emotional resonance score
"""

import logging
import random
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from crud.proposal import ProposalRepository
from database_models import Proposal
from models.proposal import EmotionalScore, ProposalRequest, ProposalOut, Tone
from services.subscription_service import SubscriptionService
from utils.errors import QuotaExceededError

logger = logging.getLogger(__name__)

TONE_INTROS = {
    Tone.FRIENDLY: "Hey there! 👋 I'm excited to share this proposal with you.",
    Tone.FORMAL: "Dear valued client, I am pleased to present this comprehensive proposal.",
    Tone.PERSUASIVE: "Ready to transform your business? Let me show you how we'll make it happen.",
    Tone.PLAYFUL: "🎨 Let's create something amazing together! Here's how we'll do it.",
}

PROPOSAL_TEMPLATE = """{intro}

Project Overview
{description}

What We'll Deliver

Based on your needs for {project_type} in the {industry} industry, here's what you can expect:

• Strategic Planning & Research
  - Comprehensive market analysis
  - Competitor insights
  - Target audience identification

• Creative Execution
  - Custom-designed deliverables
  - Brand-aligned messaging
  - Professional quality outputs

• Implementation & Support
  - Seamless project management
  - Regular progress updates
  - Post-launch support

Timeline & Investment

{budget_sentence} designed a phased approach that ensures quality without compromise:

Phase 1: Discovery & Strategy (2 weeks)
Phase 2: Design & Development (4-6 weeks)
Phase 3: Testing & Launch (2 weeks)

Why Choose Us?

✨ Proven track record with {industry} clients
💡 Innovative approach tailored to your goals
🚀 On-time delivery with transparent communication
💪 Dedicated support throughout and beyond

Next Steps

I'd love to schedule a call to discuss this proposal in detail and answer any questions you might have. Let's make {project_type} a resounding success!

Looking forward to working together! 🎉

Best regards,
Your Partner in Success"""


def generate_content(request: ProposalRequest) -> str:
    """Fill the proposal template from the form fields."""
    if request.budget:
        budget_sentence = f"Based on your budget of {request.budget}, we've"
    else:
        budget_sentence = "We've"
    return PROPOSAL_TEMPLATE.format(
        intro=TONE_INTROS[request.tone],
        description=request.project_description,
        project_type=request.project_type,
        industry=request.industry.value,
        budget_sentence=budget_sentence,
    )


def score_proposal(rng: Optional[random.Random] = None) -> EmotionalScore:
    """
    Synthetic resonance score. Not a model: each component is drawn from a fixed band.
    """
    rng = rng or random.Random()
    return EmotionalScore(
        warmth=rng.randrange(80, 100),
        clarity=rng.randrange(75, 95),
        confidence=min(rng.randrange(85, 105), 100),
    )


def parse_score(raw) -> Optional[EmotionalScore]:
    """Validate a stored score; malformed values yield None."""
    if not isinstance(raw, dict):
        return None
    try:
        return EmotionalScore.model_validate(raw)
    except ValueError:
        return None


def to_out(proposal: Proposal) -> ProposalOut:
    score = parse_score(proposal.emotional_score)
    return ProposalOut(
        id=proposal.id,
        client_name=proposal.client_name,
        project_type=proposal.project_type,
        industry=proposal.industry,
        tone=proposal.tone,
        budget=proposal.budget,
        content=proposal.content,
        emotional_score=score,
        overall_score=score.overall if score else None,
        created_at=proposal.created_at,
    )


def start_of_month(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class ProposalService:
    """
    Creates and reads proposals, enforcing the plan's monthly quota.
    """

    def __init__(self, db: AsyncSession, rng: Optional[random.Random] = None):
        self.db = db
        self.repo = ProposalRepository(db)
        self.subscriptions = SubscriptionService(db)
        self.rng = rng

    async def remaining_this_month(self, user_id: str) -> Optional[int]:
        """Proposals left this month, or None when the plan is unlimited."""
        plan = await self.subscriptions.get_active_plan(user_id)
        if plan.monthly_proposal_quota is None:
            return None
        used = await self.repo.count_for_user(user_id, since=start_of_month())
        return max(plan.monthly_proposal_quota - used, 0)

    async def create_proposal(self, user_id: str, request: ProposalRequest) -> Proposal:
        """
        Generate, score and store a proposal.

        Raises:
            QuotaExceededError: the user's plan allows no more proposals this month
        """
        remaining = await self.remaining_this_month(user_id)
        if remaining == 0:
            logger.info(f"Proposal quota reached for user {user_id}")
            raise QuotaExceededError("Monthly proposal limit reached. Upgrade for unlimited proposals.")

        score = score_proposal(self.rng)
        proposal = await self.repo.create({
            "user_id": user_id,
            "client_name": request.client_name,
            "project_type": request.project_type,
            "project_description": request.project_description,
            "tone": request.tone.value,
            "industry": request.industry.value,
            "budget": request.budget,
            "content": generate_content(request),
            "emotional_score": score.model_dump(),
        })
        logger.info(f"Created proposal {proposal.id} for user {user_id} (resonance {score.overall}%)")
        return proposal

    async def get_proposal(self, user_id: str, proposal_id: int) -> Optional[Proposal]:
        return await self.repo.get_for_user(proposal_id, user_id)

    async def list_recent(self, user_id: str, limit: int = 5) -> List[Proposal]:
        return await self.repo.list_recent(user_id, limit=limit)

    async def dashboard(self, user_id: str) -> dict:
        """Summary numbers for the dashboard cards."""
        plan = await self.subscriptions.get_active_plan(user_id)
        total = await self.repo.count_for_user(user_id)

        scores = [parse_score(raw) for raw in await self.repo.list_scores(user_id)]
        means = [(s.warmth + s.clarity + s.confidence) / 3 for s in scores if s is not None]
        # Proposals with malformed scores still count toward the denominator
        average = round(sum(means) / total) if total else 0

        return {
            "total_proposals": total,
            "remaining_this_month": await self.remaining_this_month(user_id),
            "average_resonance": average,
            "plan_id": plan.plan_id.value,
            "plan_name": plan.name,
        }

"""
ProposalRepository for database operations on Proposal model
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from database_models import Proposal


class ProposalRepository:
    """
    Repository class for Proposal database operations.
    Every query is scoped to the owning user.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, proposal_data: dict) -> Proposal:
        """
        Create a new proposal.

        Args:
            proposal_data: Column values; must include user_id, client_name,
                project_type, project_description, tone, industry and content

        Returns:
            Created Proposal object
        """
        proposal = Proposal(**proposal_data)
        self.db.add(proposal)
        await self.db.flush()
        await self.db.refresh(proposal)
        return proposal

    async def get_for_user(self, proposal_id: int, user_id: str) -> Optional[Proposal]:
        result = await self.db.execute(
            select(Proposal).where(Proposal.id == proposal_id, Proposal.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def list_recent(self, user_id: str, limit: int = 5) -> List[Proposal]:
        """Newest proposals first."""
        result = await self.db.execute(
            select(Proposal)
            .where(Proposal.user_id == user_id)
            .order_by(Proposal.created_at.desc(), Proposal.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_user(self, user_id: str, since: Optional[datetime] = None) -> int:
        """
        Count a user's proposals, optionally only those created at or after `since`.
        """
        stmt = select(func.count()).select_from(Proposal).where(Proposal.user_id == user_id)
        if since is not None:
            stmt = stmt.where(Proposal.created_at >= since)
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def list_scores(self, user_id: str) -> List[Optional[dict]]:
        result = await self.db.execute(
            select(Proposal.emotional_score).where(Proposal.user_id == user_id)
        )
        return list(result.scalars().all())

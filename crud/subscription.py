"""
SubscriptionRepository for database operations on Subscription model
"""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from database_models import Subscription
from utils.errors import StoreWriteError

logger = logging.getLogger(__name__)

# Dialects with a native INSERT .. ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SubscriptionRepository:
    """
    Repository class for Subscription database operations.
    user_id is the unique key; writes are upserts so webhook replays never duplicate rows.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def get_by_user_id(self, user_id: str) -> Optional[Subscription]:
        """
        Retrieve the subscription row for a user.

        Args:
            user_id: Account id from the auth backend

        Returns:
            Subscription object if found, None otherwise
        """
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert(self, values: dict) -> Subscription:
        """
        Insert or update the subscription keyed by values["user_id"].

        Runs as a single statement so concurrent deliveries resolve last-writer-wins.
        Does not commit; the caller owns the transaction.

        Raises:
            StoreWriteError: if the statement fails or the dialect has no upsert
        """
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise StoreWriteError(f"Subscription upsert is not supported on {dialect}")

        now = datetime.utcnow()
        row = dict(values, created_at=now, updated_at=now)
        updates = {key: value for key, value in row.items() if key not in ("user_id", "created_at")}

        stmt = insert(Subscription).values(**row).on_conflict_do_update(
            index_elements=[Subscription.user_id],
            set_=updates,
        )
        try:
            await self.db.execute(stmt)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Subscription upsert failed for user {values.get('user_id')}: {e}")
            raise StoreWriteError("Failed to save subscription") from e

        subscription = await self.get_by_user_id(values["user_id"])
        if subscription is None:
            logger.error(f"Subscription for user {values.get('user_id')} missing after upsert")
            raise StoreWriteError("Failed to save subscription")
        return subscription

    async def count(self, user_id: str) -> int:
        """Number of subscription rows for a user (0 or 1)."""
        result = await self.db.execute(
            select(func.count()).select_from(Subscription).where(Subscription.user_id == user_id)
        )
        return result.scalar_one()

"""Accounts identified by their chat-platform id."""

import logging

from catalog_store.models.entities import AccountCreate, AccountStats, AccountUpdate
from catalog_store.models.query import QueryResponse
from catalog_store.repositories.base import BaseRepository, first_row

logger = logging.getLogger(__name__)


class AccountRepository(BaseRepository):
    """Accounts (``users``). ``telegram_id`` is unique and never updated."""

    table = "users"

    async def get(self, account_id: str) -> QueryResponse:
        return await self.query().select().eq("id", account_id).maybe_single()

    async def get_by_telegram_id(self, telegram_id: int) -> QueryResponse:
        return await self.query().select().eq("telegram_id", telegram_id).maybe_single()

    async def create(self, payload: AccountCreate) -> QueryResponse:
        return await self.query().insert(payload.to_record())

    async def get_or_create(self, payload: AccountCreate) -> QueryResponse:
        """
        Return the account for ``payload.telegram_id``, creating it on first login.

        A concurrent first login can lose the insert race on the unique
        external id; the winner's row is returned then.
        """
        existing = await self.get_by_telegram_id(payload.telegram_id)
        if existing.error is not None or existing.data is not None:
            return existing

        created = await self.create(payload)
        if created.error is not None and created.error.is_unique_violation:
            logger.info("Account %s created concurrently", payload.telegram_id)
            return await self.get_by_telegram_id(payload.telegram_id)
        return created

    async def update_profile(
        self, account_id: str, payload: AccountUpdate
    ) -> QueryResponse:
        record = payload.to_record()
        if not record:
            return await self.get(account_id)
        return first_row(await self.query().eq("id", account_id).update(record))

    async def stats(self, account_id: str) -> QueryResponse:
        """Rating count, average score and favorite count of an account."""
        ratings = await self.db.table("reviews").select("rating").eq("user_id", account_id).execute()
        if ratings.error is not None:
            return ratings

        favorites = await self.db.table("favorites").eq("user_id", account_id).count()
        if favorites.error is not None:
            return QueryResponse.failure(favorites.error)

        scores = [row["rating"] for row in ratings.data]
        stats = AccountStats(
            total_reviews=len(scores),
            average_rating=sum(scores) / len(scores) if scores else 0.0,
            total_favorites=favorites.count or 0,
        )
        return QueryResponse(data=stats.model_dump())

"""Entry suggestions and their one-time review."""

import logging
from datetime import timedelta
from typing import Optional

from catalog_store.models.entities import Account, SuggestionCreate, SuggestionStatus
from catalog_store.models.query import QueryError, QueryResponse
from catalog_store.repositories.base import BaseRepository, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

SUGGESTION_COOLDOWN = timedelta(hours=3)


class SuggestionRepository(BaseRepository):
    """Suggestions (``game_suggestions``).

    Non-administrators submit at most one suggestion per cooldown window;
    administrators move a pending suggestion to approved or rejected exactly
    once.
    """

    table = "game_suggestions"

    async def list_all(self, account_id: Optional[str] = None) -> QueryResponse:
        """
        Suggestions with submitter fields, newest first.

        A store without the suggestions table yields an empty list.
        """
        sql = (
            "SELECT gs.*, u.telegram_id, u.username, u.first_name, u.last_name, "
            "u.avatar_url FROM game_suggestions gs JOIN users u ON gs.user_id = u.id"
        )
        params = []
        if account_id is not None:
            sql += " WHERE gs.user_id = $1"
            params.append(account_id)
        sql += " ORDER BY gs.created_at DESC"

        response = await self.db.query(sql, params)
        if response.error is not None and response.error.is_undefined_table:
            logger.warning("game_suggestions table does not exist yet")
            return QueryResponse(data=[])
        return response

    async def cooldown_until(self, account_id: str) -> QueryResponse:
        """End of the account's cooldown window, or None when it may submit."""
        last = await (
            self.query()
            .select("created_at")
            .eq("user_id", account_id)
            .order("created_at", ascending=False)
            .limit(1)
            .maybe_single()
        )
        if last.error is not None:
            if last.error.is_undefined_table:
                return QueryResponse(data=None)
            return last
        if last.data is None:
            return QueryResponse(data=None)

        until = parse_timestamp(last.data["created_at"]) + SUGGESTION_COOLDOWN
        return QueryResponse(data=until.isoformat() if until > utcnow() else None)

    async def create(self, actor: Account, payload: SuggestionCreate) -> QueryResponse:
        if self.is_admin(actor):
            return QueryResponse.failure(
                QueryError.forbidden("Administrators add entries directly")
            )

        cooldown = await self.cooldown_until(actor.id)
        if cooldown.error is not None:
            return cooldown
        if cooldown.data is not None:
            return QueryResponse.failure(
                QueryError.invalid(f"Next suggestion allowed after {cooldown.data}")
            )

        return await self.query().insert(
            {
                "user_id": actor.id,
                "game_title": payload.game_title.strip(),
                "description": payload.description,
            }
        )

    async def review(
        self, actor: Account, suggestion_id: str, status: SuggestionStatus
    ) -> QueryResponse:
        """
        Approve or reject a pending suggestion, recording reviewer and time.

        The pending-status filter makes the transition happen once even under
        concurrent reviews.
        """
        denied = self.require_admin(actor, "review suggestions")
        if denied:
            return denied

        status = SuggestionStatus(status)
        if status is SuggestionStatus.PENDING:
            return QueryResponse.failure(
                QueryError.invalid("A suggestion can only be approved or rejected")
            )

        updated = await (
            self.query()
            .eq("id", suggestion_id)
            .eq("status", SuggestionStatus.PENDING.value)
            .update(
                {
                    "status": status.value,
                    "reviewed_at": utcnow(),
                    "reviewed_by": actor.id,
                }
            )
        )
        if updated.error is not None:
            return updated
        if updated.data:
            return QueryResponse(data=updated.data[0])

        current = await self.query().select("status").eq("id", suggestion_id).maybe_single()
        if current.error is not None or current.data is None:
            return QueryResponse(data=None, error=current.error)
        return QueryResponse.failure(
            QueryError.invalid(f"Suggestion already {current.data['status']}")
        )

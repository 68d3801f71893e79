"""Ratings, replies and reactions."""

from catalog_store.core.client import Transaction
from catalog_store.models.entities import (
    Account,
    NotificationType,
    RatingSubmit,
    ReactionType,
)
from catalog_store.models.query import QueryError, QueryResponse
from catalog_store.repositories.base import BaseRepository, first_row

AUTHOR_COLUMNS = "u.telegram_id, u.username, u.first_name, u.last_name, u.avatar_url"


class RatingRepository(BaseRepository):
    """Ratings (``reviews``): one per account and entry, by convention."""

    table = "reviews"

    async def get(self, rating_id: str) -> QueryResponse:
        return await self.query().select().eq("id", rating_id).maybe_single()

    async def list_for_entry(self, entry_id: str) -> QueryResponse:
        """Ratings of an entry with author fields, newest first."""
        return await self.db.query(
            f"SELECT r.*, {AUTHOR_COLUMNS} FROM reviews r "
            "JOIN users u ON r.user_id = u.id "
            "WHERE r.game_id = $1 ORDER BY r.created_at DESC",
            [entry_id],
        )

    async def list_for_account(self, account_id: str) -> QueryResponse:
        return await (
            self.query()
            .select()
            .eq("user_id", account_id)
            .order("created_at", ascending=False)
            .execute()
        )

    async def get_for_account(self, account_id: str, entry_id: str) -> QueryResponse:
        return await (
            self.query()
            .select()
            .eq("user_id", account_id)
            .eq("game_id", entry_id)
            .maybe_single()
        )

    async def submit(
        self, actor: Account, entry_id: str, payload: RatingSubmit
    ) -> QueryResponse:
        """
        Create the actor's rating of an entry, or update the existing one.

        A first rating also leaves a ``review_submitted`` notification for the
        actor; both rows are written in one transaction.
        """
        existing = await self.get_for_account(actor.id, entry_id)
        if existing.error is not None:
            return existing

        if existing.data is not None:
            return first_row(
                await self.query()
                .eq("id", existing.data["id"])
                .update({"rating": payload.rating, "comment": payload.comment})
            )

        entry = await self.db.table("games").select("title").eq("id", entry_id).maybe_single()
        if entry.error is not None:
            return entry
        if entry.data is None:
            return QueryResponse.failure(QueryError.invalid(f"Entry {entry_id} not found"))
        title = entry.data["title"]

        async def work(tx: Transaction):
            created = await tx.table(self.table).insert(
                {
                    "user_id": actor.id,
                    "game_id": entry_id,
                    "rating": payload.rating,
                    "comment": payload.comment,
                }
            )
            await tx.table("notifications").insert(
                {
                    "user_id": actor.id,
                    "type": NotificationType.REVIEW_SUBMITTED.value,
                    "title": "Review submitted",
                    "message": f"Your review of {title} has been published",
                    "game_title": title,
                }
            )
            return created.data

        return await self.db.transaction(work)

    async def delete(self, actor: Account, rating_id: str) -> QueryResponse:
        """Delete a rating; only its author or an administrator may."""
        rating = await self.get(rating_id)
        if rating.error is not None or rating.data is None:
            return QueryResponse(data=None, error=rating.error)

        if rating.data["user_id"] != actor.id and not self.is_admin(actor):
            return QueryResponse.failure(
                QueryError.forbidden("Only the author or an administrator may delete a rating")
            )
        return await self.query().eq("id", rating_id).delete()


class ReplyRepository(BaseRepository):
    """Replies to ratings (``review_replies``)."""

    table = "review_replies"

    async def list_for_rating(self, rating_id: str) -> QueryResponse:
        """Replies with author fields, oldest first."""
        return await self.db.query(
            f"SELECT rr.*, {AUTHOR_COLUMNS} FROM review_replies rr "
            "JOIN users u ON rr.user_id = u.id "
            "WHERE rr.review_id = $1 ORDER BY rr.created_at ASC",
            [rating_id],
        )

    async def create(self, actor: Account, rating_id: str, comment: str) -> QueryResponse:
        """
        Reply to a rating.

        The rating's author gets a ``reply_received`` notification unless they
        reply to themselves.
        """
        comment = comment.strip()
        if not comment:
            return QueryResponse.failure(QueryError.invalid("Reply must not be empty"))

        parent = await self.db.query(
            "SELECT r.user_id, g.title FROM reviews r "
            "JOIN games g ON r.game_id = g.id WHERE r.id = $1",
            [rating_id],
        )
        if parent.error is not None:
            return parent
        if not parent.data:
            return QueryResponse.failure(QueryError.invalid(f"Rating {rating_id} not found"))
        author_id = parent.data[0]["user_id"]
        title = parent.data[0]["title"]

        async def work(tx: Transaction):
            created = await tx.table(self.table).insert(
                {"review_id": rating_id, "user_id": actor.id, "comment": comment}
            )
            if author_id != actor.id:
                await tx.table("notifications").insert(
                    {
                        "user_id": author_id,
                        "type": NotificationType.REPLY_RECEIVED.value,
                        "title": "New reply",
                        "message": f"{actor.first_name} replied to your review of {title}",
                        "game_title": title,
                        "from_user": actor.first_name,
                    }
                )
            return created.data

        return await self.db.transaction(work)

    async def delete(self, actor: Account, reply_id: str) -> QueryResponse:
        """Delete a reply; only its author or an administrator may."""
        reply = await self.query().select().eq("id", reply_id).maybe_single()
        if reply.error is not None or reply.data is None:
            return QueryResponse(data=None, error=reply.error)

        if reply.data["user_id"] != actor.id and not self.is_admin(actor):
            return QueryResponse.failure(
                QueryError.forbidden("Only the author or an administrator may delete a reply")
            )
        return await self.query().eq("id", reply_id).delete()


class ReactionRepository(BaseRepository):
    """Approve/disapprove votes (``review_reactions``), one per rating and account."""

    table = "review_reactions"

    async def react(
        self, account_id: str, rating_id: str, reaction: ReactionType
    ) -> QueryResponse:
        """Record a vote; a second vote by the same account replaces the first."""
        return await self.query().upsert(
            {
                "review_id": rating_id,
                "user_id": account_id,
                "reaction_type": ReactionType(reaction).value,
            },
            on_conflict=["review_id", "user_id"],
        )

    async def remove(self, account_id: str, rating_id: str) -> QueryResponse:
        return await self.query().eq("review_id", rating_id).eq("user_id", account_id).delete()

    async def get_for_account(self, account_id: str, rating_id: str) -> QueryResponse:
        return await (
            self.query()
            .select("reaction_type")
            .eq("review_id", rating_id)
            .eq("user_id", account_id)
            .maybe_single()
        )

    async def counts(self, rating_id: str) -> QueryResponse:
        """Vote totals of a rating as ``{"like": n, "dislike": m}``."""
        grouped = await self.db.query(
            "SELECT reaction_type, COUNT(*) AS count FROM review_reactions "
            "WHERE review_id = $1 GROUP BY reaction_type",
            [rating_id],
        )
        if grouped.error is not None:
            return grouped

        totals = {kind.value: 0 for kind in ReactionType}
        for row in grouped.data:
            totals[row["reaction_type"]] = int(row["count"])
        return QueryResponse(data=totals)

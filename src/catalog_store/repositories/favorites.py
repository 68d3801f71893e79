"""Favorites linking accounts to entries."""

from catalog_store.models.query import CountResponse, QueryResponse
from catalog_store.repositories.base import BaseRepository
from catalog_store.repositories.entries import entry_rows


class FavoriteRepository(BaseRepository):
    table = "favorites"

    async def add(self, account_id: str, entry_id: str) -> QueryResponse:
        """Favorite an entry; favoriting it again returns the existing link."""
        existing = await self.find(account_id, entry_id)
        if existing.error is not None or existing.data is not None:
            return existing
        return await self.query().insert({"user_id": account_id, "game_id": entry_id})

    async def remove(self, account_id: str, entry_id: str) -> QueryResponse:
        return await self.query().eq("user_id", account_id).eq("game_id", entry_id).delete()

    async def find(self, account_id: str, entry_id: str) -> QueryResponse:
        return await (
            self.query()
            .select()
            .eq("user_id", account_id)
            .eq("game_id", entry_id)
            .maybe_single()
        )

    async def is_favorite(self, account_id: str, entry_id: str) -> QueryResponse:
        found = await self.find(account_id, entry_id)
        if found.error is not None:
            return found
        return QueryResponse(data=found.data is not None)

    async def list_for_account(self, account_id: str) -> QueryResponse:
        """Favorited entries of an account, most recently favorited first."""
        response = await self.db.query(
            "SELECT g.*, f.id AS favorite_id, f.created_at AS favorited_at "
            "FROM favorites f JOIN games g ON f.game_id = g.id "
            "WHERE f.user_id = $1 ORDER BY f.created_at DESC",
            [account_id],
        )
        return entry_rows(response)

    async def count_for_account(self, account_id: str) -> CountResponse:
        return await self.query().eq("user_id", account_id).count()

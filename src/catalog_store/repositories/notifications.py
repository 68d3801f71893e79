"""Per-account notifications."""

from catalog_store.models.entities import NotificationCreate
from catalog_store.models.query import CountResponse, QueryResponse
from catalog_store.repositories.base import BaseRepository, first_row

NOTIFICATION_PAGE_SIZE = 50


class NotificationRepository(BaseRepository):
    """Notifications; every mutation is scoped to the owning account."""

    table = "notifications"

    async def list_for_account(
        self, account_id: str, limit: int = NOTIFICATION_PAGE_SIZE
    ) -> QueryResponse:
        return await (
            self.query()
            .select()
            .eq("user_id", account_id)
            .order("created_at", ascending=False)
            .limit(limit)
            .execute()
        )

    async def unread_count(self, account_id: str) -> CountResponse:
        return await self.query().eq("user_id", account_id).eq("read", False).count()

    async def create(self, payload: NotificationCreate) -> QueryResponse:
        return await self.query().insert(payload.to_record())

    async def mark_read(self, account_id: str, notification_id: str) -> QueryResponse:
        return first_row(
            await self.query()
            .eq("id", notification_id)
            .eq("user_id", account_id)
            .update({"read": True})
        )

    async def mark_all_read(self, account_id: str) -> QueryResponse:
        return await self.query().eq("user_id", account_id).eq("read", False).update({"read": True})

    async def delete(self, account_id: str, notification_id: str) -> QueryResponse:
        return await self.query().eq("id", notification_id).eq("user_id", account_id).delete()

    async def clear(self, account_id: str) -> QueryResponse:
        return await self.query().eq("user_id", account_id).delete()

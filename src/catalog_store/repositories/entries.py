"""Entries and their screenshots."""

from typing import Optional

from pydantic import ValidationError

from catalog_store.core.client import Transaction
from catalog_store.models.entities import Account, Entry, EntryCreate, EntryUpdate
from catalog_store.models.query import QueryError, QueryResponse
from catalog_store.repositories.base import BaseRepository, first_row, utcnow


def entry_rows(response: QueryResponse) -> QueryResponse:
    """
    Pass returned entry rows through ``Entry``.

    Rows written before multi-platform support have an empty platform list;
    they come back with the primary platform as their only element.
    """
    if response.error is not None or response.data is None:
        return response
    try:
        if isinstance(response.data, list):
            data = [Entry.model_validate(row).model_dump() for row in response.data]
        else:
            data = Entry.model_validate(response.data).model_dump()
    except ValidationError as e:
        return QueryResponse.failure(QueryError.invalid(f"Malformed entry row: {e}"))
    return QueryResponse(data=data)


class EntryRepository(BaseRepository):
    """Catalog entries (``games``); writes are reserved to administrators."""

    table = "games"

    async def list_all(self, limit: Optional[int] = None) -> QueryResponse:
        """List entries, newest first."""
        query = self.query().select().order("created_at", ascending=False)
        if limit is not None:
            query.limit(limit)
        return entry_rows(await query.execute())

    async def get(self, entry_id: str) -> QueryResponse:
        return entry_rows(await self.query().select().eq("id", entry_id).maybe_single())

    async def create(self, actor: Account, payload: EntryCreate) -> QueryResponse:
        denied = self.require_admin(actor, "create entries")
        if denied:
            return denied
        return await self.query().insert(payload.to_record())

    async def update(
        self, actor: Account, entry_id: str, payload: EntryUpdate
    ) -> QueryResponse:
        """Apply a partial update and bump ``updated_at``."""
        denied = self.require_admin(actor, "edit entries")
        if denied:
            return denied

        record = payload.to_record()
        record["updated_at"] = utcnow()
        return first_row(await self.query().eq("id", entry_id).update(record))

    async def delete(self, actor: Account, entry_id: str) -> QueryResponse:
        denied = self.require_admin(actor, "delete entries")
        if denied:
            return denied
        return await self.query().eq("id", entry_id).delete()

    async def list_screenshots(self, entry_id: str) -> QueryResponse:
        return await (
            self.db.table("screenshots")
            .select()
            .eq("game_id", entry_id)
            .order("order_index")
            .execute()
        )

    async def replace_screenshots(
        self, actor: Account, entry_id: str, image_urls: list[str]
    ) -> QueryResponse:
        """Swap the screenshot set of an entry in one transaction."""
        denied = self.require_admin(actor, "edit entries")
        if denied:
            return denied

        async def work(tx: Transaction):
            await tx.table("screenshots").eq("game_id", entry_id).delete()
            if not image_urls:
                return []
            inserted = await tx.table("screenshots").insert(
                [
                    {"game_id": entry_id, "image_url": url, "order_index": index}
                    for index, url in enumerate(image_urls)
                ]
            )
            return inserted.data

        return await self.db.transaction(work)

"""Entry categories."""

from catalog_store.models.entities import Account
from catalog_store.models.query import QueryError, QueryResponse
from catalog_store.repositories.base import BaseRepository


class CategoryRepository(BaseRepository):
    """Categories (``genres``), curated by administrators."""

    table = "genres"

    async def list_all(self) -> QueryResponse:
        return await self.query().select().order("name").execute()

    async def create(self, actor: Account, name: str) -> QueryResponse:
        denied = self.require_admin(actor, "create categories")
        if denied:
            return denied

        name = name.strip()
        if not name:
            return QueryResponse.failure(QueryError.invalid("Category name must not be empty"))
        return await self.query().insert({"name": name})

    async def delete(self, actor: Account, category_id: str) -> QueryResponse:
        denied = self.require_admin(actor, "delete categories")
        if denied:
            return denied
        return await self.query().eq("id", category_id).delete()

"""Catalog MCP Server

A Model Context Protocol (MCP) server exposing the catalog repositories
(entries, categories, ratings, reactions, notifications, suggestions) as tools
over stdio.
"""

import asyncio
import logging
import os
from typing import Any, Optional, Union

from dotenv import load_dotenv
from mcp.server import Server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from catalog_store.core import CatalogDatabase, DatabaseConnection
from catalog_store.models.config import DatabaseConfig
from catalog_store.models.entities import (
    Account,
    RatingSubmit,
    ReactionType,
    SuggestionCreate,
    SuggestionStatus,
)
from catalog_store.models.query import CountResponse, QueryError, QueryResponse
from catalog_store.repositories import (
    AccountRepository,
    CategoryRepository,
    EntryRepository,
    NotificationRepository,
    RatingRepository,
    ReactionRepository,
    SuggestionRepository,
)
from catalog_store.utils import dumps

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Response size limit (in characters) for tool responses
MAX_RESPONSE_LENGTH = 10000


def truncate_json_response(data: str, max_length: int = MAX_RESPONSE_LENGTH) -> str:
    """
    Truncate a JSON response to a maximum length.

    Args:
        data: JSON string to truncate
        max_length: Maximum length in characters

    Returns:
        Truncated JSON string with truncation notice if needed
    """
    if len(data) <= max_length:
        return data

    truncation_msg = f"\n\n... [Response truncated: {len(data)} chars -> {max_length} chars]"
    available_length = max_length - len(truncation_msg)

    if available_length < 100:
        return dumps(
            {
                "error": "Response too large",
                "original_size": len(data),
                "limit": max_length,
            },
            indent=True,
        )

    truncated = data[:available_length]
    last_newline = truncated.rfind("\n")
    if last_newline > available_length * 0.8:
        truncated = truncated[:last_newline]

    return truncated + truncation_msg


def _text(envelope: Union[QueryResponse, CountResponse]) -> list[TextContent]:
    response = dumps(envelope.model_dump(mode="json"), indent=True)
    return [TextContent(type="text", text=truncate_json_response(response))]


def _invalid(exc: ValidationError) -> QueryResponse:
    messages = "; ".join(error["msg"] for error in exc.errors())
    return QueryResponse.failure(QueryError.invalid(messages))


def _telegram_id_schema(description: str) -> dict[str, Any]:
    return {"type": "integer", "description": description}


class CatalogMCPServer:
    """MCP server over the catalog repositories."""

    def __init__(self, config: DatabaseConfig):
        """
        Initialize catalog MCP server.

        Args:
            config: Database configuration
        """
        self.config = config
        self.connection = DatabaseConnection(config)
        self.db = CatalogDatabase(self.connection)
        self.accounts = AccountRepository(self.db)
        self.entries = EntryRepository(self.db)
        self.categories = CategoryRepository(self.db)
        self.ratings = RatingRepository(self.db)
        self.reactions = ReactionRepository(self.db)
        self.notifications = NotificationRepository(self.db)
        self.suggestions = SuggestionRepository(self.db)
        self.server = Server("catalog-store")
        self.handlers = {
            "list_entries": self.handle_list_entries,
            "get_entry": self.handle_get_entry,
            "list_categories": self.handle_list_categories,
            "list_ratings": self.handle_list_ratings,
            "submit_rating": self.handle_submit_rating,
            "react_to_rating": self.handle_react_to_rating,
            "list_notifications": self.handle_list_notifications,
            "mark_notification_read": self.handle_mark_notification_read,
            "list_suggestions": self.handle_list_suggestions,
            "submit_suggestion": self.handle_submit_suggestion,
            "review_suggestion": self.handle_review_suggestion,
            "account_stats": self.handle_account_stats,
        }

    async def initialize(self) -> None:
        """Initialize the pool and register MCP handlers."""
        await self.connection.initialize()
        self._register_handlers()
        logger.info(f"Initialized catalog MCP server ({len(self.handlers)} tools)")

    def _register_handlers(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return self.tools()

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            return await self.call(name, arguments)

    async def call(self, name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Dispatch a tool call by name."""
        handler = self.handlers.get(name)
        if handler is None:
            raise ValueError(f"Unknown tool: {name}")
        return await handler(arguments or {})

    def tools(self) -> list[Tool]:
        """Describe the available tools."""
        actor = _telegram_id_schema("Chat-platform id of the acting account")
        return [
            Tool(
                name="list_entries",
                description="List catalog entries, newest first",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "limit": {"type": "integer", "minimum": 1, "description": "Maximum entries"},
                    },
                    "required": [],
                },
            ),
            Tool(
                name="get_entry",
                description="Get one entry with its screenshots",
                inputSchema={
                    "type": "object",
                    "properties": {"entry_id": {"type": "string"}},
                    "required": ["entry_id"],
                },
            ),
            Tool(
                name="list_categories",
                description="List categories by name",
                inputSchema={"type": "object", "properties": {}, "required": []},
            ),
            Tool(
                name="list_ratings",
                description="List ratings of an entry with author fields and vote totals",
                inputSchema={
                    "type": "object",
                    "properties": {"entry_id": {"type": "string"}},
                    "required": ["entry_id"],
                },
            ),
            Tool(
                name="submit_rating",
                description="Create or update the acting account's rating of an entry",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "telegram_id": actor,
                        "entry_id": {"type": "string"},
                        "rating": {"type": "integer", "minimum": 1, "maximum": 5},
                        "comment": {"type": "string"},
                    },
                    "required": ["telegram_id", "entry_id", "rating"],
                },
            ),
            Tool(
                name="react_to_rating",
                description="Like or dislike a rating; a second vote replaces the first",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "telegram_id": actor,
                        "rating_id": {"type": "string"},
                        "reaction": {"type": "string", "enum": ["like", "dislike"]},
                    },
                    "required": ["telegram_id", "rating_id", "reaction"],
                },
            ),
            Tool(
                name="list_notifications",
                description="List the 50 newest notifications of the acting account",
                inputSchema={
                    "type": "object",
                    "properties": {"telegram_id": actor},
                    "required": ["telegram_id"],
                },
            ),
            Tool(
                name="mark_notification_read",
                description="Mark one notification of the acting account as read",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "telegram_id": actor,
                        "notification_id": {"type": "string"},
                    },
                    "required": ["telegram_id", "notification_id"],
                },
            ),
            Tool(
                name="list_suggestions",
                description="List suggestions, optionally only those of one account",
                inputSchema={
                    "type": "object",
                    "properties": {"telegram_id": actor},
                    "required": [],
                },
            ),
            Tool(
                name="submit_suggestion",
                description="Suggest a new entry (non-administrators, one per 3 hours)",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "telegram_id": actor,
                        "game_title": {"type": "string"},
                        "description": {"type": "string"},
                    },
                    "required": ["telegram_id", "game_title"],
                },
            ),
            Tool(
                name="review_suggestion",
                description="Approve or reject a pending suggestion (administrators)",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "telegram_id": actor,
                        "suggestion_id": {"type": "string"},
                        "status": {"type": "string", "enum": ["approved", "rejected"]},
                    },
                    "required": ["telegram_id", "suggestion_id", "status"],
                },
            ),
            Tool(
                name="account_stats",
                description="Rating count, average score and favorite count of an account",
                inputSchema={
                    "type": "object",
                    "properties": {"telegram_id": actor},
                    "required": ["telegram_id"],
                },
            ),
        ]

    async def _resolve_actor(
        self, arguments: dict[str, Any]
    ) -> tuple[Optional[Account], Optional[QueryResponse]]:
        """Load the account named by ``telegram_id``; returns (account, failure)."""
        found = await self.accounts.get_by_telegram_id(int(arguments["telegram_id"]))
        if found.error is not None:
            return None, found
        if found.data is None:
            return None, QueryResponse.failure(
                QueryError.invalid(f"Unknown account {arguments['telegram_id']}")
            )
        return Account.model_validate(found.data), None

    # Tool handlers
    async def handle_list_entries(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle list_entries request."""
        return _text(await self.entries.list_all(arguments.get("limit")))

    async def handle_get_entry(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle get_entry request."""
        entry = await self.entries.get(arguments["entry_id"])
        if entry.error is not None or entry.data is None:
            return _text(entry)

        screenshots = await self.entries.list_screenshots(arguments["entry_id"])
        if screenshots.error is not None:
            return _text(screenshots)
        entry.data["screenshots"] = [s["image_url"] for s in screenshots.data]
        return _text(entry)

    async def handle_list_categories(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle list_categories request."""
        return _text(await self.categories.list_all())

    async def handle_list_ratings(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle list_ratings request."""
        ratings = await self.ratings.list_for_entry(arguments["entry_id"])
        if ratings.error is not None:
            return _text(ratings)

        for rating in ratings.data:
            counts = await self.reactions.counts(rating["id"])
            if counts.error is not None:
                return _text(counts)
            rating["likes_count"] = counts.data["like"]
            rating["dislikes_count"] = counts.data["dislike"]
        return _text(ratings)

    async def handle_submit_rating(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle submit_rating request."""
        actor, failure = await self._resolve_actor(arguments)
        if failure:
            return _text(failure)

        try:
            payload = RatingSubmit(
                rating=arguments["rating"], comment=arguments.get("comment", "")
            )
        except ValidationError as e:
            return _text(_invalid(e))
        return _text(await self.ratings.submit(actor, arguments["entry_id"], payload))

    async def handle_react_to_rating(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle react_to_rating request."""
        actor, failure = await self._resolve_actor(arguments)
        if failure:
            return _text(failure)

        reaction = ReactionType(arguments["reaction"])
        return _text(await self.reactions.react(actor.id, arguments["rating_id"], reaction))

    async def handle_list_notifications(
        self, arguments: dict[str, Any]
    ) -> list[TextContent]:
        """Handle list_notifications request."""
        actor, failure = await self._resolve_actor(arguments)
        if failure:
            return _text(failure)
        return _text(await self.notifications.list_for_account(actor.id))

    async def handle_mark_notification_read(
        self, arguments: dict[str, Any]
    ) -> list[TextContent]:
        """Handle mark_notification_read request."""
        actor, failure = await self._resolve_actor(arguments)
        if failure:
            return _text(failure)
        return _text(
            await self.notifications.mark_read(actor.id, arguments["notification_id"])
        )

    async def handle_list_suggestions(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle list_suggestions request."""
        if arguments.get("telegram_id") is None:
            return _text(await self.suggestions.list_all())

        actor, failure = await self._resolve_actor(arguments)
        if failure:
            return _text(failure)
        return _text(await self.suggestions.list_all(actor.id))

    async def handle_submit_suggestion(
        self, arguments: dict[str, Any]
    ) -> list[TextContent]:
        """Handle submit_suggestion request."""
        actor, failure = await self._resolve_actor(arguments)
        if failure:
            return _text(failure)

        try:
            payload = SuggestionCreate(
                game_title=arguments["game_title"],
                description=arguments.get("description", ""),
            )
        except ValidationError as e:
            return _text(_invalid(e))
        return _text(await self.suggestions.create(actor, payload))

    async def handle_review_suggestion(
        self, arguments: dict[str, Any]
    ) -> list[TextContent]:
        """Handle review_suggestion request."""
        actor, failure = await self._resolve_actor(arguments)
        if failure:
            return _text(failure)

        status = SuggestionStatus(arguments["status"])
        return _text(
            await self.suggestions.review(actor, arguments["suggestion_id"], status)
        )

    async def handle_account_stats(self, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle account_stats request."""
        actor, failure = await self._resolve_actor(arguments)
        if failure:
            return _text(failure)
        return _text(await self.accounts.stats(actor.id))

    async def cleanup(self) -> None:
        """Cleanup resources."""
        await self.connection.dispose()
        logger.info("Catalog MCP server cleaned up")


async def main() -> None:
    """Main entry point for the MCP server."""
    config = DatabaseConfig.from_env()

    mcp_server = CatalogMCPServer(config)

    try:
        await mcp_server.initialize()

        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await mcp_server.server.run(
                read_stream,
                write_stream,
                mcp_server.server.create_initialization_options(),
            )

    finally:
        await mcp_server.cleanup()


def cli_entry() -> None:
    """
    Synchronous entry point for console script.

    This function is called by the 'catalog-store' console script.
    It sets up the event loop and runs the async main() function.
    """
    # Windows-specific event loop policy
    if os.name == "nt":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())  # type: ignore[attr-defined]

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    cli_entry()

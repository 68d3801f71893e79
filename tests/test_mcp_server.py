"""MCP Server Testing

Tests CatalogMCPServer tool handlers over the fake pool. This validates:
- Tool registration and input schemas
- Dispatch by tool name
- Actor resolution from telegram_id
- Envelope serialization to MCP TextContent

Run with: pytest tests/test_mcp_server.py -v
"""

import json
from typing import Any

import pytest
from mcp.types import TextContent

from catalog_store.server import CatalogMCPServer, truncate_json_response

ALICE_ROW = {"id": "u-alice", "telegram_id": 1001, "first_name": "Alice"}
ADMIN_ROW = {"id": "u-admin", "telegram_id": 7727946466, "first_name": "Admin"}
ENTRY_ROW = {"id": "g-1", "title": "Alpha", "platform": "Windows", "platforms": [], "genres": []}


def parse_text_content(content: list[TextContent]) -> dict[str, Any]:
    """Parse a single TextContent tool response into the envelope dict."""
    assert len(content) == 1
    assert content[0].type == "text"
    return json.loads(content[0].text)


@pytest.fixture
def mcp_server(unit_config, fake_db) -> CatalogMCPServer:
    """Server whose repositories issue statements through the fake pool"""
    server = CatalogMCPServer(unit_config)
    server.db = fake_db
    for repo in (
        server.accounts,
        server.entries,
        server.categories,
        server.ratings,
        server.reactions,
        server.notifications,
        server.suggestions,
    ):
        repo.db = fake_db
    return server


class TestToolRegistration:
    """Test the tool list."""

    def test_every_tool_has_a_handler(self, mcp_server):
        names = [tool.name for tool in mcp_server.tools()]

        assert len(names) == 12
        assert set(names) == set(mcp_server.handlers)

    def test_input_schemas(self, mcp_server):
        tools = {tool.name: tool for tool in mcp_server.tools()}

        assert tools["submit_rating"].inputSchema["required"] == [
            "telegram_id",
            "entry_id",
            "rating",
        ]
        assert tools["react_to_rating"].inputSchema["properties"]["reaction"]["enum"] == [
            "like",
            "dislike",
        ]
        assert "pending" not in tools["review_suggestion"].inputSchema["properties"]["status"]["enum"]

    async def test_unknown_tool(self, mcp_server):
        with pytest.raises(ValueError, match="Unknown tool"):
            await mcp_server.call("drop_everything", {})


class TestToolCalls:
    """Test handlers end to end over the fake pool."""

    async def test_list_entries(self, mcp_server, fake_pool):
        fake_pool.script([ENTRY_ROW])

        result = parse_text_content(await mcp_server.call("list_entries", {"limit": 5}))

        assert result["error"] is None
        assert [entry["title"] for entry in result["data"]] == ["Alpha"]
        assert result["data"][0]["platforms"] == ["Windows"]
        assert fake_pool.executed[0][0].endswith("ORDER BY created_at DESC LIMIT 5")

    async def test_get_entry_includes_screenshots(self, mcp_server, fake_pool):
        fake_pool.script(
            [ENTRY_ROW],
            [{"image_url": "a.png"}, {"image_url": "b.png"}],
        )

        result = parse_text_content(await mcp_server.call("get_entry", {"entry_id": "g-1"}))

        assert result["data"]["screenshots"] == ["a.png", "b.png"]

    async def test_get_missing_entry(self, mcp_server, fake_pool):
        fake_pool.script([])

        result = parse_text_content(await mcp_server.call("get_entry", {"entry_id": "g-x"}))

        assert result == {"data": None, "error": None}
        assert len(fake_pool.executed) == 1

    async def test_list_ratings_adds_vote_totals(self, mcp_server, fake_pool):
        fake_pool.script(
            [{"id": "r-1", "rating": 5}],
            [{"reaction_type": "like", "count": 2}, {"reaction_type": "dislike", "count": 1}],
        )

        result = parse_text_content(await mcp_server.call("list_ratings", {"entry_id": "g-1"}))

        assert result["data"][0]["likes_count"] == 2
        assert result["data"][0]["dislikes_count"] == 1

    async def test_unknown_actor(self, mcp_server, fake_pool):
        fake_pool.script([])

        result = parse_text_content(
            await mcp_server.call("account_stats", {"telegram_id": 555})
        )

        assert result["data"] is None
        assert result["error"]["kind"] == "invalid"

    async def test_react_to_rating(self, mcp_server, fake_pool):
        fake_pool.script([ALICE_ROW], [{"id": "x-1", "reaction_type": "dislike"}])

        result = parse_text_content(
            await mcp_server.call(
                "react_to_rating",
                {"telegram_id": 1001, "rating_id": "r-1", "reaction": "dislike"},
            )
        )

        assert result["data"]["reaction_type"] == "dislike"

    async def test_out_of_range_score_is_invalid(self, mcp_server, fake_pool):
        fake_pool.script([ALICE_ROW])

        result = parse_text_content(
            await mcp_server.call(
                "submit_rating", {"telegram_id": 1001, "entry_id": "g-1", "rating": 9}
            )
        )

        assert result["error"]["kind"] == "invalid"
        assert len(fake_pool.executed) == 1

    async def test_review_suggestion_requires_admin(self, mcp_server, fake_pool):
        fake_pool.script([ALICE_ROW])

        result = parse_text_content(
            await mcp_server.call(
                "review_suggestion",
                {"telegram_id": 1001, "suggestion_id": "s-1", "status": "approved"},
            )
        )

        assert result["error"]["kind"] == "forbidden"

    async def test_review_suggestion_as_admin(self, mcp_server, fake_pool):
        fake_pool.script([ADMIN_ROW], [{"id": "s-1", "status": "rejected"}])

        result = parse_text_content(
            await mcp_server.call(
                "review_suggestion",
                {"telegram_id": 7727946466, "suggestion_id": "s-1", "status": "rejected"},
            )
        )

        assert result == {"data": {"id": "s-1", "status": "rejected"}, "error": None}

    async def test_connection_failure_is_reported_in_envelope(self, mcp_server, fake_pool):
        fake_pool.script(ConnectionRefusedError("connection refused"))

        result = parse_text_content(await mcp_server.call("list_categories", {}))

        assert result["data"] is None
        assert result["error"]["kind"] == "connection"


class TestTruncation:
    """Test response size limiting."""

    def test_short_response_untouched(self):
        assert truncate_json_response('{"a": 1}') == '{"a": 1}'

    def test_long_response_truncated(self):
        data = "\n".join(f'"row {i}"' for i in range(5000))

        truncated = truncate_json_response(data, max_length=1000)

        assert len(truncated) <= 1000
        assert "Response truncated" in truncated

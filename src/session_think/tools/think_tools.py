"""MCP tools for the thinking workspace.

These functions are exposed as tools to the calling agent. Each one returns a
JSON document; failures come back as ``{"error": kind, "message": ...}``
instead of propagating.
"""

from __future__ import annotations

import functools
import json
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from session_think.errors import ThinkError
from session_think.sessions.models import MODES, RELATIONSHIP_TYPES, format_timestamp

if TYPE_CHECKING:
    from session_think.core import SessionThink

logger = logging.getLogger(__name__)

ToolFn = Callable[..., Awaitable[str]]

_SESSION_NAME_HINT = "Session name in format: category:name:subcategory (e.g., thesis:NVDA:ai_dominance)"


def _session_name(description: str = _SESSION_NAME_HINT) -> dict:
    return {"type": "string", "description": description}


def _page(default: int, maximum: int, what: str) -> dict:
    return {
        "type": "integer",
        "minimum": 1,
        "maximum": maximum,
        "default": default,
        "description": f"Maximum number of {what} to return",
    }


_OFFSET = {"type": "integer", "minimum": 0, "default": 0, "description": "Pagination offset"}

TOOLS = [
    {
        "name": "think",
        "description": (
            "A persistent thinking workspace that preserves reasoning across sessions. "
            "Always provide sessionName (category:name:subcategory); without it a "
            "temporary TEMP:timestamp:random session is created and can be renamed later."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "reasoning": {
                    "type": "string",
                    "description": "Your thinking, reasoning, or analysis text",
                },
                "sessionName": _session_name(),
                "mode": {
                    "type": "string",
                    "enum": list(MODES),
                    "description": "Optional thinking mode to structure your reasoning",
                },
                "tags": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Optional tags for categorizing thoughts",
                },
                "relates_to": {"type": "string", "description": "ID of thought this relates to"},
                "relationship_type": {
                    "type": "string",
                    "enum": list(RELATIONSHIP_TYPES),
                    "description": "Type of relationship to the referenced thought",
                },
            },
            "required": ["reasoning"],
        },
    },
    {
        "name": "list_sessions",
        "description": "List all available thinking sessions with metadata.",
        "inputSchema": {
            "type": "object",
            "properties": {"limit": _page(50, 100, "sessions"), "offset": _OFFSET},
        },
    },
    {
        "name": "view_session",
        "description": "View the thoughts of a session in append order, paginated.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "sessionName": _session_name("Session name to view"),
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 200,
                    "description": "Maximum number of thoughts (default: SESSION_MAX_RETURN)",
                },
                "offset": _OFFSET,
            },
            "required": ["sessionName"],
        },
    },
    {
        "name": "delete_session",
        "description": "Delete a thinking session permanently.",
        "inputSchema": {
            "type": "object",
            "properties": {"sessionName": _session_name("Session name to delete")},
            "required": ["sessionName"],
        },
    },
    {
        "name": "rename_session",
        "description": "Rename an existing session to a new name.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "oldSessionName": _session_name("Current session name"),
                "newSessionName": _session_name("New session name"),
            },
            "required": ["oldSessionName", "newSessionName"],
        },
    },
    {
        "name": "search_in_session",
        "description": "Search for thoughts within a specific session by keyword.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "sessionName": _session_name("Session name to search in"),
                "query": {
                    "type": "string",
                    "description": "Search query (searches content, tags, and modes)",
                },
                "limit": _page(10, 50, "results"),
                "offset": _OFFSET,
            },
            "required": ["sessionName", "query"],
        },
    },
    {
        "name": "search_all_sessions",
        "description": (
            "Search for sessions containing thoughts matching a keyword. "
            "Returns session indicators, not full content."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query"},
                "limit": _page(20, 50, "sessions"),
                "offset": _OFFSET,
            },
            "required": ["query"],
        },
    },
    {
        "name": "get_session_info",
        "description": "Get metadata about a specific session without returning its thoughts.",
        "inputSchema": {
            "type": "object",
            "properties": {"sessionName": _session_name()},
            "required": ["sessionName"],
        },
    },
    {
        "name": "cleanup_sessions",
        "description": "Delete thinking sessions not modified for more than maxAgeDays days.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "maxAgeDays": {
                    "type": "number",
                    "minimum": 1,
                    "default": 90,
                    "description": "Maximum age in days before sessions are deleted",
                }
            },
        },
    },
    {
        "name": "find_thought_relationships",
        "description": "Search for thoughts that could be related to current reasoning within a session.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "sessionName": _session_name("Session name to search in"),
                "query": {"type": "string", "description": "Search query to find related thoughts"},
                "relationship_types": {
                    "type": "array",
                    "items": {"type": "string", "enum": list(RELATIONSHIP_TYPES)},
                    "description": "Filter by specific relationship types",
                },
                "exclude_thought_id": {
                    "type": "string",
                    "description": "Exclude a specific thought ID from results",
                },
                "limit": _page(10, 20, "results"),
            },
            "required": ["sessionName", "query"],
        },
    },
]


def _render(payload: dict) -> str:
    payload.setdefault("timestamp", format_timestamp(datetime.now(timezone.utc)))
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _boundary(fn: Callable[..., Awaitable[dict]]) -> ToolFn:
    """Run a tool, turning any ThinkError into an error payload."""

    @functools.wraps(fn)
    async def wrapper(**kwargs) -> str:
        try:
            return _render(await fn(**kwargs))
        except ThinkError as e:
            logger.warning("%s failed: %s: %s", fn.__name__, e.kind, e.message)
            return _render(e.to_payload())

    return wrapper


def get_think_tools(app: SessionThink) -> dict[str, ToolFn]:
    """Return a dict of tool_name -> async callable for session operations.

    These can be registered as MCP tools or called directly.
    """

    @_boundary
    async def think(
        reasoning: str,
        sessionName: str | None = None,
        mode: str | None = None,
        tags: list[str] | None = None,
        relates_to: str | None = None,
        relationship_type: str | None = None,
    ) -> dict:
        return await app.append_thought(
            reasoning,
            session_name=sessionName,
            mode=mode,
            tags=tags,
            relates_to=relates_to,
            relationship_type=relationship_type,
        )

    @_boundary
    async def list_sessions(limit: int = 50, offset: int = 0) -> dict:
        return await app.list_sessions(limit=limit, offset=offset)

    @_boundary
    async def view_session(sessionName: str, limit: int | None = None, offset: int = 0) -> dict:
        return await app.view_session(sessionName, limit=limit, offset=offset)

    @_boundary
    async def delete_session(sessionName: str) -> dict:
        result = await app.delete_session(sessionName)
        return {
            "status": "success",
            "message": f"Session {sessionName} deleted successfully",
            **result,
        }

    @_boundary
    async def rename_session(oldSessionName: str, newSessionName: str) -> dict:
        result = await app.rename_session(oldSessionName, newSessionName)
        return {
            "status": "success",
            "message": f"Session renamed from {oldSessionName} to {newSessionName}",
            **result,
        }

    @_boundary
    async def search_in_session(
        sessionName: str, query: str, limit: int = 10, offset: int = 0
    ) -> dict:
        return await app.search_in_session(sessionName, query, limit=limit, offset=offset)

    @_boundary
    async def search_all_sessions(query: str, limit: int = 20, offset: int = 0) -> dict:
        return await app.search_all_sessions(query, limit=limit, offset=offset)

    @_boundary
    async def get_session_info(sessionName: str) -> dict:
        return await app.get_session_info(sessionName)

    @_boundary
    async def cleanup_sessions(maxAgeDays: float = 90) -> dict:
        result = await app.cleanup_sessions(maxAgeDays)
        return {
            "status": "success",
            "message": f"Deleted {result['deletedCount']} sessions older than {maxAgeDays} days",
            **result,
        }

    @_boundary
    async def find_thought_relationships(
        sessionName: str,
        query: str,
        relationship_types: list[str] | None = None,
        exclude_thought_id: str | None = None,
        limit: int = 10,
    ) -> dict:
        return await app.find_thought_relationships(
            sessionName,
            query,
            relationship_types=relationship_types,
            exclude_thought_id=exclude_thought_id,
            limit=limit,
        )

    return {
        "think": think,
        "list_sessions": list_sessions,
        "view_session": view_session,
        "delete_session": delete_session,
        "rename_session": rename_session,
        "search_in_session": search_in_session,
        "search_all_sessions": search_all_sessions,
        "get_session_info": get_session_info,
        "cleanup_sessions": cleanup_sessions,
        "find_thought_relationships": find_thought_relationships,
    }

"""MCP server exposing todo search and editing tools."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from loguru import logger
from mcp.server.fastmcp import Context, FastMCP

from todo_palette.config import BLANK_QUERY_MATCHES_ALL, database_path
from todo_palette.core.database.store import StoreError, TodoStore
from todo_palette.core.search.highlight import render_marked
from todo_palette.core.search.query import build_predicate
from todo_palette.models.todo import StatusFilter, Todo, TodoStatus


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=UTC).isoformat()


def _serialize(todo: Todo, *, query: str = "") -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": todo.id,
        "title": todo.title,
        "content": todo.content,
        "status": todo.status.value,
        "created": _iso(todo.created_at),
        "updated": _iso(todo.updated_at),
    }
    if query.strip():
        entry["snippet"] = render_marked(todo.title, query)
        if todo.content:
            entry["content_snippet"] = render_marked(todo.content, query)
    return entry


def _parse_status(status: str) -> TodoStatus | None:
    try:
        return TodoStatus(status)
    except ValueError:
        return None


# --- Core functions (testable without MCP context) ---


def todo_search(
    store: TodoStore,
    *,
    query: str = "",
    status_filter: str = "all",
    limit: int = 20,
) -> dict[str, Any]:
    """Search todos by title and content.

    Matching is a case- and accent-insensitive substring test. Results are
    newest first. Matched text is wrapped in ``**`` in the snippets.

    Args:
        query: Search text (empty lists everything).
        status_filter: "all", "open" or "done".
        limit: Max results (1-100, default 20).
    """
    try:
        status = StatusFilter(status_filter)
    except ValueError:
        return {
            "error": f"Unknown status filter '{status_filter}'. Use all, open or done.",
            "results": [],
            "count": 0,
        }

    limit = max(1, min(limit, 100))
    predicate = build_predicate(query, status, blank_query_matches_all=BLANK_QUERY_MATCHES_ALL)
    try:
        todos = store.fetch(predicate, limit=limit)
    except StoreError as exc:
        logger.opt(exception=exc).warning("MCP search failed")
        return {"error": str(exc), "results": [], "count": 0}

    results = [_serialize(t, query=query) for t in todos]
    return {"results": results, "count": len(results)}


def todo_add(
    store: TodoStore,
    *,
    title: str,
    content: str | None = None,
    status: str = TodoStatus.PENDING.value,
) -> dict[str, Any]:
    """Create a todo."""
    parsed = _parse_status(status)
    if parsed is None:
        return {"error": f"Unknown status '{status}'."}
    try:
        todo = store.create(title, content=content, status=parsed)
    except ValueError:
        return {"error": "A todo needs a non-empty title."}
    except StoreError as exc:
        return {"error": str(exc)}
    return {"todo": _serialize(todo)}


def todo_update(
    store: TodoStore,
    *,
    todo_id: str,
    title: str | None = None,
    content: str | None = None,
    status: str | None = None,
) -> dict[str, Any]:
    """Update a todo's title, content or status. Empty content clears it."""
    parsed: TodoStatus | None = None
    if status is not None:
        parsed = _parse_status(status)
        if parsed is None:
            return {"error": f"Unknown status '{status}'."}
    try:
        todo = store.update(todo_id, title=title, content=content, status=parsed)
    except ValueError:
        return {"error": "A todo needs a non-empty title."}
    except StoreError as exc:
        return {"error": str(exc)}
    if todo is None:
        return {"error": f"Todo '{todo_id}' not found."}
    return {"todo": _serialize(todo)}


def todo_delete(store: TodoStore, *, todo_id: str) -> dict[str, Any]:
    """Delete a todo."""
    try:
        deleted = store.delete(todo_id)
    except StoreError as exc:
        return {"error": str(exc)}
    if not deleted:
        return {"error": f"Todo '{todo_id}' not found."}
    return {"deleted": todo_id}


# --- MCP Server Setup ---


@dataclass
class ServerContext:
    """Shared resources for the MCP server lifetime."""

    store: TodoStore
    db_path: Path


@asynccontextmanager
async def server_lifespan(_server: FastMCP) -> AsyncIterator[ServerContext]:
    """Open the todo store on startup, close on shutdown."""
    db_path = database_path()
    store = TodoStore.open(db_path)
    logger.info("Serving todos from {}", db_path)
    try:
        yield ServerContext(store=store, db_path=db_path)
    finally:
        store.close()


mcp_server = FastMCP(
    "todo-palette",
    instructions="""\
A personal todo list. Each todo has a title, optional content and a status
(pending, in_progress, completed, archived).

- Use todo_search_tool to find todos; status_filter "open" limits results to
  pending and in-progress todos, "done" to completed and archived ones.
- Use the id from search results with todo_update_tool and todo_delete_tool.
""",
    lifespan=server_lifespan,
)


def _ctx(mcp_ctx: Context) -> ServerContext:
    return mcp_ctx.request_context.lifespan_context  # type: ignore[return-value]


# --- MCP Tool Wrappers ---


@mcp_server.tool()
async def todo_search_tool(
    ctx: Context,
    query: str = "",
    status_filter: str = "all",
    limit: int = 20,
) -> dict[str, Any]:
    """Search todos by title and content (case- and accent-insensitive).

    Args:
        query: Search text (empty lists everything).
        status_filter: "all", "open" or "done".
        limit: Max results (1-100, default 20).
    """
    return todo_search(_ctx(ctx).store, query=query, status_filter=status_filter, limit=limit)


@mcp_server.tool()
async def todo_add_tool(
    ctx: Context,
    title: str,
    content: str | None = None,
    status: str = "pending",
) -> dict[str, Any]:
    """Create a todo.

    Args:
        title: Todo title (required, non-empty).
        content: Optional details.
        status: pending, in_progress, completed or archived.
    """
    return todo_add(_ctx(ctx).store, title=title, content=content, status=status)


@mcp_server.tool()
async def todo_update_tool(
    ctx: Context,
    todo_id: str,
    title: str | None = None,
    content: str | None = None,
    status: str | None = None,
) -> dict[str, Any]:
    """Update a todo. Omitted fields are left unchanged.

    Args:
        todo_id: Id from search results.
        title: New title.
        content: New content; an empty string clears it.
        status: pending, in_progress, completed or archived.
    """
    return todo_update(
        _ctx(ctx).store, todo_id=todo_id, title=title, content=content, status=status
    )


@mcp_server.tool()
async def todo_delete_tool(ctx: Context, todo_id: str) -> dict[str, Any]:
    """Delete a todo.

    Args:
        todo_id: Id from search results.
    """
    return todo_delete(_ctx(ctx).store, todo_id=todo_id)


def run_mcp_server() -> None:
    """Run the MCP server with stdio transport."""
    from todo_palette.logging_config import configure_logging

    configure_logging(verbose=False)
    mcp_server.run(transport="stdio")

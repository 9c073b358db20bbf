"""CLI for todo-palette (capture, search, palette, MCP server)."""

import json as json_mod
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from todo_palette.config import database_path
from todo_palette.core.database.store import StoreError, TodoStore, seed_sample_todos
from todo_palette.core.reactive.scheduling import ManualScheduler
from todo_palette.core.search.engine import QueryEngine
from todo_palette.core.search.highlight import segments
from todo_palette.core.selection.bus import SelectionBus
from todo_palette.logging_config import configure_logging
from todo_palette.models.todo import SearchResult, Segment, StatusFilter, TodoStatus
from todo_palette.ui.palette import CommandPalette
from todo_palette.ui.todo_list import TodoList

app = typer.Typer(help="todo-palette: capture, search and open todos.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory holding todos.db"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Annotated[
        Path | None,
        typer.Option("--log-file", help="Also write debug logs to this file"),
    ] = None,
) -> None:
    configure_logging(verbose=verbose, log_file=log_file)


def _open_store(data_dir: Path | None) -> TodoStore:
    """Open the todo database, creating it on first use."""
    db_path = database_path(data_dir)
    try:
        return TodoStore.open(db_path)
    except StoreError as exc:
        logger.error("Cannot open todo database {}: {}", db_path, exc)
        raise typer.Exit(1) from exc


def _parse_status(value: str) -> TodoStatus:
    try:
        return TodoStatus(value)
    except ValueError:
        choices = ", ".join(s.value for s in TodoStatus)
        logger.error("Unknown status '{}'. Choose one of: {}", value, choices)
        raise typer.Exit(1) from None


def _parse_filter(value: str) -> StatusFilter:
    try:
        return StatusFilter(value)
    except ValueError:
        logger.error("Unknown filter '{}'. Choose one of: all, open, done", value)
        raise typer.Exit(1) from None


def _styled(parts: tuple[Segment, ...]) -> str:
    return "".join(
        typer.style(seg.text, bold=True, fg=typer.colors.YELLOW) if seg.is_match else seg.text
        for seg in parts
    )


def _echo_todo(todo: SearchResult, *, query: str = "", marker: str = " ") -> None:
    created = datetime.fromtimestamp(todo.created_at / 1000)
    title = _styled(segments(todo.title, query)) if query else todo.title
    typer.echo(f"{marker} [{todo.status.display_name}] {title}")
    if todo.content:
        content = _styled(segments(todo.content, query)) if query else todo.content
        typer.echo(f"    {content}")
    typer.echo(f"    {created:%Y-%m-%d %H:%M}  id={todo.id}")


def _run_query(store: TodoStore, query: str, status_filter: StatusFilter) -> QueryEngine:
    engine = QueryEngine(store, ManualScheduler(), name="cli")
    engine.search_text = query
    engine.status_filter = status_filter
    engine.refresh()
    return engine


@app.command()
def add(
    title: str = typer.Argument(..., help="Todo title"),
    content: Annotated[
        str | None,
        typer.Option("--content", "-c", help="Details"),
    ] = None,
    status: str = typer.Option("pending", "--status", "-s", help="Initial status"),
    data_dir: DataDirOption = None,
) -> None:
    """Create a todo."""
    parsed = _parse_status(status)
    store = _open_store(data_dir)
    try:
        todo = store.create(title, content=content, status=parsed)
    except ValueError:
        logger.error("A todo needs a non-empty title.")
        raise typer.Exit(1) from None
    except StoreError as exc:
        logger.error("{}", exc)
        raise typer.Exit(1) from exc
    finally:
        store.close()
    typer.echo(f"Created {todo.id}: {todo.title}")


@app.command(name="list")
def list_cmd(
    status_filter: str = typer.Option("all", "--filter", "-f", help="all, open or done"),
    data_dir: DataDirOption = None,
) -> None:
    """List todos, newest first."""
    parsed = _parse_filter(status_filter)
    store = _open_store(data_dir)
    try:
        engine = _run_query(store, "", parsed)
        todos = engine.results.value
        typer.echo(f"{len(todos)} todos:\n")
        for todo in todos:
            _echo_todo(todo)
    finally:
        store.close()


@app.command()
def search(
    query: str = typer.Argument(..., help="Search text"),
    status_filter: str = typer.Option("all", "--filter", "-f", help="all, open or done"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max results"),
    data_dir: DataDirOption = None,
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Search todo titles and content."""
    parsed = _parse_filter(status_filter)
    store = _open_store(data_dir)
    try:
        engine = _run_query(store, query, parsed)
    finally:
        store.close()
    if engine.last_error is not None:
        logger.error("Search failed: {}", engine.last_error)
        raise typer.Exit(1)

    results = engine.results.value
    shown = results[:limit]
    if output_json:
        data = {
            "results": [
                {
                    "id": r.id,
                    "title": r.title,
                    "content": r.content,
                    "status": r.status.value,
                    "title_segments": [
                        {"text": s.text, "match": s.is_match} for s in segments(r.title, query)
                    ],
                }
                for r in shown
            ],
            "total": len(results),
        }
        typer.echo(json_mod.dumps(data, indent=2))
        return

    typer.echo(f"Found {len(results)} results (showing {len(shown)}):\n")
    for r in shown:
        _echo_todo(r, query=query)


@app.command()
def edit(
    todo_id: str = typer.Argument(..., help="Todo id"),
    title: Annotated[str | None, typer.Option("--title", "-t", help="New title")] = None,
    content: Annotated[
        str | None,
        typer.Option("--content", "-c", help="New content (empty string clears it)"),
    ] = None,
    data_dir: DataDirOption = None,
) -> None:
    """Change a todo's title or content."""
    if title is None and content is None:
        logger.error("Nothing to change: pass --title and/or --content.")
        raise typer.Exit(1)
    store = _open_store(data_dir)
    try:
        todo = store.update(todo_id, title=title, content=content)
    except ValueError:
        logger.error("A todo needs a non-empty title.")
        raise typer.Exit(1) from None
    except StoreError as exc:
        logger.error("{}", exc)
        raise typer.Exit(1) from exc
    finally:
        store.close()
    if todo is None:
        logger.error("Todo '{}' not found.", todo_id)
        raise typer.Exit(1)
    typer.echo(f"Updated {todo.id}: {todo.title}")


@app.command(name="set-status")
def set_status(
    todo_id: str = typer.Argument(..., help="Todo id"),
    status: str = typer.Argument(..., help="pending, in_progress, completed or archived"),
    data_dir: DataDirOption = None,
) -> None:
    """Change a todo's status."""
    parsed = _parse_status(status)
    store = _open_store(data_dir)
    try:
        todo = store.update(todo_id, status=parsed)
    except StoreError as exc:
        logger.error("{}", exc)
        raise typer.Exit(1) from exc
    finally:
        store.close()
    if todo is None:
        logger.error("Todo '{}' not found.", todo_id)
        raise typer.Exit(1)
    typer.echo(f"{todo.title}: {todo.status.display_name}")


@app.command()
def delete(
    todo_id: str = typer.Argument(..., help="Todo id"),
    data_dir: DataDirOption = None,
) -> None:
    """Delete a todo."""
    store = _open_store(data_dir)
    try:
        deleted = store.delete(todo_id)
    except StoreError as exc:
        logger.error("{}", exc)
        raise typer.Exit(1) from exc
    finally:
        store.close()
    if not deleted:
        logger.error("Todo '{}' not found.", todo_id)
        raise typer.Exit(1)
    typer.echo(f"Deleted {todo_id}")


@app.command()
def seed(data_dir: DataDirOption = None) -> None:
    """Add the sample todos."""
    store = _open_store(data_dir)
    try:
        created = seed_sample_todos(store)
    except StoreError as exc:
        logger.error("{}", exc)
        raise typer.Exit(1) from exc
    finally:
        store.close()
    typer.echo(f"Added {len(created)} sample todos")


@app.command(name="open")
def open_cmd(
    query: str = typer.Argument("", help="Palette search text"),
    status_filter: str = typer.Option("all", "--filter", "-f", help="all, open or done"),
    down: int = typer.Option(0, "--down", help="Press the down arrow this many times"),
    data_dir: DataDirOption = None,
) -> None:
    """Pick a todo in the palette and show it focused in the main list."""
    parsed = _parse_filter(status_filter)
    store = _open_store(data_dir)
    scheduler = ManualScheduler()
    bus = SelectionBus()
    todo_list = TodoList(store, bus, scheduler)
    palette = CommandPalette(store, bus, scheduler)
    try:
        palette.present()
        palette.query = query
        palette.status_filter = parsed
        scheduler.run_pending()
        for _ in range(down):
            palette.handle_key("down")
        chosen = palette.selection.confirm()
        if chosen is None:
            state = palette.empty_state()
            logger.error("{}", state.title if state else "Nothing to open.")
            raise typer.Exit(1)

        for todo in todo_list.todos:
            marker = ">" if todo.id == todo_list.focused_id.value else " "
            _echo_todo(todo, marker=marker)
    finally:
        palette.close()
        todo_list.close()
        store.close()


@app.command()
def serve() -> None:
    """Start the MCP server (stdio transport)."""
    from todo_palette.mcp.server import run_mcp_server

    run_mcp_server()

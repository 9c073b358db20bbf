"""Configuration constants for todo-palette."""

import os
from pathlib import Path

# Directory with data. First directory which is found is used.
DATA_DIRECTORIES: list[Path] = [
    Path("~/.local/share/todo-palette").expanduser(),
    Path("~/.todo-palette").expanduser(),
]

DATABASE_FILENAME = "todos.db"

# Quiet period before a search field or filter change triggers a fetch.
SEARCH_DEBOUNCE_SECONDS: float = 0.14

# Whether whitespace-only search text means "no text filter" (True) or "no matches" (False).
BLANK_QUERY_MATCHES_ALL: bool = os.environ.get(
    "TODO_PALETTE_BLANK_QUERY_MATCHES_ALL", "1"
).strip().lower() not in {"0", "false", "no", "off"}


def resolve_data_directory() -> Path:
    """Return the data directory: the env override, else the first existing candidate.

    Falls back to the first candidate when none exists yet.
    """
    override = os.environ.get("TODO_PALETTE_DATA_DIR")
    if override:
        return Path(override).expanduser()
    for candidate in DATA_DIRECTORIES:
        if candidate.is_dir():
            return candidate
    return DATA_DIRECTORIES[0]


def database_path(data_dir: Path | None = None) -> Path:
    return (data_dir or resolve_data_directory()) / DATABASE_FILENAME

"""
Configuration helpers for the document store and category set.
"""

from __future__ import annotations

import os
from pathlib import Path


DEFAULT_DB_PATH = "~/.docsift/docsift.duckdb"
ENV_DB_PATH = "DOCSIFT_DB_PATH"

ENV_CATEGORIES = "DOCSIFT_CATEGORIES"
UNCATEGORIZED = "Uncategorized"
DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Campaigns",
    "Research",
    "Strategy",
    "Budget",
    "Creative",
    "Analytics",
    "Legal",
    "Contracts",
    "Meeting Notes",
    "Reports",
    UNCATEGORIZED,
)


def resolve_db_path(override_path: str | None = None) -> str:
    """
    Resolve the DuckDB path from CLI override, env var, or default.

    Precedence:
    1) explicit override_path
    2) DOCSIFT_DB_PATH
    3) default path
    """
    raw_path = override_path or os.getenv(ENV_DB_PATH) or DEFAULT_DB_PATH
    resolved = Path(raw_path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


def resolve_categories(override: list[str] | None = None) -> tuple[str, ...]:
    """
    Resolve the known category set.

    The uncategorized sentinel is always part of the result so that
    classification can fall back to it.
    """
    if override:
        raw = override
    else:
        env_value = os.getenv(ENV_CATEGORIES, "")
        raw = env_value.split(",") if env_value.strip() else list(DEFAULT_CATEGORIES)

    categories: list[str] = []
    for name in raw:
        cleaned = name.strip()
        if cleaned and cleaned not in categories:
            categories.append(cleaned)
    if UNCATEGORIZED not in categories:
        categories.append(UNCATEGORIZED)
    return tuple(categories)

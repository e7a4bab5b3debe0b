"""CLI context management for settings and the per-command database."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from peopledb.config import DEFAULT_DATABASE_URL, ENV_DATABASE_URL, ENV_TABLE_NAME, Settings
from peopledb.core.engine import PeopleDB

T = TypeVar("T")


def get_database_url(url: str | None) -> str:
    """Resolve database URL from CLI arg, environment variable, or default.

    Priority:
    1. Explicit URL argument
    2. PEOPLEDB_URL environment variable
    3. Default: sqlite:///./peopledb.db
    """
    if url:
        return url
    if env_url := os.getenv(ENV_DATABASE_URL):
        return env_url
    return DEFAULT_DATABASE_URL


def get_table_name(name: str | None) -> str | None:
    """Resolve table name from CLI arg or PEOPLEDB_TABLE_NAME. There is no default."""
    return name or os.getenv(ENV_TABLE_NAME) or None


@dataclass
class CLIContext:
    """Shared context for CLI commands.

    Each command opens its own ``PeopleDB`` inside one event loop and closes
    it before returning.
    """

    database_url: str
    table_name: str | None
    json_output: bool
    echo: bool = False

    def settings(self) -> Settings:
        """Build settings; raises ConfigurationError if no table name is set."""
        return Settings.from_env(
            table_name=self.table_name,
            database_url=self.database_url,
            echo=self.echo,
        )

    def run(self, fn: Callable[[PeopleDB], Awaitable[T]]) -> T:
        """Run ``fn`` against a freshly opened database and close it afterwards."""
        settings = self.settings()

        async def runner() -> T:
            async with PeopleDB.from_settings(settings) as db:
                return await fn(db)

        return asyncio.run(runner())

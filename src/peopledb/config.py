"""Runtime configuration."""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, field_validator

from peopledb.exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./peopledb.db"

ENV_TABLE_NAME = "PEOPLEDB_TABLE_NAME"
ENV_DATABASE_URL = "PEOPLEDB_URL"
ENV_PAGE_SIZE = "PEOPLEDB_PAGE_SIZE"
ENV_MAX_RETRIES = "PEOPLEDB_MAX_RETRIES"


class Settings(BaseModel):
    """Process-wide settings, built once by the entry point."""

    table_name: str
    database_url: str = DEFAULT_DATABASE_URL
    page_size: int = Field(default=1000, ge=1)
    max_retries: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=0.05, ge=0)
    echo: bool = False

    @field_validator("table_name")
    @classmethod
    def _strip_table_name(cls, v: str) -> str:
        return v.strip()

    def model_post_init(self, __context: object) -> None:
        if not self.table_name:
            raise ConfigurationError(
                "table_name", f"Set {ENV_TABLE_NAME} or pass --table."
            )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: object,
    ) -> Settings:
        """Build settings from ``PEOPLEDB_*`` variables.

        Explicit ``overrides`` that are not None win over the environment.

        Raises:
            ConfigurationError: If no table name is configured or a numeric
                variable does not parse
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        if env.get(ENV_TABLE_NAME):
            values["table_name"] = env[ENV_TABLE_NAME]
        if env.get(ENV_DATABASE_URL):
            values["database_url"] = env[ENV_DATABASE_URL]
        for var, name in ((ENV_PAGE_SIZE, "page_size"), (ENV_MAX_RETRIES, "max_retries")):
            raw = env.get(var)
            if raw:
                try:
                    values[name] = int(raw)
                except ValueError as e:
                    raise ConfigurationError(name, f"{var} must be an integer, got '{raw}'.") from e

        values.update({k: v for k, v in overrides.items() if v is not None})
        if not values.get("table_name"):
            raise ConfigurationError("table_name", f"Set {ENV_TABLE_NAME} or pass --table.")
        return cls(**values)  # type: ignore[arg-type]

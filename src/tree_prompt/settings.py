from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from tree_prompt.matching import split_patterns

if TYPE_CHECKING:
    from collections.abc import Sequence

ENV_PREFIX = "TREE_PROMPT_"
ENV_KEYS = ("PATH", "EXCLUDE", "INCLUDE", "MAX_LENGTH")


class Settings(BaseModel):
    """Configuration of one tree_prompt run, built once and passed explicitly."""

    model_config = ConfigDict(frozen=True)

    root: Path = Field(default=Path(), description="Root directory to scan.")
    include: tuple[str, ...] = Field(
        default=(),
        description="Glob patterns to include; empty means every file.",
    )
    exclude: tuple[str, ...] = Field(default=(), description="Glob patterns to exclude.")
    max_lines: int = Field(
        default=0,
        description="Maximum number of lines per prompt part; 0 means no limit.",
    )
    output: Path | None = Field(default=None, description="Output file; stdout when unset.")
    log_file: str = Field(default="", description="Log file path.")
    log_level: str = Field(default="WARNING", description="Minimum log level.")

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def _split_patterns(cls, value: str | Sequence[str] | None) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, str):
            return tuple(split_patterns(value))
        return tuple(split_patterns([str(v) for v in value]))


def env_defaults(env_file: str | None = None) -> dict[str, str]:
    """Collect CLI defaults from a `.env` file and the process environment.

    The process environment wins over the file. Only the `TREE_PROMPT_*` keys
    are returned, with the prefix removed.

    Args:
        env_file (str | None): path of the `.env` file; looked up from the
            current directory upwards when None

    Returns:
        dict[str, str]: e.g. `{"EXCLUDE": "venv/**", "MAX_LENGTH": "400"}`
    """
    if env_file is None:
        env_file = find_dotenv(usecwd=True)
    values: dict[str, str] = {}
    if env_file:
        values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    values.update(os.environ)
    return {key: values[ENV_PREFIX + key] for key in ENV_KEYS if ENV_PREFIX + key in values}

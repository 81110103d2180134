from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, Field, SecretStr, field_validator

from repo_to_text.config import OUTPUT_FILENAME

ENV_FILE = find_dotenv(usecwd=True)
TOKEN_ENV_VAR = "GITHUB_TOKEN"


def token_from_env() -> SecretStr | None:
    """Look up a provider token in the environment, then in the `.env` file.

    Returns:
        SecretStr | None: the token, or None when neither source defines one.
    """
    value = os.environ.get(TOKEN_ENV_VAR) or (dotenv_values(ENV_FILE).get(TOKEN_ENV_VAR) if ENV_FILE else None)
    return SecretStr(value) if value else None


class Settings(BaseModel):
    """Configuration settings for one repo_to_text run."""

    repo_url: str = Field(..., min_length=1, description="Repository URL or direct .zip link.")
    ref: str | None = Field(default=None, description="Branch, tag or commit.")
    token: SecretStr | None = Field(
        default_factory=token_from_env,
        description="Access token for private repositories.",
    )
    include_separated: bool = Field(
        default=True,
        description="Also emit one .txt file per source file.",
    )
    output: Path = Field(default=Path(OUTPUT_FILENAME), description="Output zip path.")
    log_file: str = Field(default="", description="Log file path.")
    timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-request timeout in seconds (None: transport default).",
    )

    @field_validator("ref", mode="before")
    @classmethod
    def _blank_ref_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("token", mode="before")
    @classmethod
    def _blank_token_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

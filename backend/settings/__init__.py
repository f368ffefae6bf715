"""
Environment configuration for the dataset builder.

Values come from the process environment, with a ``.env`` file (if any) loaded
first through python-dotenv.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Literal, Mapping, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from adapter.grok import DEFAULT_MODEL
from adapter.models import parse_timestamp
from errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are the X user who wrote these posts. "
    "Reply to the user's message by freely tweeting whatever comes to mind."
)

# Earliest representable instant: no date filtering
EARLIEST_DATE = datetime.min.replace(tzinfo=timezone.utc)

# Environment variable -> Settings field
ENV_FIELDS = {
    "XAI_API_KEY": "api_key",
    "GROK_MODEL": "model",
    "DATE_FROM": "date_from",
    "SYSTEM_PROMPT": "system_prompt",
    "HOME": "home",
    "TWEET_DATA_PATHS": "manifest_path",
    "OUTPUT_DIR": "output_dir",
    "SYNTHESIS_REQUESTS_PER_WINDOW": "requests_per_window",
    "SYNTHESIS_WINDOW_SECONDS": "window_seconds",
    "SYNTHESIS_RATE_STRATEGY": "rate_strategy",
}


class Settings(BaseModel):
    api_key: str = Field(min_length=1, description="xAI API key")
    model: str = Field(default=DEFAULT_MODEL, min_length=1, description="Grok model used for prompt synthesis")
    date_from: datetime = Field(default=EARLIEST_DATE, description="Posts created before this are ignored")
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT, description="System message written to every record")
    home: str = Field(min_length=1, description="Home directory used to expand '~' in the manifest")
    manifest_path: str = Field(default="tweet-data-paths.txt", description="File listing archive fragments")
    output_dir: str = Field(default="out", description="Directory receiving the JSONL output")
    requests_per_window: int = Field(default=10, ge=1, description="Synthesis calls admitted per window")
    window_seconds: float = Field(default=2.0, gt=0, description="Admission window length")
    rate_strategy: Literal["sliding_window", "fixed_window"] = Field(default="sliding_window", description="Admission window strategy")

    @field_validator("date_from", mode="before")
    @classmethod
    def _parse_date_from(cls, value):
        return parse_timestamp(value)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        environ: Mapping to read instead of ``os.environ`` (no .env loading then)

    Raises:
        ConfigurationError: if a required value is missing or a value is invalid
    """
    if environ is None:
        load_dotenv(find_dotenv(usecwd=True))
        environ = os.environ

    values = {
        field: environ[key]
        for key, field in ENV_FIELDS.items()
        if environ.get(key, "") != ""
    }

    try:
        settings = Settings(**values)
    except ValidationError as e:
        error = e.errors()[0]
        field = str(error["loc"][0]) if error["loc"] else "?"
        key = next((k for k, f in ENV_FIELDS.items() if f == field), field)
        raise ConfigurationError(key, error["msg"]) from e

    logger.debug(f"Loaded settings (model={settings.model}, date_from={settings.date_from.isoformat()})")
    return settings


__all__ = ["Settings", "load_settings", "DEFAULT_SYSTEM_PROMPT", "EARLIEST_DATE"]

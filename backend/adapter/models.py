"""
Shared data models for the archive reader, timeline and dataset generator.
"""

from datetime import datetime, timezone
from typing import List, Literal

from pydantic import BaseModel, Field, field_validator

# Retweets in an archive are plain posts whose text starts with this marker
RESHARE_PREFIX = "RT @"

# Native archive format, e.g. "Wed Oct 10 20:19:24 +0000 2018"
ARCHIVE_TIME_FORMAT = "%a %b %d %H:%M:%S %z %Y"


def parse_timestamp(value) -> datetime:
    """
    Parse an archive timestamp into a timezone-aware datetime.

    Accepts datetimes, ISO-8601 strings and the archive's native
    ``created_at`` format. Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = datetime.strptime(text, ARCHIVE_TIME_FORMAT)
            except ValueError:
                raise ValueError(f"Unrecognized timestamp: {value!r}") from None
    else:
        raise ValueError(f"Expected a date string, got {type(value).__name__}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class UserMention(BaseModel):
    name: str
    screen_name: str
    id: str


class Url(BaseModel):
    url: str


class Entities(BaseModel):
    user_mentions: List[UserMention]
    urls: List[Url]


class Post(BaseModel):
    """
    A single post from the archive.

    Attributes:
        id: Unique post ID, used as the deduplication key
        created_at: When the post was created (timezone-aware)
        full_text: Full post text
        entities: Mentions and URLs (shape-checked only)
    """
    id: str = Field(description="Unique post ID")
    created_at: datetime = Field(description="When the post was created")
    full_text: str = Field(description="Full post text")
    entities: Entities = Field(description="Mentions and URLs attached to the post")

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, value):
        return parse_timestamp(value)

    @property
    def is_reshare(self) -> bool:
        return self.full_text.startswith(RESHARE_PREFIX)


class TweetWrapper(BaseModel):
    """One element of an archive fragment: ``{"tweet": {...}}``."""
    tweet: Post


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class TrainingRecord(BaseModel):
    """A fine-tuning example: system, user and assistant messages in that order."""
    messages: List[ChatMessage] = Field(min_length=3, max_length=3)

    @classmethod
    def build(cls, system_prompt: str, prompt: str, reply: str) -> "TrainingRecord":
        return cls(messages=[
            ChatMessage(role="system", content=system_prompt),
            ChatMessage(role="user", content=prompt),
            ChatMessage(role="assistant", content=reply),
        ])

    def to_line(self) -> str:
        """Serialize as a single JSON line (newline included)."""
        return self.model_dump_json() + "\n"


__all__ = [
    "RESHARE_PREFIX",
    "parse_timestamp",
    "UserMention",
    "Url",
    "Entities",
    "Post",
    "TweetWrapper",
    "ChatMessage",
    "TrainingRecord",
]

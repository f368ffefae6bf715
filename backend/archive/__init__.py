"""
Archive reader for X data exports.

An export ships its posts as one or more fragments. Each fragment is either a
plain JSON array of ``{"tweet": {...}}`` wrappers, or a ``.js`` script that
assigns that same array to a variable::

    window.YTD.tweets.part0 = [ {"tweet": {...}}, ... ]

The assignment prefix is stripped textually; file content is never executed.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List

from pydantic import TypeAdapter, ValidationError

from adapter.models import Post, TweetWrapper
from errors import ArchiveReadError, SchemaValidationError

logger = logging.getLogger(__name__)

SCRIPT_EXTENSION = ".js"

# "window.YTD.tweets.part0 = [" on the first line
_ASSIGNMENT_PREFIX = re.compile(r"^[^=\n]*= \[")

_WRAPPERS = TypeAdapter(List[TweetWrapper])


@dataclass
class Fragment:
    """Posts read from one archive file, in file order."""
    path: str
    posts: List[Post]


def read_manifest(path: str, home: str) -> List[str]:
    """
    Read the list of fragment paths.

    One path per line; blank lines are ignored and a leading ``~`` is
    replaced with ``home``.
    """
    try:
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise ArchiveReadError(path, str(e)) from e

    paths = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        if line.startswith("~"):
            line = home + line[1:]
        paths.append(line)
    return paths


def strip_assignment_prefix(content: str) -> str:
    """Turn ``name = [ ... ]`` into ``[ ... ]``."""
    return _ASSIGNMENT_PREFIX.sub("[", content, count=1)


def parse_fragment(content: str, path: str) -> List[Post]:
    """
    Parse and validate a fragment's content.

    The whole fragment is rejected if any element fails validation.

    Raises:
        SchemaValidationError: on malformed JSON or any invalid record
    """
    if os.path.splitext(path)[1] == SCRIPT_EXTENSION:
        content = strip_assignment_prefix(content)

    try:
        raw = json.loads(content)
    except json.JSONDecodeError as e:
        raise SchemaValidationError(path, f"not a JSON array literal ({e})") from e

    try:
        wrappers = _WRAPPERS.validate_python(raw)
    except ValidationError as e:
        raise SchemaValidationError(path, f"{e.error_count()} invalid field(s): {e.errors()[0]['msg']} at {e.errors()[0]['loc']}") from e

    return [wrapper.tweet for wrapper in wrappers]


def read_fragment(path: str) -> Fragment:
    """
    Read one fragment from disk.

    Raises:
        ArchiveReadError: if the file is missing or unreadable
        SchemaValidationError: if its content is invalid
    """
    try:
        with open(path, encoding="utf-8") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ArchiveReadError(path, str(e)) from e

    posts = parse_fragment(content, path)
    logger.debug(f"Read {len(posts)} posts from {path}")
    return Fragment(path=path, posts=posts)


def read_fragments(paths: Iterable[str]) -> Iterator[Fragment]:
    """Read fragments lazily, in the order given."""
    for path in paths:
        yield read_fragment(path)


__all__ = [
    "Fragment",
    "read_manifest",
    "strip_assignment_prefix",
    "parse_fragment",
    "read_fragment",
    "read_fragments",
]

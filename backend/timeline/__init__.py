"""
Timeline builder.

Merges the posts of every archive fragment into one chronological,
de-duplicated sequence:
- fragments are applied in the order they were supplied
- a later occurrence of an id overwrites an earlier one (last write wins)
- posts created before the cutoff are dropped per occurrence
- the result is sorted by created_at with a stable sort
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from adapter.models import Post
from archive import Fragment
from monitoring import MetricsCollector

logger = logging.getLogger(__name__)


class TimelineBuilder:
    """
    Accumulates posts keyed by id.

    Usage:
        builder = TimelineBuilder(start_date)
        for fragment in read_fragments(paths):
            builder.add_posts(fragment.posts)
        timeline = builder.build()
    """

    def __init__(self, start_date: datetime):
        self.start_date = start_date
        self._posts: Dict[str, Post] = {}
        self.dropped = 0

    def add_posts(self, posts: Iterable[Post]) -> int:
        """
        Insert or overwrite posts by id.

        Returns:
            Number of occurrences kept (new ids and overwrites)
        """
        kept = 0
        for post in posts:
            if post.created_at < self.start_date:
                self.dropped += 1
                continue
            # Overwrites keep the id's original slot
            self._posts[post.id] = post
            kept += 1
        return kept

    def __len__(self) -> int:
        return len(self._posts)

    def build(self) -> List[Post]:
        """Posts sorted ascending by created_at; ties keep insertion order."""
        return sorted(self._posts.values(), key=lambda p: p.created_at)


def build_timeline(
    fragments: Iterable[Fragment],
    start_date: datetime,
    metrics: Optional[MetricsCollector] = None
) -> List[Post]:
    """Merge fragments (in order) into the final ordered timeline."""
    builder = TimelineBuilder(start_date)
    fragment_count = 0

    for fragment in fragments:
        kept = builder.add_posts(fragment.posts)
        fragment_count += 1
        if metrics:
            metrics.record_fragment(len(fragment.posts))
        logger.info(f"Parsed {fragment.path}: {len(fragment.posts)} posts, {kept} kept")

    timeline = builder.build()
    if metrics:
        metrics.record_timeline(len(timeline))
    logger.info(f"Timeline built from {fragment_count} fragments: {len(timeline)} unique posts ({builder.dropped} before {start_date.date()})")
    return timeline


__all__ = ["TimelineBuilder", "build_timeline"]

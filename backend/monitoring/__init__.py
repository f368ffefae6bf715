"""
Run metrics for the dataset builder.

Tracks:
- Fragments and posts read
- How each timeline post was handled (skipped retweet, deterministic, synthesized)
- Synthesis failures and latency
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    Collects counters for a single run. Counters are lock-guarded.
    """

    def __init__(self):
        self._start_time = time.time()
        self._lock = threading.Lock()

        self.fragments = 0
        self.posts_read = 0
        self.timeline_posts = 0

        self.reshares_skipped = 0
        self.deterministic = 0
        self.synthesized = 0
        self.synthesis_errors = 0
        self._synthesis_latencies: List[float] = []

    def record_fragment(self, post_count: int) -> None:
        with self._lock:
            self.fragments += 1
            self.posts_read += post_count

    def record_timeline(self, post_count: int) -> None:
        with self._lock:
            self.timeline_posts = post_count

    def record_skip(self) -> None:
        with self._lock:
            self.reshares_skipped += 1

    def record_deterministic(self) -> None:
        with self._lock:
            self.deterministic += 1

    def record_synthesis(self, latency_ms: float, error: bool = False) -> None:
        with self._lock:
            if error:
                self.synthesis_errors += 1
            else:
                self.synthesized += 1
                self._synthesis_latencies.append(latency_ms)

    @property
    def records_written(self) -> int:
        return self.deterministic + self.synthesized

    def get_summary(self) -> Dict[str, Any]:
        """Get a snapshot of the run counters."""
        with self._lock:
            latencies = list(self._synthesis_latencies)
            return {
                "fragments": self.fragments,
                "posts_read": self.posts_read,
                "timeline_posts": self.timeline_posts,
                "reshares_skipped": self.reshares_skipped,
                "deterministic": self.deterministic,
                "synthesized": self.synthesized,
                "synthesis_errors": self.synthesis_errors,
                "records_written": self.deterministic + self.synthesized,
                "avg_synthesis_ms": round(sum(latencies) / len(latencies), 1) if latencies else 0.0,
                "elapsed_seconds": round(time.time() - self._start_time, 1),
            }

    def log_summary(self) -> None:
        summary = self.get_summary()
        logger.info(
            f"Run summary: {summary['records_written']} records "
            f"({summary['deterministic']} from retweets, {summary['synthesized']} synthesized), "
            f"{summary['reshares_skipped']} retweets skipped, {summary['synthesis_errors']} synthesis errors, "
            f"avg synthesis {summary['avg_synthesis_ms']}ms, {summary['elapsed_seconds']}s elapsed"
        )


__all__ = ["MetricsCollector"]

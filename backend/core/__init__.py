"""
Dataset generator.

Scans the ordered timeline and writes one training record per original post:
- retweets are skipped
- a post right after a retweet reuses the retweeted text as its prompt
  (deterministic, written immediately)
- every other post gets a prompt synthesized by Grok through the
  rate-limited queue (written when the call completes)
"""

from __future__ import annotations

import logging
import re
import time
from datetime import timedelta
from enum import Enum
from typing import Optional, Protocol, Sequence

from adapter.models import Post, TrainingRecord
from errors import OutputWriteError
from monitoring import MetricsCollector

from .scheduler import RateLimitedQueue, SYNTHESIS_CATEGORY, DEFAULT_SYNTHESIS_LIMIT
from .sink import JsonlSink

logger = logging.getLogger(__name__)

# A post following a retweet within this window answers the retweet
RESHARE_REPLY_WINDOW = timedelta(milliseconds=90_000)

_RESHARE_ATTRIBUTION = re.compile(r"^RT @.+?: ")


class PromptSynthesizer(Protocol):
    async def generate_prompt_async(self, text: str) -> str: ...


class Classification(str, Enum):
    """How a timeline post is turned into a record."""
    SKIP = "skip"
    DETERMINISTIC = "deterministic"
    SYNTHESIS = "synthesis"


def strip_reshare_attribution(text: str) -> str:
    """``"RT @handle: body"`` -> ``"body"``."""
    return _RESHARE_ATTRIBUTION.sub("", text, count=1)


def classify(timeline: Sequence[Post], index: int) -> Classification:
    """
    Classify ``timeline[index]`` using the post right before it.

    The gap is measured as previous minus current, so a retweet logged
    after the post always counts as within the window.
    """
    post = timeline[index]
    if post.is_reshare:
        return Classification.SKIP

    prev = timeline[index - 1] if index > 0 else None
    if (
        prev is not None
        and prev.is_reshare
        and prev.created_at - post.created_at < RESHARE_REPLY_WINDOW
    ):
        return Classification.DETERMINISTIC

    return Classification.SYNTHESIS


class DatasetGenerator:
    """
    Writes training records for a timeline to a JsonlSink.

    Usage:
        generator = DatasetGenerator(grok_adapter, system_prompt, sink)
        await generator.run(timeline)   # returns once every record is written
        sink.close()
    """

    def __init__(
        self,
        synthesizer: PromptSynthesizer,
        system_prompt: str,
        sink: JsonlSink,
        queue: Optional[RateLimitedQueue] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.synthesizer = synthesizer
        self.system_prompt = system_prompt
        self.sink = sink
        self.queue = queue or RateLimitedQueue()
        self.metrics = metrics or MetricsCollector()
        self._write_error: Optional[OutputWriteError] = None

    async def run(self, timeline: Sequence[Post]) -> None:
        """
        Classify every post, then wait for all queued synthesis to settle.

        Raises:
            OutputWriteError: if any record could not be written, once the
                queue has drained
        """
        try:
            for index, post in enumerate(timeline):
                kind = classify(timeline, index)

                if kind is Classification.SKIP:
                    self.metrics.record_skip()
                elif kind is Classification.DETERMINISTIC:
                    prompt = strip_reshare_attribution(timeline[index - 1].full_text)
                    self.sink.write(TrainingRecord.build(self.system_prompt, prompt, post.full_text))
                    self.metrics.record_deterministic()
                else:
                    self.queue.add(lambda post=post: self._synthesize(post))
        finally:
            if self.queue.pending:
                logger.info(f"Waiting for {self.queue.pending} prompt synthesis tasks...")
            await self.queue.on_idle()

        if self._write_error is not None:
            raise self._write_error

    async def _synthesize(self, post: Post) -> None:
        start_time_ms = time.time() * 1000
        try:
            prompt = await self.synthesizer.generate_prompt_async(post.full_text)
        except Exception as e:
            latency_ms = (time.time() * 1000) - start_time_ms
            self.metrics.record_synthesis(latency_ms, error=True)
            logger.warning(f"Dropping post {post.id}: {e}")
            return

        latency_ms = (time.time() * 1000) - start_time_ms
        try:
            self.sink.write(TrainingRecord.build(self.system_prompt, prompt, post.full_text))
        except OutputWriteError as e:
            # Fatal for the run; raised from run() after the queue drains
            if self._write_error is None:
                self._write_error = e
            logger.error(f"Failed to write record for post {post.id}: {e}")
            return
        self.metrics.record_synthesis(latency_ms)


async def generate_dataset(
    timeline: Sequence[Post],
    synthesizer: PromptSynthesizer,
    system_prompt: str,
    output_dir: str,
    queue: Optional[RateLimitedQueue] = None,
    metrics: Optional[MetricsCollector] = None,
) -> str:
    """
    Write the dataset for ``timeline`` into a new file under ``output_dir``.

    The output file is closed only after every synthesis task has settled.

    Returns:
        Path of the written JSONL file
    """
    sink = JsonlSink.create(output_dir)
    generator = DatasetGenerator(synthesizer, system_prompt, sink, queue=queue, metrics=metrics)
    try:
        await generator.run(timeline)
    finally:
        sink.close()
    logger.info(f"Saved to {sink.path}")
    return sink.path


__all__ = [
    "Classification",
    "DatasetGenerator",
    "JsonlSink",
    "PromptSynthesizer",
    "RateLimitedQueue",
    "RESHARE_REPLY_WINDOW",
    "SYNTHESIS_CATEGORY",
    "DEFAULT_SYNTHESIS_LIMIT",
    "classify",
    "generate_dataset",
    "strip_reshare_attribution",
]

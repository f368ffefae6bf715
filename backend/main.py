"""
X archive -> fine-tuning dataset builder.

Run with:
    python main.py [--manifest tweet-data-paths.txt] [--output-dir out]
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from adapter.grok import GrokAdapter
from adapter.rate_limiter import RateLimitConfig, RateLimiter
from archive import read_fragments, read_manifest
from core import RateLimitedQueue, SYNTHESIS_CATEGORY, generate_dataset
from errors import DatasetError
from monitoring import MetricsCollector
from settings import Settings, load_settings
from timeline import build_timeline

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build a fine-tuning dataset from an X archive export")
    parser.add_argument("--manifest", help="File listing archive fragments, one per line (default: $TWEET_DATA_PATHS)")
    parser.add_argument("--output-dir", help="Directory for the JSONL output (default: $OUTPUT_DIR)")
    return parser.parse_args(argv)


async def build_dataset(settings: Settings, manifest_path: str, output_dir: str) -> str:
    """Read the archive, build the timeline and write the dataset. Returns the output path."""
    metrics = MetricsCollector()

    paths = read_manifest(manifest_path, settings.home)
    listing = "\n".join(f"  - {p}" for p in paths)
    logger.info(f"Found {len(paths)} tweet data files\n{listing}")

    logger.info("Start parsing...")
    timeline = build_timeline(read_fragments(paths), settings.date_from, metrics=metrics)

    rate_limiter = RateLimiter()
    rate_limiter.configure_limit(SYNTHESIS_CATEGORY, RateLimitConfig(
        requests_per_window=settings.requests_per_window,
        window_seconds=settings.window_seconds,
        strategy=settings.rate_strategy
    ))
    queue = RateLimitedQueue(rate_limiter)
    grok_adapter = GrokAdapter(api_key=settings.api_key, model=settings.model)

    logger.info("Start generating...")
    output_path = await generate_dataset(
        timeline,
        grok_adapter,
        settings.system_prompt,
        output_dir,
        queue=queue,
        metrics=metrics,
    )
    metrics.log_summary()
    return output_path


def run(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = load_settings()
        asyncio.run(build_dataset(
            settings,
            manifest_path=args.manifest or settings.manifest_path,
            output_dir=args.output_dir or settings.output_dir,
        ))
    except DatasetError as e:
        logger.error(str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(run())

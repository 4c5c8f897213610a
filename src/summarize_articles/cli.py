"""CLI for summarizing saved articles that have no summary yet."""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace

from common.cli_helpers import load_cli_config, parse_positive_int, setup_logging
from common.config import set_config
from common.errors import ArticleFetchError, StoreError
from summarize_articles.summarize_articles import run_summarization

setup_logging()
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        default=None,
        help="Config name in configs/ or path to a YAML file (default: $DIGEST_CONFIG or prod)",
    )
    parser.add_argument(
        "--user-id",
        type=lambda v: parse_positive_int(v, "user-id"),
        default=None,
        help="Only summarize this user's articles (default: all users)",
    )
    parser.add_argument(
        "--concurrency-limit",
        type=lambda v: parse_positive_int(v, "concurrency-limit"),
        default=None,
        help="Articles summarized concurrently (default: from config)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    config = load_cli_config(args.config)
    if args.concurrency_limit is not None:
        config = replace(
            config,
            summarizer=replace(config.summarizer, concurrency_limit=args.concurrency_limit),
        )
    set_config(config)
    logging.getLogger().setLevel(config.log_level.upper())

    try:
        result = asyncio.run(run_summarization(config, user_id=args.user_id))
    except (ArticleFetchError, StoreError) as e:
        logger.error("Article summarization failed: %s", e)
        raise SystemExit(1) from e

    logger.info(
        "Processed %d articles: %d succeeded, %d failed (%d ms)",
        result.processed_articles,
        result.successful_articles,
        result.failed_articles,
        result.processing_time_ms,
    )


if __name__ == "__main__":
    main()

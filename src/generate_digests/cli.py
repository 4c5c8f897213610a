"""CLI for generating daily digests (summary text plus audio) for all users."""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone

from article_store.connection import ArticleStore
from common.cli_helpers import (
    load_cli_config,
    parse_date,
    parse_positive_int,
    save_jsonl_local,
    setup_logging,
)
from common.config import PipelineConfig, set_config
from common.errors import StoreError
from common.serialization import serialize_dataclass
from generate_digests.batch import BatchResult, run_batch

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
        "--date",
        type=lambda v: parse_date(v, "date"),
        default=None,
        help="Digest date (UTC, YYYY-MM-DD; default: today)",
    )
    parser.add_argument(
        "--user-id",
        type=lambda v: parse_positive_int(v, "user-id"),
        action="append",
        default=None,
        help="Only build digests for this user (repeatable; default: all eligible users)",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before running",
    )
    parser.add_argument("--load-local", action="store_true", help="Save per-user results to a local file")
    return parser.parse_args(argv)


async def _create_schema(config: PipelineConfig) -> None:
    async with ArticleStore(config.database_url) as store:
        await store.create_schema()
    logger.info("Article store schema is up to date")


def _result_records(result: BatchResult) -> list[dict]:
    records = [
        {"user_id": user_id, "status": "ok", **serialize_dataclass(digest)}
        for user_id, digest in result.results.items()
    ]
    records.extend(
        {
            "user_id": failure.user_id,
            "status": "partial" if failure.partial else "failed",
            "error": failure.error,
        }
        for failure in result.failures
    )
    return records


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    config = load_cli_config(args.config)
    set_config(config)
    logging.getLogger().setLevel(config.log_level.upper())

    try:
        if args.create_schema:
            asyncio.run(_create_schema(config))
        result = asyncio.run(run_batch(config, target_date=args.date, user_ids=args.user_id))
    except StoreError as e:
        logger.error("Daily digest batch failed: %s", e)
        raise SystemExit(1) from e

    logger.info(
        "Users: %d total, %d succeeded, %d failed, %d without audio",
        result.total_users,
        result.successful_users,
        result.failed_users,
        result.partial_users,
    )

    if args.load_local:
        filepath = save_jsonl_local(
            _result_records(result),
            "daily_digests",
            datetime.now(timezone.utc),
            output_dir=config.storage.output_dir,
        )
        logger.info("Saved %d digest results to %s", len(result.results) + len(result.failures), filepath)


if __name__ == "__main__":
    main()

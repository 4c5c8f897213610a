"""CLI for managing the article URLs on a user's reading list."""

from __future__ import annotations

import argparse
import asyncio
import logging

from article_store.repository import ArticleRecord
from common.cli_helpers import load_cli_config, parse_positive_int, setup_logging
from common.config import PipelineConfig, set_config
from common.errors import StoreError
from save_articles.save_articles import (
    list_articles_for_user,
    open_repository,
    remove_saved_article,
    save_article_for_user,
    update_saved_article,
)

setup_logging()
logger = logging.getLogger(__name__)


def _article_id(value: str) -> int:
    return parse_positive_int(value, "id")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        default=None,
        help="Config name in configs/ or path to a YAML file (default: $DIGEST_CONFIG or prod)",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before running the command",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Save a URL for a user")
    add.add_argument("--uid", required=True, help="External user id (created if missing)")
    add.add_argument("--name", default="", help="Display name for a new user")
    add.add_argument("--url", required=True, help="Article URL to save")
    add.add_argument("--title", default=None, help="Title to store instead of fetching it")

    list_cmd = commands.add_parser("list", help="Show the saved articles of a user")
    list_cmd.add_argument("--uid", required=True, help="External user id")

    find = commands.add_parser("find", help="Show one saved article")
    find.add_argument("--id", type=_article_id, required=True, help="Article id")

    update = commands.add_parser("update", help="Replace the URL of a saved article")
    update.add_argument("--id", type=_article_id, required=True, help="Article id")
    update.add_argument("--url", required=True, help="New article URL")
    update.add_argument("--title", default=None, help="Title to store instead of fetching it")

    remove = commands.add_parser("remove", help="Delete a saved article")
    remove.add_argument("--id", type=_article_id, required=True, help="Article id")

    return parser.parse_args(argv)


def _format(article: ArticleRecord) -> str:
    return f"{article.id}\t{article.url}\t{article.title or ''}\t{article.created_at.isoformat()}"


async def run_command(args: argparse.Namespace, config: PipelineConfig) -> bool:
    """Run one subcommand. Returns False when its target was not found."""
    async with open_repository(config, args.create_schema) as repository:
        if args.command == "add":
            article = await save_article_for_user(
                repository, args.uid, args.url, name=args.name, title=args.title
            )
            if article is None:
                print(f"Already saved: {args.url}")
            else:
                print(_format(article))
            return True

        if args.command == "list":
            articles = await list_articles_for_user(repository, args.uid)
            if not articles:
                print("No saved articles.")
            for article in articles:
                print(_format(article))
            return True

        if args.command == "find":
            article = await repository.get_article(args.id)
        elif args.command == "update":
            article = await update_saved_article(repository, args.id, args.url, title=args.title)
        else:
            removed = await remove_saved_article(repository, args.id)
            if removed:
                print(f"Removed article {args.id}")
            return removed

    if article is None:
        print(f"Article {args.id} not found.")
        return False
    print(_format(article))
    return True


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    config = load_cli_config(args.config)
    set_config(config)
    logging.getLogger().setLevel(config.log_level.upper())

    try:
        found = asyncio.run(run_command(args, config))
    except (ValueError, StoreError) as e:
        logger.error("%s failed: %s", args.command, e)
        raise SystemExit(1) from e

    if not found:
        raise SystemExit(1)


if __name__ == "__main__":
    main()

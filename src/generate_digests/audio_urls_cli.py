"""CLI for looking up, checking and deleting digest audio in S3."""

from __future__ import annotations

import argparse
import logging

from botocore.exceptions import BotoCoreError, ClientError

from common.cli_helpers import load_cli_config, parse_positive_int, setup_logging
from common.config import set_config
from generate_digests.audio_urls import AudioFileUrl, AudioUrlService

setup_logging()
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--config",
        default=None,
        help="Config name in configs/ or path to a YAML file (default: $DIGEST_CONFIG or prod)",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--digest-id",
        type=lambda v: parse_positive_int(v, "digest-id"),
        help="Digest whose audio parts to sign (requires --user-id)",
    )
    target.add_argument(
        "--all",
        action="store_true",
        help="Sign every audio file of --user-id, newest first",
    )
    target.add_argument("--locator", nargs="+", help="s3:// audio locators to sign")
    target.add_argument("--delete", metavar="LOCATOR", help="Delete one s3:// audio locator")
    parser.add_argument(
        "--user-id",
        type=lambda v: parse_positive_int(v, "user-id"),
        default=None,
        help="Owner of the digest",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="With --digest-id, only report whether audio exists (exit 1 when it does not)",
    )
    args = parser.parse_args(argv)
    if (args.digest_id is not None or args.all) and args.user_id is None:
        parser.error("--digest-id and --all require --user-id")
    if args.check and args.digest_id is None:
        parser.error("--check requires --digest-id")
    return args


def _print_files(files: list[AudioFileUrl]) -> None:
    for audio_file in files:
        print(f"{audio_file.key}\t{audio_file.signed_url}")


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    config = load_cli_config(args.config)
    set_config(config)
    logging.getLogger().setLevel(config.log_level.upper())

    try:
        service = AudioUrlService(
            bucket=config.storage.bucket,
            audio_prefix=config.storage.audio_prefix,
            url_expiration_minutes=config.storage.url_expiration_minutes,
        )

        if args.check:
            found = service.has_audio_files(args.user_id, args.digest_id)
            print("yes" if found else "no")
            if not found:
                raise SystemExit(1)
            return

        if args.delete:
            if not service.delete_audio_file(args.delete):
                raise SystemExit(1)
            print(f"Deleted {args.delete}")
            return

        if args.locator:
            files = service.get_signed_urls(args.locator)
            if not files:
                raise SystemExit(1)
        elif args.all:
            files = service.list_user_audio_urls(args.user_id)
        else:
            files = service.list_digest_audio_urls(args.user_id, args.digest_id)
    except (ValueError, BotoCoreError, ClientError) as e:
        logger.error("Audio lookup failed: %s", e)
        raise SystemExit(1) from e

    _print_files(files)
    logger.info("URLs expire in %d minutes", service.url_expiration_minutes)


if __name__ == "__main__":
    main()

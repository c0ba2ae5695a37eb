"""Group gallery downloader. Use --help for usage."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from gallery_core.download import MediaDownloader, create_session
from gallery_core.errors import AuthError, ConfigurationError, GalleryError
from gallery_core.logging import generate_cycle_id, set_log_context, setup_logging
from gallery_core.paths import ORGANIZE_MODES
from groupme_gallery.api_client import GroupMeApiClient
from groupme_gallery.config import GalleryConfig, load_config
from groupme_gallery.listing import list_groups
from groupme_gallery.pipeline import GalleryPipeline, resolve_token
from groupme_gallery.queue_store import JsonQueueStore
from groupme_gallery.scheduler import MAX_CONCURRENCY, MIN_CONCURRENCY, DrainResult, DrainScheduler

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="groupme-gallery",
        description="Download every image posted in one or more GroupMe groups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Download one group (token stored for later runs)
    python -m groupme_gallery --token $GROUPME_TOKEN --group 12345678

    # Several groups, five downloads at a time, sorted into year/month folders
    python -m groupme_gallery --group 111 --group 222 --parallel 5 --organize date

    # Show the groups the token can see
    python -m groupme_gallery --list-groups
        """,
    )

    parser.add_argument(
        "--token",
        default=None,
        help="API access token (default: GROUPME_TOKEN, config file, or the stored token)",
    )
    parser.add_argument(
        "--group",
        "-g",
        dest="groups",
        action="append",
        default=[],
        metavar="GROUP_ID",
        help="Group to download; repeat for several groups",
    )
    parser.add_argument(
        "--all-groups",
        action="store_true",
        help="Download every group the token can see",
    )
    parser.add_argument(
        "--list-groups",
        action="store_true",
        help="Print the groups the token can see and exit",
    )
    parser.add_argument(
        "--parallel",
        "-p",
        dest="concurrency",
        type=int,
        default=None,
        help=f"Concurrent downloads, {MIN_CONCURRENCY}-{MAX_CONCURRENCY} (default: 3)",
    )
    parser.add_argument(
        "--output",
        "-o",
        dest="output_dir",
        default=None,
        help="Output directory (default: ./media)",
    )
    parser.add_argument(
        "--store",
        dest="store_path",
        default=None,
        help="Queue file location (default: ./data/queue.json)",
    )
    parser.add_argument(
        "--organize",
        choices=list(ORGANIZE_MODES),
        default=None,
        help="Folder layout inside each group folder (default: flat)",
    )
    parser.add_argument(
        "--relist",
        action="store_true",
        help="Discard any stored queue for the groups and list them again",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.yaml (default: ./config.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Console logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Log directory path (default: ./logs)",
    )
    parser.add_argument(
        "--log-to-stdout",
        action="store_true",
        help="Send all log output to stdout only, skipping the log file",
    )

    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict:
    return {
        "token": args.token,
        "concurrency": args.concurrency,
        "output_dir": args.output_dir,
        "store_path": args.store_path,
        "organize": args.organize,
        "log_level": args.log_level,
        "log_dir": args.log_dir,
    }


def _print_summary(results: dict[str, DrainResult]) -> None:
    for group_id, result in results.items():
        print(
            f"{group_id}: {result.success_count} downloaded, "
            f"{result.failure_count} failed ({result.skipped_count} skipped)"
        )


async def run(args: argparse.Namespace, config: GalleryConfig) -> int:
    store = JsonQueueStore(config.store_path)
    token = await resolve_token(store, config.token or None)

    async with create_session(max_connections_per_host=config.concurrency) as session:
        async with GroupMeApiClient(
            token,
            base_url=config.api_base_url,
            session=session,
            retry_config=config.listing_retry,
        ) as client:
            if args.list_groups:
                for group in await list_groups(client):
                    print(f"{group.id}\t{group.name}")
                return EXIT_OK

            group_ids = list(dict.fromkeys(args.groups))
            if args.all_groups:
                group_ids += [g.id for g in await list_groups(client) if g.id not in group_ids]
            if not group_ids:
                logger.error("No groups given: use --group, --all-groups or --list-groups")
                return EXIT_FAILURE

            scheduler = DrainScheduler(
                store=store,
                downloader=MediaDownloader(session=session),
                base_dir=config.output_dir,
                concurrency=config.concurrency,
                timeout_seconds=config.download_timeout_seconds,
                pacing_delay_seconds=config.pacing_delay_seconds,
                organize=config.organize,
                progress_interval_seconds=config.progress_interval_seconds,
            )
            pipeline = GalleryPipeline(
                store=store,
                api_client=client,
                scheduler=scheduler,
                page_limit=config.page_limit,
                relist=args.relist,
            )
            results = await pipeline.run(group_ids)

    _print_summary(results)
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    global logger

    load_dotenv()
    args = parse_args(argv)

    try:
        config = load_config(args.config, overrides=_cli_overrides(args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    setup_logging(
        name="groupme_gallery",
        stage="gallery",
        log_dir=Path(config.log_dir),
        json_format=config.json_logs,
        console_level=getattr(logging, config.log_level),
        log_to_stdout=args.log_to_stdout,
    )
    logger = logging.getLogger(__name__)
    set_log_context(cycle_id=generate_cycle_id())

    try:
        return asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted; queue progress is saved, run again to resume")
        return EXIT_FAILURE
    except AuthError as e:
        logger.error(f"Authentication failed: {e}")
        return EXIT_FAILURE
    except GalleryError as e:
        logger.error(f"Run aborted: {e}", extra={"error_category": e.category.value})
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())

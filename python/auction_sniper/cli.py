"""Command-line interface for auction-sniper.

Usage:
    auction-sniper run [ITEM ...] [--sniper-id=ID] [--stop-price=N] [--dashboard]
    auction-sniper status
    auction-sniper version
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from .config import load_config
from .orchestrator import Orchestrator


def setup_logging(level: str = "INFO", log_file: str = None) -> None:
    """Configure logging."""
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=handlers,
    )


def cmd_run(args: argparse.Namespace) -> int:
    """Snipe the given items until their auctions close."""
    config = load_config(args.config)

    sniper_id = args.sniper_id or os.environ.get("SNIPER_ID")
    if sniper_id:
        config.sniper.sniper_id = sniper_id
    if args.stop_price is not None:
        config.sniper.stop_price = args.stop_price
    if args.dashboard:
        config.dashboard.enabled = True

    items = args.items or config.sniper.items
    if not items:
        print("Error: no items to snipe")
        print("Pass item ids on the command line or set sniper.items in the config")
        return 1

    # Setup logging
    log_level = os.environ.get("LOG_LEVEL", config.logging.level)
    log_file = os.environ.get("LOG_FILE", config.logging.log_file)
    setup_logging(log_level, log_file)

    logger = logging.getLogger(__name__)
    logger.info(f"Sniping {len(items)} item(s) as {config.sniper.sniper_id}")

    orchestrator = Orchestrator(config)

    try:
        asyncio.run(orchestrator.run(items))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")

    # Print final status
    print("\nFinal Status:")
    for snapshot in orchestrator.collector.snapshots():
        print(
            f"  {snapshot.item_id}: {snapshot.state.display_text} "
            f"(last price {snapshot.last_price}, last bid {snapshot.last_bid})"
        )
    for item_id in orchestrator.state.failed_items:
        print(f"  {item_id}: not started")

    return 0 if not orchestrator.state.failed_items else 2


def cmd_status(args: argparse.Namespace) -> int:
    """Show configuration summary."""
    print("Auction Sniper Status")
    print("=" * 40)
    print("No running instance detected")
    print("\nConfiguration:")

    config = load_config(args.config)
    print(f"  Sniper id: {config.sniper.sniper_id}")
    stop_price = config.sniper.stop_price
    print(f"  Stop price: {stop_price if stop_price is not None else 'none'}")
    print(f"  Items: {', '.join(config.sniper.items) or 'none'}")
    print(f"  Auction URL: {config.auction.url_template}")
    print(f"  Dashboard: {'enabled' if config.dashboard.enabled else 'disabled'}")

    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    from . import __version__
    print(f"auction-sniper version {__version__}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="auction-sniper",
        description="Automated last-moment bidding across live auctions",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to config file",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Snipe auction items")
    run_parser.add_argument(
        "items",
        nargs="*",
        help="Item ids to snipe (default: sniper.items from config)",
    )
    run_parser.add_argument(
        "--sniper-id",
        default=None,
        help="Bidder identity of this sniper",
    )
    run_parser.add_argument(
        "--stop-price",
        type=int,
        default=None,
        help="Highest bid to place (default: no limit)",
    )
    run_parser.add_argument(
        "--dashboard",
        action="store_true",
        help="Serve the status dashboard while sniping",
    )
    run_parser.set_defaults(func=cmd_run)

    # status command
    status_parser = subparsers.add_parser("status", help="Show configuration")
    status_parser.set_defaults(func=cmd_status)

    # version command
    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

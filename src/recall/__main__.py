"""Recall entry point.

Usage:
    python -m recall [OPTIONS] COMMAND

Options:
    --config PATH    Path to YAML config file
    --profile NAME   Profile name (dev, prod, test)
    --dry-run        Load config and exit
    --version        Show version
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .config import RecallConfig
from .config.loader import load_config
from .config.profiles import detect_profile
from .errors import RecallError

# Load .env from the project root (parent of src/), falling back to the cwd
_env_file = Path(__file__).parent.parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    load_dotenv()


def setup_logging(level: str) -> None:
    """Configure logging based on config."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="recall",
        description="Recall - local-first relationship memory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m recall init                       # Create the database
  python -m recall --profile prod status      # Row counts per table
  python -m recall export --output dump.json  # JSON dump of every table

Environment:
  RECALL_PROFILE         Set profile (dev, prod, test)
  RECALL_API_URL         Backend URL
  RECALL_API_TOKEN       Backend bearer token
  ANTHROPIC_API_KEY      Key for the claude extraction provider
""",
    )

    parser.add_argument("--config", type=Path, help="Path to YAML config file", metavar="PATH")
    parser.add_argument(
        "--profile",
        choices=["dev", "prod", "test"],
        help="Configuration profile to use",
    )
    parser.add_argument("--version", action="version", version=f"Recall v{__version__}")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load config and exit (for testing)",
    )

    commands = parser.add_subparsers(dest="command")
    commands.add_parser("init", help="Create the database")
    commands.add_parser("status", help="Show row counts per table")
    export = commands.add_parser("export", help="Export every table as JSON")
    export.add_argument("--output", type=Path, metavar="PATH", help="Write to file instead of stdout")
    commands.add_parser("history", help="List the question history")
    commands.add_parser("reminders", help="List pending reminders")
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    return build_parser().parse_args(argv)


def _load(args: argparse.Namespace) -> RecallConfig:
    if args.config:
        return load_config(path=args.config)
    if args.profile:
        return load_config(profile=args.profile)
    return load_config(profile=detect_profile().value)


def run_command(args: argparse.Namespace, config: RecallConfig) -> int:
    """Run a subcommand against the configured store."""
    from .app import RecallApp
    from .reminders.notifications import LocalNotificationCenter

    if args.command == "reminders":
        center = LocalNotificationCenter(config.storage.notifications_path)
        pending = center.list_pending()
        if not pending:
            print("No pending reminders")
        for notification in pending:
            print(f"{notification.trigger.isoformat()}  {notification.content.body}")
        return 0

    app = RecallApp.from_config(config)
    try:
        if args.command == "init":
            print(f"Database ready at {app.store.db.path}")
        elif args.command == "status":
            for table, count in app.store.db.counts().items():
                print(f"{table:16} {count}")
        elif args.command == "export":
            text = json.dumps(app.store.db.export(), indent=2)
            if args.output:
                args.output.write_text(text)
                print(f"Exported to {args.output}")
            else:
                print(text)
        elif args.command == "history":
            entries = app.recent_questions()
            if not entries:
                print("No questions yet")
            for entry in entries:
                about = f" ({entry.related_contact_name})" if entry.related_contact_name else ""
                print(f"{entry.date:%Y-%m-%d %H:%M}  {entry.question}{about}")
                print(f"    {entry.answer_summary}")
    finally:
        app.close()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for Recall.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = parse_args(argv)

    try:
        config = _load(args)
    except FileNotFoundError as e:
        print(f"Error: Config file not found: {e}", file=sys.stderr)
        return 1
    except (TypeError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging.level)
    logger = logging.getLogger("recall")

    logger.info(f"Recall v{__version__}")
    logger.info(f"Profile: {args.profile or detect_profile().value}")
    logger.info(f"Log level: {config.logging.level}")

    if args.dry_run:
        logger.info("Dry run mode - exiting after config load")
        logger.info(f"Data dir: {config.storage.base_path}")
        logger.info(f"API: {config.api.base_url}")
        logger.info(f"Extraction: {config.extraction.provider}")
        return 0

    if not args.command:
        build_parser().print_help()
        return 1

    try:
        return run_command(args, config)
    except (RecallError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
CLI Router for the article aggregator.

Routes `<command> <subcommand>` invocations to the command classes.
"""

import argparse
import logging
import sys
from typing import Optional, List

from aggregator.config import ConfigManager
from aggregator.exceptions import ConfigurationError
from aggregator.models.source import FetchStrategyKind
from commands import get_command, COMMANDS

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for aggregation commands.

    Command structure:
    - python run.py news fetch --sources "Rust Blog" GIGAZINE --verbose
    - python run.py news fetch --similarity 0.9 --window-minutes 60 --json
    - python run.py sources list
    - python run.py sources check --sources TechCrunch
    """

    def __init__(self):
        """Initialize CLI router."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description="Multi-source tech article aggregator",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )
        parser.add_argument('--env-file', default='.env', help='Environment file to load (default: .env)')

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_news_parser(subparsers)
        self._add_sources_parser(subparsers)

        return parser

    def _add_news_parser(self, subparsers):
        """Add news command parser."""
        news_parser = subparsers.add_parser(
            'news',
            help='Fetch, deduplicate and tag articles'
        )

        news_subparsers = news_parser.add_subparsers(
            dest='subcommand',
            help='News operations',
            metavar='{fetch}'
        )

        fetch_parser = news_subparsers.add_parser('fetch', help='Fetch articles from all (or selected) sources')
        fetch_parser.add_argument('--sources', nargs='+', default=None, help='Source names to fetch (default: all)')
        fetch_parser.add_argument('--similarity', type=float, default=None, help='Title similarity threshold for deduplication (default: from config)')
        fetch_parser.add_argument('--window-minutes', type=int, default=None, help='Deduplication time window in minutes (default: from config)')
        fetch_parser.add_argument('--no-dedupe', action='store_true', help='Skip deduplication')
        fetch_parser.add_argument('--fetch-content', action='store_true', help='Also fetch article bodies for feed sources')
        fetch_parser.add_argument('--json', action='store_true', help='Print the run report as JSON')
        fetch_parser.add_argument('--summary-only', action='store_true', help='Print only failures and the summary')
        fetch_parser.add_argument('--verbose', action='store_true', help='Verbose output')

    def _add_sources_parser(self, subparsers):
        """Add sources command parser."""
        sources_parser = subparsers.add_parser(
            'sources',
            help='Inspect configured sources'
        )

        sources_subparsers = sources_parser.add_subparsers(
            dest='subcommand',
            help='Source operations',
            metavar='{list,check}'
        )

        list_parser = sources_subparsers.add_parser('list', help='List registered sources')
        list_parser.add_argument('--strategy', choices=[kind.value for kind in FetchStrategyKind], default=None, help='Only list sources using this strategy')

        check_parser = sources_subparsers.add_parser('check', help='Check that source URLs respond')
        check_parser.add_argument('--sources', nargs='+', default=None, help='Source names to check (default: all)')

    def _get_examples_text(self) -> str:
        """Get examples text for help."""
        return """
Examples:
  # Fetch everything with the configured defaults
  python run.py news fetch

  # Selected sources, stricter deduplication, JSON output
  python run.py news fetch --sources "Rust Blog" TechCrunch --similarity 0.9 --json
  python run.py news fetch --window-minutes 60 --verbose
  python run.py news fetch --no-dedupe --summary-only

  # Sources
  python run.py sources list --strategy feed
  python run.py sources check --sources GIGAZINE

"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        """Handle command structure."""
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            try:
                self.parser.parse_args([args.command, '--help'])
            except SystemExit:
                pass
            return 1

        try:
            config_manager = ConfigManager(env_file_path=args.env_file)
            if getattr(args, 'verbose', False):
                logging.getLogger().setLevel(logging.DEBUG)
            else:
                config_manager.update_logging()
            command = get_command(args.command, config_manager=config_manager)
            return command.execute(subcommand, args)
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            return 78
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    router = CLIRouter()
    return router.route_command(args)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)

#!/usr/bin/env python3
"""
Quiver to Obsidian Migration Tool - Main CLI Entry Point

This script provides the command-line interface for converting a Quiver
library (.qvlibrary) into an Obsidian vault: a directory tree of markdown
files with YAML front matter, wikilinks between notes and sidecar resources.
"""

import argparse
import logging
import sys
from typing import List, Optional

import yaml

from config_loader import ConfigLoader, get_nested
from errors import MigrationError
from logger import log_config, log_section, setup_logging
from models import ResourceLayout
from orchestrator import MigrationOrchestrator, MigrationReport

__version__ = "1.0.0"

EXIT_SUCCESS = 0
EXIT_MIGRATION_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='quiver-obsidian',
        description="Convert a Quiver library into an Obsidian vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Export a library into ./vault/quiver
  quiver-obsidian -q ~/Quiver.qvlibrary -o ./vault

  # Treat .awebp resources as png images
  quiver-obsidian -q ~/Quiver.qvlibrary -o ./vault -e awebp

  # Preview the planned tree without writing anything
  quiver-obsidian -q ~/Quiver.qvlibrary -o ./vault --dry-run

  # Settings from a YAML file, verbose logging
  quiver-obsidian --config config.yaml -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '-q', '--quiver-path',
        type=str,
        help='Path to the Quiver library (.qvlibrary directory)'
    )

    parser.add_argument(
        '-o', '--output-path',
        type=str,
        help='Directory the vault is created in (a "quiver" directory is created below it)'
    )

    parser.add_argument(
        '-e', '--ext-names',
        nargs='+',
        metavar='EXT',
        help='Resource file extensions to rewrite to .png (e.g. awebp)'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration YAML file (optional)'
    )

    parser.add_argument(
        '--resource-layout',
        choices=[layout.value for layout in ResourceLayout],
        default=None,
        help='Resource directory layout (default: per_note)'
    )

    parser.add_argument(
        '--max-workers',
        type=int,
        default=None,
        help='Number of notebooks exported concurrently (default: 4)'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Print the planned tree without writing anything'
    )

    parser.add_argument(
        '--report-path',
        type=str,
        help='Write the migration report as JSON to this file'
    )

    parser.add_argument(
        '--broken-links-csv',
        type=str,
        help='Write broken note links as CSV to this file'
    )

    parser.add_argument(
        '--no-timestamps',
        action='store_true',
        help='Do not copy note timestamps to the written files'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write log messages to this file'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def run_migration(config: dict, logger: logging.Logger) -> int:
    """Execute the complete migration pipeline."""
    dry_run = get_nested(config, 'migration.dry_run', False)
    logger.info(f"Dry-run: {dry_run}")

    try:
        orchestrator = MigrationOrchestrator(config, logger=logger)
        report = orchestrator.orchestrate_migration()
    except KeyboardInterrupt:
        logger.error("Migration interrupted by user")
        return EXIT_INTERRUPTED
    except MigrationError as e:
        logger.error(f"Migration failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_MIGRATION_ERROR

    report_generator = MigrationReport(logger)
    if dry_run:
        print("\n" + orchestrator.preview())
    print("\n" + report_generator.format_console_report(report))

    if not dry_run:
        print(f"\nVault written to {orchestrator.output_root}")
    return EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        setup_logging(verbosity=args.verbose)
        logger = logging.getLogger('quiver_obsidian_migrator.cli')

        log_section("Quiver to Obsidian Migration Tool")
        logger.info(f"Version: {__version__}")

        if args.config:
            logger.info(f"Loading configuration from {args.config}")
        config = ConfigLoader.load(args.config)
        config = ConfigLoader.merge_with_args(config, args)
        ConfigLoader.validate(config)

        setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level')
        )
        log_config(config)

        return run_migration(config, logger)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except (ValueError, yaml.YAMLError) as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except KeyboardInterrupt:
        print("\nMigration interrupted by user", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())

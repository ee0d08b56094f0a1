"""
Migration orchestrator for coordinating the complete migration pipeline.

This module provides the central coordinator that sequences all migration phases:
Read → Plan → Export → Report.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from config_loader import get_nested
from errors import MigrationError
from exporters import MarkdownExporter
from logger import LoadingIndicator, log_section
from models import BrokenLinkCollector, ExportPlan, Library
from orchestrator.migration_report import MigrationReport
from planning import plan_library
from readers import LibraryReader


class MigrationOrchestrator:
    """Central coordinator sequencing all migration phases: Read → Plan → Export → Report."""

    def __init__(
        self,
        config: Dict[str, Any],
        logger: Optional[logging.Logger] = None,
        loading_indicator: Optional[LoadingIndicator] = None
    ):
        """
        Initialize migration orchestrator.

        Args:
            config: Validated configuration dictionary
            logger: Optional logger instance
            loading_indicator: Indicator shown while the library is read
        """
        self.config = config
        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.orchestrator')
        self.loading_indicator = loading_indicator or LoadingIndicator()

        self.library_path = Path(str(get_nested(config, 'quiver.library_path'))).expanduser()
        self.dry_run = get_nested(config, 'migration.dry_run', False)
        self.report_path = get_nested(config, 'migration.report_path')
        self.broken_links_csv = get_nested(config, 'migration.broken_links_csv')

        self.reader = LibraryReader(self.library_path, logger=self.logger)
        self.exporter = MarkdownExporter(config, logger=self.logger, loading_indicator=self.loading_indicator)
        self.report_generator = MigrationReport(logger=self.logger)

        self.library: Optional[Library] = None
        self.plan: Optional[ExportPlan] = None

    @property
    def output_root(self) -> Path:
        return self.exporter.output_root

    def orchestrate_migration(self) -> Dict[str, Any]:
        """
        Run the complete migration pipeline.

        Returns:
            Migration report dictionary

        Raises:
            MigrationError: If the library cannot be read or the export cannot complete
        """
        self.logger.info(f"Starting migration of {self.library_path}")
        start_time = time.time()

        try:
            log_section("Phase 1: Read Library")
            self.loading_indicator.start()
            self.library = self.reader.read_library()

            log_section("Phase 2: Plan Export")
            self.plan = plan_library(self.library, self.output_root, logger=self.logger)

            if self.dry_run:
                self.loading_indicator.clear()
                export_stats: Dict[str, int] = {}
                broken_links = BrokenLinkCollector()
                self._check_dry_run_output()
            else:
                log_section("Phase 3: Markdown Export")
                export_stats = self.exporter.export(self.plan, self.reader)
                broken_links = self.exporter.broken_links
        finally:
            self.loading_indicator.clear()

        migration_duration = time.time() - start_time
        self._log_broken_links(broken_links)

        report = self.report_generator.generate_report(
            self.library,
            self.plan,
            export_stats,
            broken_links,
            migration_duration,
            dry_run=self.dry_run
        )
        self._write_report_files(report)

        self.logger.info(f"Migration orchestration complete in {migration_duration:.2f}s")
        return report

    def preview(self) -> str:
        """Planned tree of the last run, for dry runs."""
        if self.plan is None:
            return ""
        return self.report_generator.format_plan_preview(self.plan)

    def _write_report_files(self, report: Dict[str, Any]) -> None:
        """Write the optional JSON report and broken links CSV."""
        try:
            if self.report_path:
                self.report_generator.export_json_report(report, self.report_path)
            if self.broken_links_csv:
                self.report_generator.export_broken_links_csv(report, self.broken_links_csv)
        except OSError as e:
            raise MigrationError(f"Failed to write report: {e}") from e

    def _check_dry_run_output(self) -> None:
        if self.output_root.exists():
            self.logger.warning(f"{self.output_root} already exists, a real run would stop before writing")

    def _log_broken_links(self, broken_links: BrokenLinkCollector) -> None:
        """Log broken note links once, grouped by the note that contains them."""
        groups = broken_links.grouped_by_source()
        if not groups:
            return

        self.logger.warning(f"{len(broken_links)} note link(s) point to notes that do not exist:")
        for group in groups.values():
            self.logger.warning(
                f"  {group['source_note_title']} ({group['source_note_id']}): "
                f"{', '.join(group['target_note_ids'])}"
            )


__all__ = ['MigrationOrchestrator']

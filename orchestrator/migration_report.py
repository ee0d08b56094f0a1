"""
Migration report generator for aggregating statistics and formatting reports.

This module builds the final migration report from the export plan, the
exporter statistics and the collected broken note links, and formats it for
console display, JSON export and CSV export.
"""

import csv
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from logger import format_elapsed
from models import BrokenLinkCollector, ExportPlan, Library


class MigrationReport:
    """Generates migration reports for a Quiver library export."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize migration report generator.

        Args:
            logger: Optional logger instance
        """
        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.orchestrator.migration_report')

    def generate_report(
        self,
        library: Library,
        plan: ExportPlan,
        export_stats: Dict[str, int],
        broken_links: BrokenLinkCollector,
        migration_duration: float,
        dry_run: bool = False
    ) -> Dict[str, Any]:
        """
        Generate the migration report.

        Args:
            library: Library that was migrated
            plan: Export plan that was executed
            export_stats: Statistics returned by the exporter
            broken_links: Note links whose target does not exist
            migration_duration: Total migration duration in seconds
            dry_run: Whether nothing was written

        Returns:
            Migration report dictionary
        """
        report = {
            'summary': self._build_summary(library, plan, export_stats, broken_links,
                                           migration_duration, dry_run),
            'broken_links': self._build_broken_links(broken_links),
            'warnings': self._build_warnings(plan),
            'output_root': str(plan.output_root),
            'timestamp': datetime.now().isoformat()
        }

        self.logger.info(
            f"Report generated: {report['summary']['notes_written']} notes written, "
            f"{report['summary']['broken_links']} broken links"
        )
        return report

    def _build_summary(
        self,
        library: Library,
        plan: ExportPlan,
        export_stats: Dict[str, int],
        broken_links: BrokenLinkCollector,
        duration: float,
        dry_run: bool
    ) -> Dict[str, Any]:
        """Build high-level summary section."""
        library_stats = library.get_statistics()
        return {
            'dry_run': dry_run,
            'notebooks_found': library_stats['notebooks'],
            'notes_found': library_stats['notes'],
            'notebooks_planned': len(plan.notebooks),
            'notes_planned': plan.note_count,
            'notebooks_written': export_stats.get('notebooks_exported', 0),
            'notes_written': export_stats.get('notes_exported', 0),
            'resources_copied': export_stats.get('resources_copied', 0),
            'resources_renamed': export_stats.get('resources_renamed', 0),
            'orphan_notebooks': len(plan.orphan_notebooks),
            'skipped_notebooks': len(plan.skipped_notebooks),
            'unreachable_notebooks': len(plan.unreachable_notebooks),
            'missing_notebooks': len(plan.missing_notebook_ids),
            'cells_skipped': export_stats.get('cells_skipped', 0),
            'timestamp_failures': export_stats.get('timestamp_failures', 0),
            'broken_links': len(broken_links),
            'duration_seconds': duration,
            'duration_formatted': format_elapsed(duration)
        }

    def _build_broken_links(self, broken_links: BrokenLinkCollector) -> List[Dict[str, Any]]:
        """Broken note links grouped by source note."""
        return [dict(group) for group in broken_links.grouped_by_source().values()]

    def _build_warnings(self, plan: ExportPlan) -> List[str]:
        warnings = []
        for notebook_id in plan.missing_notebook_ids:
            warnings.append(f"Notebook {notebook_id} is declared in the hierarchy but missing on disk")
        for notebook in plan.unreachable_notebooks:
            warnings.append(
                f"Notebook '{notebook.name}' ({notebook.id}) is unreachable in the hierarchy and was not exported"
            )
        return warnings

    def format_console_report(self, report: Dict[str, Any]) -> str:
        """
        Format report for console display.

        Args:
            report: Migration report dictionary

        Returns:
            Formatted console string
        """
        sections = []
        summary = report.get('summary', {})

        sections.append("=" * 60)
        sections.append("MIGRATION REPORT (DRY RUN)" if summary.get('dry_run') else "MIGRATION REPORT")
        sections.append("=" * 60)
        sections.append("")

        sections.append("Summary:")
        sections.append(f"  Notebooks:   {summary.get('notebooks_planned', 0)} planned, "
                        f"{summary.get('notebooks_written', 0)} written")
        sections.append(f"  Notes:       {summary.get('notes_planned', 0)} planned, "
                        f"{summary.get('notes_written', 0)} written")
        sections.append(f"  Resources:   {summary.get('resources_copied', 0)} copied, "
                        f"{summary.get('resources_renamed', 0)} renamed")
        sections.append(f"  Orphans:     {summary.get('orphan_notebooks', 0)}")
        sections.append(f"  Skipped:     {summary.get('skipped_notebooks', 0)}")
        if summary.get('unreachable_notebooks', 0) > 0:
            sections.append(f"  Unreachable: {summary['unreachable_notebooks']}")
        if summary.get('cells_skipped', 0) > 0:
            sections.append(f"  Cells skipped: {summary['cells_skipped']}")
        if summary.get('timestamp_failures', 0) > 0:
            sections.append(f"  Timestamp failures: {summary['timestamp_failures']}")
        sections.append(f"  Duration:    {summary.get('duration_formatted', '0s')}")
        sections.append("")

        warnings = report.get('warnings', [])
        if warnings:
            sections.append(f"Warnings ({len(warnings)}):")
            sections.append("-" * 60)
            for warning in warnings:
                sections.append(f"  - {warning}")
            sections.append("")

        broken_links = report.get('broken_links', [])
        if broken_links:
            sections.append(f"Broken Note Links ({summary.get('broken_links', 0)}):")
            sections.append("-" * 60)
            for group in broken_links:
                sections.append(f"  {group['source_note_title']} ({group['source_note_id']}):")
                for target_id in group['target_note_ids']:
                    sections.append(f"    -> {target_id}")
            sections.append("")

        sections.append(f"Output: {report.get('output_root', '')}")
        sections.append("=" * 60)

        return "\n".join(sections)

    def format_plan_preview(self, plan: ExportPlan) -> str:
        """
        Format the planned tree for a dry run.

        Args:
            plan: Export plan to preview

        Returns:
            One line per planned notebook with its note count
        """
        lines = [f"Planned export to {plan.output_root}:"]
        for planned in sorted(plan.notebooks, key=lambda p: str(p.directory)):
            try:
                relative = planned.directory.relative_to(plan.output_root)
            except ValueError:
                relative = planned.directory
            marker = " [outside hierarchy]" if planned.orphan else ""
            lines.append(f"  {relative.as_posix()}/ ({len(planned.notebook.notes)} notes){marker}")
        for notebook in plan.skipped_notebooks:
            lines.append(f"  skipped: {notebook.name} ({notebook.id})")
        return "\n".join(lines)

    def export_json_report(self, report: Dict[str, Any], filepath: str) -> None:
        """
        Export report to JSON file.

        Args:
            report: Migration report dictionary
            filepath: Output file path

        Raises:
            OSError: If the file cannot be written
        """
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2, ensure_ascii=False, default=str)

        self.logger.info(f"JSON report exported to {filepath}")

    def export_broken_links_csv(self, report: Dict[str, Any], filepath: str) -> None:
        """
        Export broken note links to CSV, one row per link.

        Args:
            report: Migration report dictionary
            filepath: Output file path
        """
        with open(filepath, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(['source_note_title', 'source_note_id', 'target_note_id'])
            for group in report.get('broken_links', []):
                for target_id in group['target_note_ids']:
                    writer.writerow([group['source_note_title'], group['source_note_id'], target_id])

        self.logger.info(f"Broken links CSV exported to {filepath}")


__all__ = ['MigrationReport']

"""Markdown exporter writing an ExportPlan to an Obsidian vault directory."""

import logging
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from tqdm import tqdm

from config_loader import get_nested
from converters import CellRenderer, RichTextConverter
from errors import MigrationError, OutputExistsError, StructuralError
from logger import LoadingIndicator, ProgressTracker
from models import BrokenLinkCollector, ExportPlan, ExportStats, Note, PlannedNotebook, ResourceLayout
from readers import LibraryReader
from .attachment_manager import AttachmentManager
from .link_rewriter import LinkRewriter

DEFAULT_LIBRARY_DIRNAME = 'quiver'
FRONT_MATTER_SOURCE = 'quiver'


def format_timestamp(timestamp: float) -> str:
    """Unix seconds to ISO-8601 UTC with milliseconds, e.g. 2020-01-01T00:00:00.000Z."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


class MarkdownExporter:
    """
    Writes an ExportPlan to disk as markdown files.

    This exporter:
    1. Creates the output root, refusing to reuse an existing one
    2. Exports notebooks concurrently, the notes of one notebook in order
    3. Names and copies note resources before rewriting the note content
    4. Writes markdown files with YAML front matter, never overwriting a file
    5. Applies the note timestamps to the written files (best effort)
    """

    def __init__(
        self,
        config: Dict[str, Any],
        logger: Optional[logging.Logger] = None,
        loading_indicator: Optional[LoadingIndicator] = None
    ):
        """
        Initialize the markdown exporter.

        Args:
            config: Configuration dictionary with export settings
            logger: Logger instance
            loading_indicator: Indicator to clear once the first note is written
        """
        self.config = config
        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.exporters.markdown_exporter')
        self.loading_indicator = loading_indicator

        self.output_directory = Path(str(get_nested(config, 'export.output_directory', '.'))).expanduser()
        self.library_dirname = get_nested(config, 'export.library_dirname', DEFAULT_LIBRARY_DIRNAME)
        self.output_root = self.output_directory / self.library_dirname
        self.resource_layout = ResourceLayout(
            get_nested(config, 'export.resource_layout', ResourceLayout.PER_NOTE.value)
        )
        self.replace_extensions = list(get_nested(config, 'export.replace_extensions', []) or [])
        self.preserve_timestamps = get_nested(config, 'export.preserve_timestamps', True)
        self.max_workers = get_nested(config, 'export.max_workers', 4)
        self.progress_bars = get_nested(config, 'export.progress_bars', True)

        self.stats = ExportStats()
        self.broken_links = BrokenLinkCollector()
        self.richtext_converter = RichTextConverter(logger=self.logger)
        self.attachment_manager: Optional[AttachmentManager] = None
        self.elapsed_seconds = 0.0

    def prepare_output_root(self) -> Path:
        """
        Create the output root directory.

        Returns:
            The created output root

        Raises:
            StructuralError: If the output path exists but is not a directory
            OutputExistsError: If the output root already exists
        """
        if self.output_directory.exists() and not self.output_directory.is_dir():
            raise StructuralError(f"{self.output_directory} is not a directory, please check and try again")
        if self.output_root.exists():
            raise OutputExistsError(
                f"{self.output_root} already exists, please remove it or choose another output path"
            )

        self.output_root.mkdir(parents=True)
        self.logger.debug(f"Output root ready: {self.output_root}")
        return self.output_root

    def export(self, plan: ExportPlan, reader: LibraryReader) -> Dict[str, int]:
        """
        Export every planned note.

        Args:
            plan: Export plan computed for the library
            reader: Reader used to load note content

        Returns:
            Statistics dictionary with export results

        Raises:
            MigrationError: If a note cannot be written; output written so far is kept
        """
        start = time.time()
        self.logger.info(f"Starting markdown export to {self.output_root}")
        self.prepare_output_root()

        self.attachment_manager = AttachmentManager(
            self.output_root,
            layout=self.resource_layout,
            replace_extensions=self.replace_extensions,
            logger=self.logger
        )
        link_rewriter = LinkRewriter(
            plan,
            self.broken_links,
            replace_extensions=self.replace_extensions,
            logger=self.logger
        )
        renderer = CellRenderer(self.richtext_converter, stats=self.stats, logger=self.logger)

        progress = tqdm(
            total=plan.note_count,
            desc="Exporting notes",
            unit="note",
            disable=not self._should_show_progress()
        )
        try:
            with ProgressTracker(total_items=len(plan.notebooks), item_type='notebooks') as tracker:
                with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                    future_to_notebook = {
                        executor.submit(
                            self._export_notebook, planned, plan, reader, link_rewriter, renderer, progress
                        ): planned
                        for planned in plan.notebooks
                    }

                    for future in as_completed(future_to_notebook):
                        planned = future_to_notebook[future]
                        try:
                            future.result()
                            tracker.increment(success=True)
                        except Exception:
                            tracker.increment(success=False)
                            for pending in future_to_notebook:
                                pending.cancel()
                            self.logger.error(
                                f"Export of notebook '{planned.notebook.name}' ({planned.notebook.id}) failed"
                            )
                            raise
        finally:
            progress.close()
            if self.loading_indicator is not None:
                self.loading_indicator.clear()
            self.elapsed_seconds = time.time() - start

        self._log_export_summary()
        return self.stats.to_dict()

    def _export_notebook(
        self,
        planned: PlannedNotebook,
        plan: ExportPlan,
        reader: LibraryReader,
        link_rewriter: LinkRewriter,
        renderer: CellRenderer,
        progress: tqdm
    ) -> None:
        """Export the notes of one notebook in order."""
        notebook = planned.notebook
        self.logger.debug(f"Exporting notebook '{notebook.name}' to {planned.directory}")
        planned.directory.mkdir(parents=True, exist_ok=True)

        for note in notebook.notes:
            note_path = plan.get_note_path(note.id)
            if note_path is None:
                raise StructuralError(f"note {note.id} of notebook {notebook.id} is missing from the export plan")
            self.export_note(note, note_path, reader, link_rewriter, renderer)
            progress.update(1)

        self.stats.increment('notebooks_exported')

    def export_note(
        self,
        note: Note,
        note_path: Path,
        reader: LibraryReader,
        link_rewriter: LinkRewriter,
        renderer: CellRenderer
    ) -> None:
        """
        Export a single note: resources first, then the rewritten markdown file.

        Raises:
            OutputExistsError: If the note or one of its resources already exists
            MigrationError: If the note cannot be written
        """
        resource_plan = self.attachment_manager.plan_resources(note, note_path)
        try:
            copied = self.attachment_manager.copy_resources(resource_plan)
        except FileExistsError as e:
            raise OutputExistsError(str(e)) from e
        except OSError as e:
            raise MigrationError(f"Failed to copy resources of note '{note.title}' ({note.id}): {e}") from e
        self.stats.increment('resources_copied', copied)
        self.stats.increment('resources_renamed', resource_plan.renamed)

        content = reader.read_note_content(note)

        def rewrite(text: str) -> str:
            return link_rewriter.rewrite(text, resource_plan.resource_map, resource_plan.link_prefix, note)

        body = renderer.render(content, rewrite)
        full_content = f"{self.generate_frontmatter(note)}\n\n{body}"

        try:
            with open(note_path, 'x', encoding='utf-8') as f:
                f.write(full_content)
        except FileExistsError as e:
            raise OutputExistsError(f"Refusing to overwrite existing note file: {note_path}") from e
        except OSError as e:
            raise MigrationError(f"Failed to write note '{note.title}' ({note.id}) to {note_path}: {e}") from e

        self.stats.increment('notes_exported')
        self.logger.debug(f"Wrote {len(full_content)} characters to {note_path}")
        if self.loading_indicator is not None:
            self.loading_indicator.clear()

        if self.preserve_timestamps:
            self._apply_timestamps(note, note_path)

    def generate_frontmatter(self, note: Note) -> str:
        """
        Generate YAML front matter for a note.

        Args:
            note: Note being exported

        Returns:
            Front matter block including the --- delimiters
        """
        frontmatter = {
            'title': note.title,
            'uuid': note.id,
            'source': FRONT_MATTER_SOURCE,
            'created': format_timestamp(note.created_at),
            'updated': format_timestamp(note.updated_at)
        }
        if note.tags:
            frontmatter['tags'] = list(note.tags)

        yaml_str = yaml.dump(
            frontmatter,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=1000
        )
        return f"---\n{yaml_str}---"

    def _apply_timestamps(self, note: Note, note_path: Path) -> None:
        try:
            os.utime(note_path, (note.updated_at, note.updated_at))
        except (OSError, ValueError, OverflowError) as e:
            self.stats.increment('timestamp_failures')
            self.logger.debug(f"Could not set timestamps on {note_path}: {e}")

    def _should_show_progress(self) -> bool:
        return bool(self.progress_bars) and sys.stdout.isatty()

    def _log_export_summary(self) -> None:
        """Log final export statistics."""
        stats = self.stats.to_dict()
        self.logger.info("=" * 60)
        self.logger.info("MARKDOWN EXPORT SUMMARY")
        self.logger.info("=" * 60)
        self.logger.info(f"Notebooks exported: {stats['notebooks_exported']}")
        self.logger.info(f"Notes exported: {stats['notes_exported']}")
        self.logger.info(f"Resources copied: {stats['resources_copied']}")
        if stats['resources_renamed'] > 0:
            self.logger.info(f"Resources renamed: {stats['resources_renamed']}")
        if stats['cells_skipped'] > 0:
            self.logger.info(f"Cells skipped: {stats['cells_skipped']}")
        if stats['timestamp_failures'] > 0:
            self.logger.info(f"Timestamp failures: {stats['timestamp_failures']}")
        self.logger.info(f"Broken note links: {len(self.broken_links)}")
        self.logger.info(f"Output directory: {self.output_root}")
        self.logger.info("=" * 60)


__all__ = ['MarkdownExporter', 'format_timestamp']

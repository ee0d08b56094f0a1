"""Rendering of Quiver note cells to Markdown."""

import logging
from typing import Callable, List, Optional

from models import Cell, CellType, ExportStats, NoteContent
from .richtext_converter import RichTextConverter

FLOW_DIAGRAM_TOOL = 'Flowchart diagram, see http://flowchart.js.org'
SEQUENCE_DIAGRAM_TOOL = 'Sequence diagram, see https://bramp.github.io/js-sequence-diagrams'
CELL_SEPARATOR = '\n\n'


def _fence(language: str, body: str) -> str:
    if not body.endswith('\n'):
        body += '\n'
    return f"```{language}\n{body}```"


class CellRenderer:
    """
    Renders the cells of a note to one markdown document body.

    Markdown and rich-text cells are passed through ``rewrite`` so that
    resource references and note links follow the export layout; code,
    LaTeX and diagram cells are fenced verbatim.
    """

    def __init__(
        self,
        richtext_converter: Optional[RichTextConverter] = None,
        stats: Optional[ExportStats] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.converters.cell_renderer')
        self.richtext_converter = richtext_converter or RichTextConverter(logger=self.logger)
        self.stats = stats or ExportStats()

    def render(self, content: NoteContent, rewrite: Callable[[str], str]) -> str:
        """
        Render all cells of a note.

        Args:
            content: Loaded note content
            rewrite: Link rewriting function applied to markdown produced from
                markdown and rich-text cells

        Returns:
            Markdown body with cells separated by blank lines
        """
        parts: List[str] = []
        for cell in content.cells:
            rendered = self.render_cell(cell, rewrite)
            if rendered is not None:
                parts.append(rendered)
        return CELL_SEPARATOR.join(parts)

    def render_cell(self, cell: Cell, rewrite: Callable[[str], str]) -> Optional[str]:
        """Render a single cell, or return None for unknown cell types."""
        try:
            cell_type = CellType(cell.type)
        except ValueError:
            self.stats.increment('cells_skipped')
            self.logger.warning(f"Skipping cell of unknown type '{cell.type}'")
            return None

        if cell_type == CellType.MARKDOWN:
            return rewrite(cell.data)
        if cell_type == CellType.TEXT:
            return rewrite(self.richtext_converter.convert(cell.data))
        if cell_type == CellType.CODE:
            return _fence(cell.language or '', cell.data)
        if cell_type == CellType.LATEX:
            return _fence('latex', cell.data)

        tool = FLOW_DIAGRAM_TOOL if cell.diagram_type == 'flow' else SEQUENCE_DIAGRAM_TOOL
        return _fence('javascript', f"// {tool}\n{cell.data}")


__all__ = ['CellRenderer', 'FLOW_DIAGRAM_TOOL', 'SEQUENCE_DIAGRAM_TOOL']

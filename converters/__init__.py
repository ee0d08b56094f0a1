"""Converters package for rendering Quiver note cells to Markdown."""

from .richtext_converter import RichTextConverter, convert_richtext
from .cell_renderer import CellRenderer

__all__ = [
    'CellRenderer',
    'RichTextConverter',
    'convert_richtext'
]

"""Markdown export package for the Quiver to Obsidian migration pipeline.

Package Structure:
- markdown_exporter: Writes an ExportPlan to disk with front matter and resources
- attachment_manager: Names, scopes and copies note resource files
- link_rewriter: Rewrites resource references and note links inside cell content
- resource_namer: Normalizes resource filenames and in-content references
- collision_resolver: Deterministic numeric suffixing for colliding names

Configuration Referenced:
- export.output_directory: Base output path, the vault is created below it
- export.library_dirname: Name of the vault directory (default: quiver)
- export.resource_layout: per_note or shared resource directories
- export.replace_extensions: Resource extensions rewritten to .png
"""

from .collision_resolver import (
    MAX_RENAME_ATTEMPTS,
    CaseInsensitiveNames,
    resolve_distinct_filename,
    resolve_distinct_name
)
from .resource_namer import ResourceNamer, normalize_resource_name, normalize_resource_references
from .attachment_manager import AttachmentManager
from .link_rewriter import LinkRewriter
from .markdown_exporter import MarkdownExporter

__all__ = [
    'MarkdownExporter',
    'AttachmentManager',
    'LinkRewriter',
    'ResourceNamer',
    'normalize_resource_name',
    'normalize_resource_references',
    'resolve_distinct_name',
    'resolve_distinct_filename',
    'CaseInsensitiveNames',
    'MAX_RENAME_ATTEMPTS'
]

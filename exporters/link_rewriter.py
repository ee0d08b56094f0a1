"""Link rewriter for updating Quiver resource and note links to Obsidian syntax."""

import logging
import re
from typing import Iterable, Optional, Tuple

from models import BrokenLink, BrokenLinkCollector, ExportPlan, Note, ResourceMap
from .resource_namer import DEFAULT_EXTENSION, ResourceNamer

LEGACY_RESOURCE_PREFIXES = ('quiver-image-url/', 'quiver-file-url/')

NOTE_LINK_PATTERN = re.compile(
    r'\[(?P<text>[^\]\n]*)\]\((?:quiver-note-url|quiver:///notes)/'
    r'(?P<uuid>[0-9A-F]{8}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{12})\)',
    re.IGNORECASE
)


class LinkRewriter:
    """
    Rewrites Quiver resource references and note links inside markdown content.

    The pipeline runs in a fixed order because each step works on the output
    of the previous one:
    1. Legacy resource prefixes become the target resource prefix
    2. Resource names after the prefix are normalized, except names of
       resources the note actually has, which must keep pointing at that file
    3. Names are mapped to the final filenames of the note
    4. Note links become wikilinks resolved through the export plan
    """

    def __init__(
        self,
        export_plan: ExportPlan,
        broken_links: BrokenLinkCollector,
        replace_extensions: Iterable[str] = (),
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the link rewriter.

        Args:
            export_plan: Library-wide plan used to resolve note links
            broken_links: Accumulator receiving unresolved note links
            replace_extensions: Resource extensions rewritten to .png
            logger: Logger instance
        """
        self.export_plan = export_plan
        self.broken_links = broken_links
        self.namer = ResourceNamer(replace_extensions)
        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.exporters.link_rewriter')

    def rewrite(self, text: str, resource_map: ResourceMap, resource_prefix: str, note: Note) -> str:
        """
        Rewrite all resource references and note links in one cell.

        Args:
            text: Markdown content of the cell
            resource_map: Final resource filenames of this note
            resource_prefix: Link prefix of the note's resource directory (ends with '/')
            note: Note the content belongs to

        Returns:
            Rewritten markdown content
        """
        if not text:
            return text

        rewritten = self._replace_legacy_prefixes(text, resource_prefix)
        rewritten = self.namer.normalize_references(rewritten, resource_prefix, keep=resource_map.originals())
        rewritten, mapped, unmapped = self._map_resource_names(rewritten, resource_map, resource_prefix)
        rewritten, resolved, broken = self._rewrite_note_links(rewritten, note)

        if mapped or unmapped or resolved or broken:
            self.logger.debug(
                f"Rewrote links for note '{note.title}' ({note.id}): "
                f"{mapped} resource(s) mapped, {unmapped} unmapped, "
                f"{resolved} note link(s) resolved, {broken} broken"
            )
        return rewritten

    @staticmethod
    def _replace_legacy_prefixes(text: str, resource_prefix: str) -> str:
        for legacy_prefix in LEGACY_RESOURCE_PREFIXES:
            text = text.replace(legacy_prefix, resource_prefix)
        return text

    def _map_resource_names(
        self,
        text: str,
        resource_map: ResourceMap,
        resource_prefix: str
    ) -> Tuple[str, int, int]:
        """
        Replace resource names after the prefix with their final filenames.

        Returns:
            Tuple of (updated_text, mapped_count, unmapped_count)
        """
        if resource_prefix not in text:
            return text, 0, 0

        mapped_count = 0
        unmapped_count = 0
        pattern = re.compile(
            re.escape(resource_prefix) + r'(?P<name>[^)\\\s?#]+)(?P<term>[)\\\s?#]|$)'
        )

        def replace_name(match):
            nonlocal mapped_count, unmapped_count
            name = match.group('name')
            final_name = resource_map.lookup(name)
            if final_name is None:
                final_name = resource_map.lookup(name + DEFAULT_EXTENSION)
            if final_name is None:
                unmapped_count += 1
                self.logger.debug(f"No resource file found for reference '{resource_prefix}{name}'")
                return match.group(0)
            mapped_count += 1
            return f"{resource_prefix}{final_name}{match.group('term')}"

        return pattern.sub(replace_name, text), mapped_count, unmapped_count

    def _rewrite_note_links(self, text: str, note: Note) -> Tuple[str, int, int]:
        """
        Replace Quiver note links with wikilinks.

        Returns:
            Tuple of (updated_text, resolved_count, broken_count)
        """
        resolved_count = 0
        broken_count = 0

        def replace_link(match):
            nonlocal resolved_count, broken_count
            link_text = match.group('text').strip()
            target_id = match.group('uuid')

            target_path = self.export_plan.get_note_path(target_id)
            if target_path is None and target_id != target_id.upper():
                target_path = self.export_plan.get_note_path(target_id.upper())

            if target_path is None:
                broken_count += 1
                self.logger.debug(
                    f"Note '{note.title}' ({note.id}) links to non-existent note {target_id}"
                )
                self.broken_links.append(BrokenLink(
                    source_note_title=note.title,
                    source_note_id=note.id,
                    target_note_id=target_id
                ))
                return self._wikilink(target_id, link_text)

            resolved_count += 1
            return self._wikilink(target_path.stem, link_text)

        return NOTE_LINK_PATTERN.sub(replace_link, text), resolved_count, broken_count

    @staticmethod
    def _wikilink(target: str, link_text: str) -> str:
        if link_text and link_text != target:
            return f"[[{target}|{link_text}]]"
        return f"[[{target}]]"


__all__ = ['LinkRewriter', 'LEGACY_RESOURCE_PREFIXES', 'NOTE_LINK_PATTERN']

"""
Export planner computing the output path of every exported note.

Consumes the hierarchy walk plus the orphan notebooks (on disk but not
declared in the hierarchy) and produces an ExportPlan: one directory per
exported notebook and one unique markdown path per note UUID.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from exporters.collision_resolver import CaseInsensitiveNames, resolve_distinct_name
from models import ExportPlan, Library, LibraryMeta, Notebook, PlannedNotebook, WalkEntry
from planning.hierarchy_walker import HierarchyWalker

PATH_SEPARATOR = '/'
TITLE_SEPARATOR_SUBSTITUTE = '-'
UNTITLED_NOTE_NAME = 'Untitled'
UNTITLED_NOTEBOOK_NAME = 'Untitled'
RELATIVE_SEGMENTS = ('', '.', '..')
NOTE_EXTENSION = '.md'


def normalize_notebook_name(name: str) -> str:
    """
    Split a notebook name on '/', trim every segment and join again.

    Empty, "." and ".." segments are dropped so the result always stays
    below the directory it is joined to.
    """
    segments = [part.strip() for part in (name or '').split(PATH_SEPARATOR)]
    kept = [segment for segment in segments if segment not in RELATIVE_SEGMENTS]
    return PATH_SEPARATOR.join(kept) or UNTITLED_NOTEBOOK_NAME


def sanitize_note_title(title: str) -> str:
    """Turn a note title into a filename stem."""
    sanitized = (title or '').replace(PATH_SEPARATOR, TITLE_SEPARATOR_SUBSTITUTE).strip()
    return sanitized or UNTITLED_NOTE_NAME


class ExportPlanner:
    """Builds the library-wide ExportPlan."""

    def __init__(self, output_root: Path, logger: Optional[logging.Logger] = None):
        """
        Initialize the planner.

        Args:
            output_root: Directory all notebooks are exported under
            logger: Optional logger instance
        """
        self.output_root = Path(output_root)
        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.planning.export_planner')

    def plan(
        self,
        entries: Iterable[WalkEntry],
        orphan_notebooks: Iterable[Notebook],
        library_meta: LibraryMeta
    ) -> ExportPlan:
        """
        Compute the export plan.

        Args:
            entries: Walked (notebook, ancestors) pairs in visit order
            orphan_notebooks: Notebooks on disk that are not declared in the hierarchy
            library_meta: Declared hierarchy, used for descendant checks

        Returns:
            ExportPlan with note paths keyed by note UUID

        Raises:
            DuplicateNoteIdError: If a note UUID occurs twice anywhere in the library
            RenameExhaustedError: If a title collides too often within one notebook
        """
        plan = ExportPlan(output_root=self.output_root)
        used_names: Dict[str, CaseInsensitiveNames] = {}

        for entry in entries:
            notebook = entry.notebook
            has_notes = notebook.has_notes
            has_descendants = library_meta.has_children(notebook.id)
            if not has_notes and not has_descendants:
                self.logger.debug(f"Skipping empty notebook '{notebook.name}' ({notebook.id})")
                plan.skipped_notebooks.append(notebook)
                continue

            directory = self._notebook_directory(entry.ancestors, notebook)
            if has_notes:
                self._plan_notes(plan, notebook, directory, used_names)
                plan.notebooks.append(PlannedNotebook(
                    notebook=notebook,
                    directory=directory,
                    ancestors=list(entry.ancestors)
                ))

        for notebook in orphan_notebooks:
            if not notebook.has_notes:
                self.logger.debug(f"Skipping empty notebook '{notebook.name}' outside the hierarchy")
                plan.skipped_notebooks.append(notebook)
                continue

            directory = self.output_root / normalize_notebook_name(notebook.name)
            self._plan_notes(plan, notebook, directory, used_names)
            plan.notebooks.append(PlannedNotebook(notebook=notebook, directory=directory, orphan=True))

        self.logger.info(
            f"Planned {plan.note_count} note(s) in {len(plan.notebooks)} notebook(s), "
            f"{len(plan.orphan_notebooks)} outside the hierarchy"
        )
        return plan

    def _notebook_directory(self, ancestors: Sequence[Notebook], notebook: Notebook) -> Path:
        segments = [normalize_notebook_name(ancestor.name) for ancestor in ancestors]
        segments.append(normalize_notebook_name(notebook.name))
        return self.output_root.joinpath(*segments)

    def _plan_notes(
        self,
        plan: ExportPlan,
        notebook: Notebook,
        directory: Path,
        used_names: Dict[str, CaseInsensitiveNames]
    ) -> None:
        # Notebooks whose names normalize to the same directory, ignoring case, share one name scope
        note_names = used_names.setdefault(str(directory).casefold(), CaseInsensitiveNames())
        for note in notebook.notes:
            note_name = sanitize_note_title(note.title)
            if note_name in note_names:
                renamed = resolve_distinct_name(note_name, note_names, 2)
                self.logger.debug(f"Renaming note '{note.title}' ({note.id}) to '{renamed}' in '{notebook.name}'")
                note_name = renamed
            note_names.add(note_name)
            plan.add_note_path(note.id, directory / f"{note_name}{NOTE_EXTENSION}")


def find_orphan_notebooks(library: Library) -> List[Notebook]:
    """Notebooks on disk whose id is not declared anywhere in the hierarchy."""
    declared = set(library.meta.iter_ids())
    return [notebook for notebook in library.notebooks if notebook.id not in declared]


def plan_library(
    library: Library,
    output_root: Path,
    logger: Optional[logging.Logger] = None
) -> ExportPlan:
    """
    Walk the declared hierarchy and plan the export of the whole library.

    Declared notebooks that the walk cannot reach (because a declared ancestor
    is missing on disk) are not exported; they are listed in
    ``plan.unreachable_notebooks`` and reported with a warning.
    """
    logger = logger or logging.getLogger('quiver_obsidian_migrator.planning')

    walker = HierarchyWalker(library.notebooks_by_id(), logger=logger)
    entries = walker.iter_entries(library.meta)

    orphans = find_orphan_notebooks(library)
    planner = ExportPlanner(output_root, logger=logger)
    plan = planner.plan(entries, orphans, library.meta)
    plan.missing_notebook_ids = list(walker.missing_ids)

    declared = set(library.meta.iter_ids())
    for notebook in library.notebooks:
        if notebook.id in declared and notebook.id not in walker.visited_ids:
            logger.warning(
                f"Notebook '{notebook.name}' ({notebook.id}) with {len(notebook.notes)} note(s) "
                f"is unreachable in the hierarchy and will not be exported"
            )
            plan.unreachable_notebooks.append(notebook)

    return plan


__all__ = [
    'ExportPlanner',
    'normalize_notebook_name',
    'sanitize_note_title',
    'find_orphan_notebooks',
    'plan_library'
]

"""
Hierarchy walker for the declared Quiver notebook tree.

Walks the library meta.json hierarchy depth-first and cross-references every
declared notebook id against the notebooks found on disk. Dangling ids are
skipped with a warning together with their declared subtree; an id that shows
up in its own ancestor chain aborts the walk.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence, Set

from errors import HierarchyCycleError
from models import LibraryMeta, Notebook, WalkEntry


class HierarchyWalker:
    """Depth-first walker over a LibraryMeta tree with checked notebook lookups."""

    def __init__(self, notebooks_by_id: Dict[str, Notebook], logger: Optional[logging.Logger] = None):
        """
        Initialize the walker.

        Args:
            notebooks_by_id: Notebooks discovered on disk, keyed by UUID
            logger: Optional logger instance
        """
        self.notebooks_by_id = notebooks_by_id
        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.planning.hierarchy_walker')

        self.visited_ids: Set[str] = set()
        self.missing_ids: List[str] = []
        self.duplicate_ids: List[str] = []

    def lookup(self, notebook_id: str) -> Optional[Notebook]:
        """Return the on-disk notebook for an id, or None when it does not exist."""
        return self.notebooks_by_id.get(notebook_id)

    def walk(self, root: LibraryMeta, on_visit: Callable[[str, List[str]], None]) -> None:
        """
        Visit every reachable declared notebook in pre-order.

        The root's own id is not a notebook; the walk starts at its children with
        an empty ancestor list. Each child receives its parent's ancestor list with
        the parent id appended.

        Args:
            root: Root of the declared hierarchy
            on_visit: Called with (notebook_id, ancestor_ids) for each visited notebook

        Raises:
            HierarchyCycleError: If a notebook id appears in its own ancestor chain
        """
        self.visited_ids = set()
        self.missing_ids = []
        self.duplicate_ids = []

        for child in root.children:
            self._visit(child, [], root.id, on_visit)

    def _visit(
        self,
        node: LibraryMeta,
        ancestor_ids: List[str],
        root_id: str,
        on_visit: Callable[[str, List[str]], None]
    ) -> None:
        if node.id in ancestor_ids or (root_id and node.id == root_id):
            raise HierarchyCycleError(node.id, ancestor_ids)

        if node.id in self.visited_ids:
            self.logger.warning(
                f"Notebook {node.id} is declared more than once in the hierarchy, "
                f"skipping the declaration under {ancestor_ids[-1] if ancestor_ids else 'the root'}"
            )
            self.duplicate_ids.append(node.id)
            return

        if self.lookup(node.id) is None:
            self.logger.warning(
                f"Notebook {node.id} is declared in the library hierarchy but was not found on disk, "
                f"skipping it and {self._count_descendants(node)} declared descendant(s)"
            )
            self.missing_ids.append(node.id)
            return

        self.visited_ids.add(node.id)
        on_visit(node.id, list(ancestor_ids))

        child_ancestors = ancestor_ids + [node.id]
        for child in node.children:
            self._visit(child, child_ancestors, root_id, on_visit)

    def iter_entries(self, root: LibraryMeta) -> List[WalkEntry]:
        """Walk the hierarchy and return (notebook, ancestor notebooks) entries in visit order."""
        entries: List[WalkEntry] = []

        def collect(notebook_id: str, ancestor_ids: Sequence[str]) -> None:
            ancestors = []
            for ancestor_id in ancestor_ids:
                ancestor = self.lookup(ancestor_id)
                if ancestor is None:
                    # unreachable: missing notebooks are never descended into
                    self.logger.warning(f"Ancestor notebook {ancestor_id} of {notebook_id} not found on disk")
                    continue
                ancestors.append(ancestor)
            entries.append(WalkEntry(notebook=self.lookup(notebook_id), ancestors=ancestors))

        self.walk(root, collect)
        return entries

    @staticmethod
    def _count_descendants(node: LibraryMeta) -> int:
        return sum(1 for _ in node.iter_ids())


__all__ = ['HierarchyWalker']

"""Attachment manager for naming and copying note resource files."""

import logging
import os
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from models import Note, ResourceLayout, ResourceMap
from .collision_resolver import CaseInsensitiveNames, resolve_distinct_filename
from .resource_namer import ResourceNamer

PER_NOTE_RESOURCE_DIRECTORY = '_resources'
SHARED_RESOURCE_DIRECTORY = 'resources'


class ResourceScope:
    """
    Set of filenames already taken in one resource directory.

    A scope is either owned by a single note or shared by every note of the
    library; reservations are atomic so concurrent notes never pick the same
    filename. Names differing only in letter case count as the same file.
    """

    def __init__(self, directory: Path):
        self.directory = directory
        self._used = CaseInsensitiveNames()
        self._lock = threading.Lock()

    def reserve(self, candidate: str) -> str:
        """Reserve ``candidate`` or the first free numbered variant of it."""
        with self._lock:
            final_name = candidate
            if final_name in self._used:
                final_name = resolve_distinct_filename(candidate, self._used)
            self._used.add(final_name)
            return final_name

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._used


@dataclass
class ResourcePlan:
    """Resource naming result for one note, built before its content is rewritten."""

    directory: Path
    link_prefix: str
    resource_map: ResourceMap = field(default_factory=ResourceMap)
    copies: List[Tuple[Path, Path]] = field(default_factory=list)
    renamed: int = 0


class AttachmentManager:
    """
    Manages resource files of exported notes.

    This manager:
    1. Decides the resource directory of each note (per note or shared)
    2. Normalizes resource filenames and resolves collisions inside that directory
    3. Records original name -> final filename in a fresh per-note ResourceMap
    4. Copies the bytes without ever overwriting an existing file
    """

    def __init__(
        self,
        output_root: Path,
        layout: ResourceLayout = ResourceLayout.PER_NOTE,
        replace_extensions: Iterable[str] = (),
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the attachment manager.

        Args:
            output_root: Root directory of the export
            layout: Resource layout (per note or shared library directory)
            replace_extensions: Resource extensions rewritten to .png
            logger: Logger instance
        """
        self.output_root = Path(output_root)
        self.layout = layout
        self.namer = ResourceNamer(replace_extensions)
        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.exporters.attachment_manager')

        self._shared_scope: Optional[ResourceScope] = None
        if self.layout == ResourceLayout.SHARED:
            self._shared_scope = ResourceScope(self.output_root / SHARED_RESOURCE_DIRECTORY)

        self.stats = {
            'resources_planned': 0,
            'resources_copied': 0,
            'resources_renamed': 0,
        }
        self._stats_lock = threading.Lock()

    def resource_directory(self, note: Note, note_path: Path) -> Path:
        """Directory the resources of ``note`` are copied to."""
        if self.layout == ResourceLayout.SHARED:
            return self.output_root / SHARED_RESOURCE_DIRECTORY
        return note_path.parent / PER_NOTE_RESOURCE_DIRECTORY / note.id

    def link_prefix(self, note: Note, note_path: Path) -> str:
        """Markdown link prefix from the note file to its resource directory."""
        directory = self.resource_directory(note, note_path)
        relative = os.path.relpath(directory, note_path.parent)
        return Path(relative).as_posix().rstrip('/') + '/'

    def plan_resources(self, note: Note, note_path: Path) -> ResourcePlan:
        """
        Build the resource map of one note.

        Args:
            note: Note whose resources are named
            note_path: Planned markdown path of the note

        Returns:
            ResourcePlan holding the map and the pending copies
        """
        directory = self.resource_directory(note, note_path)
        plan = ResourcePlan(directory=directory, link_prefix=self.link_prefix(note, note_path))
        if not note.resources:
            return plan

        scope = self._shared_scope or ResourceScope(directory)
        for resource in note.resources:
            normalized = self.namer.normalize_filename(resource.name)
            final_name = scope.reserve(normalized)
            if final_name != resource.name:
                plan.renamed += 1
            if final_name != normalized:
                self.logger.debug(
                    f"Resource '{resource.name}' of note '{note.title}' collides in {directory}, "
                    f"renamed to '{final_name}'"
                )
            plan.resource_map.add(resource.name, final_name, normalized)
            plan.copies.append((note.resources_path / resource.name, directory / final_name))

        self._bump('resources_planned', len(plan.copies))
        self._bump('resources_renamed', plan.renamed)
        return plan

    def copy_resources(self, plan: ResourcePlan) -> int:
        """
        Copy the resource files of a planned note.

        Returns:
            Number of files copied

        Raises:
            FileExistsError: If a target file already exists
        """
        if not plan.copies:
            return 0

        plan.directory.mkdir(parents=True, exist_ok=True)
        copied = 0
        for source, target in plan.copies:
            if target.exists():
                raise FileExistsError(f"Refusing to overwrite existing resource file: {target}")
            shutil.copy2(source, target)
            copied += 1
            self.logger.debug(f"Copied resource {source} -> {target}")

        self._bump('resources_copied', copied)
        return copied

    def _bump(self, key: str, amount: int) -> None:
        with self._stats_lock:
            self.stats[key] += amount

    def get_stats(self) -> Dict[str, int]:
        """Get resource processing statistics."""
        with self._stats_lock:
            return self.stats.copy()


__all__ = [
    'AttachmentManager',
    'ResourcePlan',
    'ResourceScope',
    'PER_NOTE_RESOURCE_DIRECTORY',
    'SHARED_RESOURCE_DIRECTORY'
]

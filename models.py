"""Data models for Quiver to Obsidian migration pipeline."""

import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, KeysView, List, Optional

from errors import DuplicateNoteIdError


class CellType(Enum):
    """Kinds of content cells found in a Quiver note."""
    CODE = "code"
    TEXT = "text"
    MARKDOWN = "markdown"
    LATEX = "latex"
    DIAGRAM = "diagram"


class ResourceLayout(Enum):
    """Where resource files of exported notes are placed."""
    PER_NOTE = "per_note"
    SHARED = "shared"


@dataclass
class LibraryMeta:
    """Declared notebook hierarchy node read from the library meta.json."""

    id: str
    children: List['LibraryMeta'] = field(default_factory=list)

    def find(self, node_id: str) -> Optional['LibraryMeta']:
        """Find the declared node with the given id, or None if it is not declared."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node.id == node_id:
                return node
            stack.extend(reversed(node.children))
        return None

    def has_children(self, node_id: str) -> bool:
        """Check whether the declared node has at least one declared child."""
        node = self.find(node_id)
        return node is not None and len(node.children) > 0

    def iter_ids(self) -> Iterator[str]:
        """Yield every declared id below this node (the node's own id excluded)."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            yield node.id
            stack.extend(reversed(node.children))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LibraryMeta':
        """Build the tree from the parsed meta.json structure."""
        children = [cls.from_dict(child) for child in data.get('children') or []]
        return cls(id=data.get('uuid', ''), children=children)


@dataclass
class ResourceRef:
    """A resource file attached to a note. Only the name is modelled."""

    name: str


@dataclass
class Note:
    """Represents a Quiver note with metadata and a lazily loaded content file."""

    id: str
    title: str
    created_at: float
    updated_at: float
    content_path: Path
    note_path: Path
    tags: List[str] = field(default_factory=list)
    resources: Optional[List[ResourceRef]] = None

    @property
    def resources_path(self) -> Path:
        return self.note_path / 'resources'


@dataclass
class Notebook:
    """Represents a Quiver notebook discovered on disk."""

    id: str
    name: str
    notes: List[Note] = field(default_factory=list)
    path: Optional[Path] = None

    @property
    def has_notes(self) -> bool:
        return len(self.notes) > 0


@dataclass
class Cell:
    """One unit of note content."""

    type: str
    data: str
    language: Optional[str] = None
    diagram_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Cell':
        return cls(
            type=data.get('type', ''),
            data=data.get('data') or '',
            language=data.get('language'),
            diagram_type=data.get('diagramType')
        )


@dataclass
class NoteContent:
    """Ordered cells of a note as stored in content.json."""

    title: str
    cells: List[Cell] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NoteContent':
        return cls(
            title=data.get('title', ''),
            cells=[Cell.from_dict(c) for c in data.get('cells') or []]
        )


@dataclass
class Library:
    """A complete Quiver library snapshot."""

    meta: LibraryMeta
    notebooks: List[Notebook] = field(default_factory=list)
    path: Optional[Path] = None

    def notebooks_by_id(self) -> Dict[str, Notebook]:
        return {notebook.id: notebook for notebook in self.notebooks}

    def get_statistics(self) -> Dict[str, int]:
        """Get library statistics."""
        notes = [note for notebook in self.notebooks for note in notebook.notes]
        return {
            'notebooks': len(self.notebooks),
            'notes': len(notes),
            'resources': sum(len(note.resources or []) for note in notes)
        }


@dataclass
class WalkEntry:
    """A notebook reached by the hierarchy walk together with its ancestors (root first)."""

    notebook: Notebook
    ancestors: List[Notebook] = field(default_factory=list)


@dataclass
class PlannedNotebook:
    """A notebook selected for export and the directory it is written to."""

    notebook: Notebook
    directory: Path
    ancestors: List[Notebook] = field(default_factory=list)
    orphan: bool = False


@dataclass
class ExportPlan:
    """Library-wide mapping from note UUID to its target markdown path."""

    output_root: Path
    notebooks: List[PlannedNotebook] = field(default_factory=list)
    note_paths: Dict[str, Path] = field(default_factory=dict)
    skipped_notebooks: List[Notebook] = field(default_factory=list)
    unreachable_notebooks: List[Notebook] = field(default_factory=list)
    missing_notebook_ids: List[str] = field(default_factory=list)

    def add_note_path(self, note_id: str, path: Path) -> None:
        """Insert a note path; a note id may only ever be planned once."""
        existing = self.note_paths.get(note_id)
        if existing is not None:
            raise DuplicateNoteIdError(note_id, existing, path)
        self.note_paths[note_id] = path

    def get_note_path(self, note_id: str) -> Optional[Path]:
        return self.note_paths.get(note_id)

    @property
    def note_count(self) -> int:
        return len(self.note_paths)

    @property
    def orphan_notebooks(self) -> List[PlannedNotebook]:
        return [planned for planned in self.notebooks if planned.orphan]


class ResourceMap:
    """Per-note mapping from resource names to final on-disk filenames."""

    def __init__(self):
        self._by_original: Dict[str, str] = {}
        self._by_normalized: Dict[str, str] = {}

    def add(self, original: str, final: str, normalized: Optional[str] = None) -> None:
        self._by_original[original] = final
        if normalized and normalized != original:
            self._by_normalized.setdefault(normalized, final)

    def lookup(self, name: str) -> Optional[str]:
        """Find the final filename for a name; original names win over normalized aliases."""
        if name in self._by_original:
            return self._by_original[name]
        return self._by_normalized.get(name)

    def originals(self) -> KeysView[str]:
        """Resource names as they exist in the source note."""
        return self._by_original.keys()

    def items(self):
        return self._by_original.items()

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def __len__(self) -> int:
        return len(self._by_original)


@dataclass(frozen=True)
class BrokenLink:
    """A note link whose target note is not part of the export plan."""

    source_note_title: str
    source_note_id: str
    target_note_id: str


class BrokenLinkCollector:
    """Append-only, thread-safe accumulator of broken note links."""

    def __init__(self):
        self._links: List[BrokenLink] = []
        self._lock = threading.Lock()

    def append(self, link: BrokenLink) -> None:
        with self._lock:
            self._links.append(link)

    def snapshot(self) -> List[BrokenLink]:
        with self._lock:
            return list(self._links)

    def grouped_by_source(self) -> 'OrderedDict[str, Dict[str, Any]]':
        """Group broken links by source note, sorted by title then id."""
        groups: Dict[str, Dict[str, Any]] = {}
        for link in self.snapshot():
            group = groups.setdefault(link.source_note_id, {
                'source_note_title': link.source_note_title,
                'source_note_id': link.source_note_id,
                'target_note_ids': []
            })
            group['target_note_ids'].append(link.target_note_id)

        ordered = OrderedDict()
        for note_id in sorted(groups, key=lambda k: (groups[k]['source_note_title'], k)):
            ordered[note_id] = groups[note_id]
        return ordered

    def __len__(self) -> int:
        with self._lock:
            return len(self._links)


class ExportStats:
    """Thread-safe counters collected while exporting."""

    FIELDS = (
        'notebooks_exported',
        'notes_exported',
        'resources_copied',
        'resources_renamed',
        'timestamp_failures',
        'cells_skipped'
    )

    def __init__(self):
        self._lock = threading.Lock()
        self._counts = {name: 0 for name in self.FIELDS}

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[name] += amount

    def get(self, name: str) -> int:
        with self._lock:
            return self._counts[name]

    def to_dict(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)


__all__ = [
    'CellType',
    'ResourceLayout',
    'LibraryMeta',
    'ResourceRef',
    'Note',
    'Notebook',
    'Cell',
    'NoteContent',
    'Library',
    'WalkEntry',
    'PlannedNotebook',
    'ExportPlan',
    'ResourceMap',
    'BrokenLink',
    'BrokenLinkCollector',
    'ExportStats'
]

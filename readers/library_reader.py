"""Reader building a Library snapshot from a .qvlibrary directory."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from errors import LibraryReadError
from models import Library, LibraryMeta, Note, NoteContent, Notebook, ResourceRef
from .storage import LocalStorage, Storage

LIBRARY_SUFFIX = '.qvlibrary'
NOTEBOOK_SUFFIX = '.qvnotebook'
NOTE_SUFFIX = '.qvnote'
META_FILENAME = 'meta.json'
CONTENT_FILENAME = 'content.json'
RESOURCES_DIRNAME = 'resources'
IGNORED_NAMES = frozenset({'.git', 'node_modules', '.DS_Store'})


class LibraryReader:
    """
    Reads a Quiver library into read-only snapshots.

    This reader:
    1. Validates the library, notebook and note directory suffixes
    2. Parses the declared hierarchy from the library meta.json
    3. Loads notebook and note metadata plus resource names
    4. Leaves note content on disk until read_note_content is called

    Directory listings are sorted so every run sees the same order.
    """

    def __init__(
        self,
        library_path: Path,
        storage: Optional[Storage] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the library reader.

        Args:
            library_path: Path to the .qvlibrary directory
            storage: Storage backend (local filesystem by default)
            logger: Logger instance
        """
        self.library_path = Path(library_path).expanduser()
        self.storage = storage or LocalStorage()
        self.logger = logger or logging.getLogger('quiver_obsidian_migrator.readers.library_reader')

        self.stats = {
            'notebooks_read': 0,
            'notes_read': 0,
            'resources_found': 0,
            'entries_ignored': 0
        }

    def read_library(self) -> Library:
        """
        Read the library metadata, notebooks and notes.

        Returns:
            Library snapshot

        Raises:
            LibraryReadError: If the library is malformed or cannot be read
        """
        self.logger.info(f"Reading Quiver library from {self.library_path}")
        if not self._is_directory_with_suffix(self.library_path, LIBRARY_SUFFIX):
            raise LibraryReadError(
                f"{self.library_path} is not a quiver library dir, please check and try again"
            )

        meta: Optional[LibraryMeta] = None
        notebooks: List[Notebook] = []

        for child in self.storage.list_children(self.library_path):
            if child.name in IGNORED_NAMES:
                self.stats['entries_ignored'] += 1
                self.logger.debug(f"Ignoring {child}")
                continue

            if child.name == META_FILENAME and self.storage.is_file(child):
                meta = LibraryMeta.from_dict(self._read_object(child))
            elif self.storage.is_directory(child):
                notebooks.append(self.read_notebook(child))
            else:
                self.stats['entries_ignored'] += 1

        if meta is None:
            raise LibraryReadError(f"no such file {self.library_path / META_FILENAME}")

        library = Library(meta=meta, notebooks=notebooks, path=self.library_path)
        self.logger.info(
            f"Read {self.stats['notebooks_read']} notebooks with {self.stats['notes_read']} notes "
            f"and {self.stats['resources_found']} resources"
        )
        return library

    def read_notebook(self, notebook_path: Path) -> Notebook:
        """
        Read one .qvnotebook directory.

        Raises:
            LibraryReadError: If the directory is not a notebook or has no meta.json
        """
        if not self._is_directory_with_suffix(notebook_path, NOTEBOOK_SUFFIX):
            raise LibraryReadError(
                f"{notebook_path} is not a quiver notebook dir, please check and try again"
            )

        meta: Optional[Dict[str, Any]] = None
        notes: List[Note] = []
        for child in self.storage.list_children(notebook_path):
            if child.name in IGNORED_NAMES:
                continue
            if child.name == META_FILENAME and self.storage.is_file(child):
                meta = self._read_object(child)
            elif self.storage.is_directory(child):
                notes.append(self.read_note(child))

        if meta is None:
            raise LibraryReadError(f"no such file {notebook_path / META_FILENAME}")

        notebook = Notebook(
            id=str(meta.get('uuid', '')),
            name=str(meta.get('name', '')),
            notes=notes,
            path=notebook_path
        )
        self.stats['notebooks_read'] += 1
        self.logger.debug(f"Read notebook '{notebook.name}' ({notebook.id}) with {len(notes)} notes")
        return notebook

    def read_note(self, note_path: Path) -> Note:
        """
        Read the metadata and resource names of one .qvnote directory.

        Raises:
            LibraryReadError: If the directory is not a note or a required file is missing
        """
        if not self._is_directory_with_suffix(note_path, NOTE_SUFFIX):
            raise LibraryReadError(f"{note_path} is not a quiver note dir, please check and try again")

        meta_path = note_path / META_FILENAME
        if not self.storage.is_file(meta_path):
            raise LibraryReadError(f"no such file {meta_path}")
        meta = self._read_object(meta_path)

        content_path = note_path / CONTENT_FILENAME
        if not self.storage.exists(content_path):
            raise LibraryReadError(f"no such file {content_path}")

        note = Note(
            id=str(meta.get('uuid', '')),
            title=str(meta.get('title', '')),
            created_at=self._timestamp(meta, 'created_at', meta_path),
            updated_at=self._timestamp(meta, 'updated_at', meta_path),
            content_path=content_path,
            note_path=note_path,
            tags=[str(tag) for tag in meta.get('tags') or []],
            resources=self._read_resources(note_path / RESOURCES_DIRNAME)
        )
        self.stats['notes_read'] += 1
        if note.resources:
            self.stats['resources_found'] += len(note.resources)
        return note

    def read_note_content(self, note: Note) -> NoteContent:
        """Load the cells of a note from its content.json."""
        return NoteContent.from_dict(self._read_object(note.content_path))

    def _read_resources(self, resources_path: Path) -> Optional[List[ResourceRef]]:
        if not self.storage.exists(resources_path):
            return None
        if not self.storage.is_directory(resources_path):
            raise LibraryReadError(f"no such directory {resources_path}")
        return [ResourceRef(name=child.name) for child in self.storage.list_children(resources_path)]

    def _read_object(self, path: Path) -> Dict[str, Any]:
        data = self.storage.read_json_file(path)
        if not isinstance(data, dict):
            raise LibraryReadError(f"Expected a JSON object in {path}")
        return data

    @staticmethod
    def _timestamp(meta: Dict[str, Any], key: str, meta_path: Path) -> float:
        value = meta.get(key, 0)
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise LibraryReadError(f"Invalid {key} value {value!r} in {meta_path}") from e

    def _is_directory_with_suffix(self, path: Path, suffix: str) -> bool:
        return path.name.endswith(suffix) and self.storage.is_directory(path)

    def get_stats(self) -> Dict[str, int]:
        """Get reader statistics."""
        return self.stats.copy()


__all__ = [
    'LibraryReader',
    'LIBRARY_SUFFIX',
    'NOTEBOOK_SUFFIX',
    'NOTE_SUFFIX',
    'IGNORED_NAMES'
]

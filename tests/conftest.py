"""Shared fixtures building Quiver libraries on disk and in memory."""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from models import Note, Notebook, ResourceRef


def meta_node(uuid: str, *children: Dict[str, Any]) -> Dict[str, Any]:
    """One node of a library meta.json hierarchy."""
    node = {'uuid': uuid}
    if children:
        node['children'] = list(children)
    return node


class LibraryBuilder:
    """Writes a minimal .qvlibrary directory tree for tests."""

    def __init__(self, root: Path, name: str = 'Test.qvlibrary'):
        self.path = root / name
        self.path.mkdir(parents=True)
        self.notebook_paths: Dict[str, Path] = {}

    def hierarchy(self, *children: Dict[str, Any], root_id: str = 'LIBRARY-ROOT') -> 'LibraryBuilder':
        self._write_json(self.path / 'meta.json', meta_node(root_id, *children))
        return self

    def notebook(self, uuid: str, name: str) -> 'LibraryBuilder':
        notebook_path = self.path / f"{uuid}.qvnotebook"
        notebook_path.mkdir()
        self._write_json(notebook_path / 'meta.json', {'name': name, 'uuid': uuid})
        self.notebook_paths[uuid] = notebook_path
        return self

    def note(
        self,
        notebook_uuid: str,
        uuid: str,
        title: str,
        cells: Optional[List[Dict[str, Any]]] = None,
        tags: Optional[List[str]] = None,
        resources: Optional[Dict[str, bytes]] = None,
        created_at: int = 1577836800,
        updated_at: int = 1580515200
    ) -> 'LibraryBuilder':
        note_path = self.notebook_paths[notebook_uuid] / f"{uuid}.qvnote"
        note_path.mkdir()
        self._write_json(note_path / 'meta.json', {
            'title': title,
            'uuid': uuid,
            'created_at': created_at,
            'updated_at': updated_at,
            'tags': tags or []
        })
        self._write_json(note_path / 'content.json', {'title': title, 'cells': cells or []})
        if resources is not None:
            resources_path = note_path / 'resources'
            resources_path.mkdir()
            for name, data in resources.items():
                (resources_path / name).write_bytes(data)
        return self

    @staticmethod
    def _write_json(path: Path, data: Any) -> None:
        path.write_text(json.dumps(data), encoding='utf-8')


@pytest.fixture
def library_builder(tmp_path):
    """Factory for on-disk Quiver libraries below tmp_path."""
    return LibraryBuilder(tmp_path / 'source')


@pytest.fixture
def make_note(tmp_path):
    """Factory for in-memory notes."""
    def _make_note(
        uuid: str,
        title: str = 'Note',
        resources: Optional[List[str]] = None,
        tags: Optional[List[str]] = None
    ) -> Note:
        note_path = tmp_path / 'source' / f"{uuid}.qvnote"
        return Note(
            id=uuid,
            title=title,
            created_at=1577836800,
            updated_at=1580515200,
            content_path=note_path / 'content.json',
            note_path=note_path,
            tags=tags or [],
            resources=[ResourceRef(name) for name in resources] if resources is not None else None
        )
    return _make_note


@pytest.fixture
def make_notebook():
    """Factory for in-memory notebooks."""
    def _make_notebook(uuid: str, name: str, notes: Optional[List[Note]] = None) -> Notebook:
        return Notebook(id=uuid, name=name, notes=list(notes or []))
    return _make_notebook

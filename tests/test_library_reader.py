"""Tests for reading .qvlibrary directories."""

import pytest

from conftest import meta_node
from errors import LibraryReadError
from readers.library_reader import LibraryReader

NOTEBOOK_ID = 'AAAAAAAA-0000-0000-0000-000000000001'
NOTE_ID = 'BBBBBBBB-0000-0000-0000-000000000001'


@pytest.fixture
def library(library_builder):
    return (
        library_builder
        .hierarchy(meta_node(NOTEBOOK_ID))
        .notebook(NOTEBOOK_ID, 'Work')
        .note(
            NOTEBOOK_ID, NOTE_ID, 'First',
            cells=[{'type': 'markdown', 'data': '# Hi'}],
            tags=['a', 'b'],
            resources={'img.png': b'png'}
        )
    )


class TestReadLibrary:
    """Test library, notebook and note loading."""

    def test_reads_hierarchy_notebooks_and_notes(self, library):
        result = LibraryReader(library.path).read_library()

        assert result.meta.id == 'LIBRARY-ROOT'
        assert [child.id for child in result.meta.children] == [NOTEBOOK_ID]
        assert len(result.notebooks) == 1
        notebook = result.notebooks[0]
        assert (notebook.id, notebook.name) == (NOTEBOOK_ID, 'Work')
        note = notebook.notes[0]
        assert (note.id, note.title, note.tags) == (NOTE_ID, 'First', ['a', 'b'])
        assert note.created_at == 1577836800.0
        assert note.updated_at == 1580515200.0
        assert [resource.name for resource in note.resources] == ['img.png']

    def test_note_content_is_loaded_on_demand(self, library):
        reader = LibraryReader(library.path)
        note = reader.read_library().notebooks[0].notes[0]

        content = reader.read_note_content(note)

        assert content.title == 'First'
        assert [(cell.type, cell.data) for cell in content.cells] == [('markdown', '# Hi')]

    def test_note_without_resources_directory(self, library_builder):
        library_builder.hierarchy(meta_node(NOTEBOOK_ID)).notebook(NOTEBOOK_ID, 'Work')
        library_builder.note(NOTEBOOK_ID, NOTE_ID, 'Bare')

        note = LibraryReader(library_builder.path).read_library().notebooks[0].notes[0]

        assert note.resources is None

    def test_notebooks_are_read_in_sorted_order(self, library_builder):
        library_builder.hierarchy()
        library_builder.notebook('BBBB', 'Second').notebook('AAAA', 'First')

        notebooks = LibraryReader(library_builder.path).read_library().notebooks

        assert [notebook.id for notebook in notebooks] == ['AAAA', 'BBBB']

    def test_ignored_entries_are_skipped(self, library):
        (library.path / '.git').mkdir()
        (library.path / '.DS_Store').write_bytes(b'')
        reader = LibraryReader(library.path)

        result = reader.read_library()

        assert len(result.notebooks) == 1
        assert reader.get_stats()['entries_ignored'] == 2

    def test_stats(self, library):
        reader = LibraryReader(library.path)
        reader.read_library()

        stats = reader.get_stats()

        assert stats['notebooks_read'] == 1
        assert stats['notes_read'] == 1
        assert stats['resources_found'] == 1


class TestMalformedLibraries:
    """Test errors raised for unusable input."""

    def test_wrong_suffix_is_rejected(self, tmp_path):
        path = tmp_path / 'notes'
        path.mkdir()

        with pytest.raises(LibraryReadError, match='not a quiver library dir'):
            LibraryReader(path).read_library()

    def test_missing_library_is_rejected(self, tmp_path):
        with pytest.raises(LibraryReadError):
            LibraryReader(tmp_path / 'Missing.qvlibrary').read_library()

    def test_missing_library_meta(self, library_builder):
        library_builder.notebook(NOTEBOOK_ID, 'Work')

        with pytest.raises(LibraryReadError, match='meta.json'):
            LibraryReader(library_builder.path).read_library()

    def test_unexpected_directory_in_library(self, library):
        (library.path / 'stray').mkdir()

        with pytest.raises(LibraryReadError, match='not a quiver notebook dir'):
            LibraryReader(library.path).read_library()

    def test_note_without_content_file(self, library):
        (library.notebook_paths[NOTEBOOK_ID] / f'{NOTE_ID}.qvnote' / 'content.json').unlink()

        with pytest.raises(LibraryReadError, match='content.json'):
            LibraryReader(library.path).read_library()

    def test_invalid_json(self, library):
        (library.path / 'meta.json').write_text('{not json', encoding='utf-8')

        with pytest.raises(LibraryReadError, match='Invalid JSON'):
            LibraryReader(library.path).read_library()

    def test_resources_must_be_a_directory(self, library_builder):
        library_builder.hierarchy(meta_node(NOTEBOOK_ID)).notebook(NOTEBOOK_ID, 'Work')
        library_builder.note(NOTEBOOK_ID, NOTE_ID, 'Bad')
        (library_builder.notebook_paths[NOTEBOOK_ID] / f'{NOTE_ID}.qvnote' / 'resources').write_bytes(b'')

        with pytest.raises(LibraryReadError):
            LibraryReader(library_builder.path).read_library()

    def test_invalid_timestamp(self, library_builder):
        library_builder.hierarchy(meta_node(NOTEBOOK_ID)).notebook(NOTEBOOK_ID, 'Work')
        library_builder.note(NOTEBOOK_ID, NOTE_ID, 'Bad', created_at='yesterday')

        with pytest.raises(LibraryReadError, match='created_at'):
            LibraryReader(library_builder.path).read_library()

"""Tests for per-note resource naming, scoping and copying."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from exporters.attachment_manager import AttachmentManager, ResourceScope
from models import ResourceLayout

NOTE_A = 'AAAAAAAA-0000-0000-0000-000000000001'
NOTE_B = 'BBBBBBBB-0000-0000-0000-000000000002'


def write_resources(note, files):
    note.resources_path.mkdir(parents=True, exist_ok=True)
    for name, data in files.items():
        (note.resources_path / name).write_bytes(data)


class TestResourceScope:
    """Test filename reservation inside one directory."""

    def test_reserve_returns_candidate_when_free(self, tmp_path):
        scope = ResourceScope(tmp_path)
        assert scope.reserve('img.png') == 'img.png'
        assert 'img.png' in scope

    def test_reserve_suffixes_collisions(self, tmp_path):
        scope = ResourceScope(tmp_path)
        assert [scope.reserve('img.png') for _ in range(3)] == ['img.png', 'img_1.png', 'img_2.png']

    def test_concurrent_reservations_are_distinct(self, tmp_path):
        scope = ResourceScope(tmp_path)
        with ThreadPoolExecutor(max_workers=8) as executor:
            names = list(executor.map(lambda _: scope.reserve('img.png'), range(50)))
        assert len(set(names)) == 50

    def test_names_differing_in_case_collide(self, tmp_path):
        scope = ResourceScope(tmp_path)
        assert scope.reserve('img.png') == 'img.png'
        assert scope.reserve('IMG.PNG') == 'IMG_1.PNG'
        assert scope.reserve('Img_1.png') == 'Img_1_1.png'
        assert 'IMG.png' in scope


class TestPerNoteLayout:
    """Test the default per-note resource directories."""

    def test_link_prefix_is_relative_to_note(self, tmp_path, make_note):
        manager = AttachmentManager(tmp_path / 'quiver')
        note = make_note(NOTE_A, resources=['img.png'])
        note_path = tmp_path / 'quiver' / 'Work' / 'Note.md'

        assert manager.link_prefix(note, note_path) == f'_resources/{NOTE_A}/'
        assert manager.resource_directory(note, note_path) == tmp_path / 'quiver' / 'Work' / '_resources' / NOTE_A

    def test_resource_map_holds_normalized_names(self, tmp_path, make_note):
        manager = AttachmentManager(tmp_path / 'quiver', replace_extensions=['awebp'])
        resource_id = 'BC8755B05A094564A25EA19E438B73B3'
        note = make_note(NOTE_A, resources=[resource_id, 'shot.awebp'])

        plan = manager.plan_resources(note, tmp_path / 'quiver' / 'Note.md')

        assert plan.resource_map.lookup(resource_id) == f'{resource_id}.png'
        assert plan.resource_map.lookup('shot.awebp') == 'shot.png'
        assert plan.resource_map.lookup('shot.png') == 'shot.png'
        assert plan.renamed == 2

    def test_names_colliding_after_normalization_are_suffixed(self, tmp_path, make_note):
        manager = AttachmentManager(tmp_path / 'quiver', replace_extensions=['awebp'])
        note = make_note(NOTE_A, resources=['shot.awebp', 'shot.png'])

        plan = manager.plan_resources(note, tmp_path / 'quiver' / 'Note.md')

        assert plan.resource_map.lookup('shot.awebp') == 'shot.png'
        assert plan.resource_map.lookup('shot.png') == 'shot_1.png'

    def test_note_without_resources_creates_nothing(self, tmp_path, make_note):
        manager = AttachmentManager(tmp_path / 'quiver')
        note = make_note(NOTE_A)

        plan = manager.plan_resources(note, tmp_path / 'quiver' / 'Note.md')

        assert manager.copy_resources(plan) == 0
        assert not plan.directory.exists()
        assert len(plan.resource_map) == 0

    def test_same_name_in_two_notebooks_never_overwrites(self, tmp_path, make_note):
        output_root = tmp_path / 'quiver'
        manager = AttachmentManager(output_root)
        note_a = make_note(NOTE_A, resources=['img.png'])
        note_b = make_note(NOTE_B, resources=['img.png'])
        write_resources(note_a, {'img.png': b'first'})
        write_resources(note_b, {'img.png': b'second'})

        plan_a = manager.plan_resources(note_a, output_root / 'One' / 'A.md')
        plan_b = manager.plan_resources(note_b, output_root / 'Two' / 'B.md')
        manager.copy_resources(plan_a)
        manager.copy_resources(plan_b)

        assert (plan_a.directory / 'img.png').read_bytes() == b'first'
        assert (plan_b.directory / 'img.png').read_bytes() == b'second'
        assert plan_a.directory != plan_b.directory

    def test_copy_refuses_to_overwrite(self, tmp_path, make_note):
        output_root = tmp_path / 'quiver'
        manager = AttachmentManager(output_root)
        note = make_note(NOTE_A, resources=['img.png'])
        write_resources(note, {'img.png': b'data'})
        plan = manager.plan_resources(note, output_root / 'A.md')
        plan.directory.mkdir(parents=True)
        (plan.directory / 'img.png').write_bytes(b'existing')

        with pytest.raises(FileExistsError):
            manager.copy_resources(plan)
        assert (plan.directory / 'img.png').read_bytes() == b'existing'


class TestSharedLayout:
    """Test the library-wide shared resource directory."""

    def test_shared_directory_and_relative_prefix(self, tmp_path, make_note):
        output_root = tmp_path / 'quiver'
        manager = AttachmentManager(output_root, layout=ResourceLayout.SHARED)
        note = make_note(NOTE_A, resources=['img.png'])

        assert manager.resource_directory(note, output_root / 'Work' / 'Sub' / 'A.md') == output_root / 'resources'
        assert manager.link_prefix(note, output_root / 'Work' / 'Sub' / 'A.md') == '../../resources/'
        assert manager.link_prefix(note, output_root / 'A.md') == 'resources/'

    def test_same_name_across_notes_is_renamed(self, tmp_path, make_note):
        output_root = tmp_path / 'quiver'
        manager = AttachmentManager(output_root, layout=ResourceLayout.SHARED)
        note_a = make_note(NOTE_A, resources=['img.png'])
        note_b = make_note(NOTE_B, resources=['img.png'])
        write_resources(note_a, {'img.png': b'first'})
        write_resources(note_b, {'img.png': b'second'})

        plan_a = manager.plan_resources(note_a, output_root / 'One' / 'A.md')
        plan_b = manager.plan_resources(note_b, output_root / 'Two' / 'B.md')
        manager.copy_resources(plan_a)
        manager.copy_resources(plan_b)

        assert plan_b.resource_map.lookup('img.png') == 'img_1.png'
        assert (output_root / 'resources' / 'img.png').read_bytes() == b'first'
        assert (output_root / 'resources' / 'img_1.png').read_bytes() == b'second'
        assert manager.get_stats()['resources_copied'] == 2

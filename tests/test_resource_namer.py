"""Tests for resource filename and reference normalization."""

import pytest

from exporters.resource_namer import (
    ResourceNamer,
    normalize_resource_name,
    normalize_resource_references
)

RESOURCE_ID = '47D5523597D28227C87950448B4780A5'


class TestNormalizeResourceName:
    """Test filename-mode rules."""

    @pytest.mark.parametrize('name, expected', [
        (f'{RESOURCE_ID}.jpg =344x387', f'{RESOURCE_ID}.jpg'),
        ('9FFEF50881EA1326EA55C1BC43EC9314.png&w=2048&q=75', '9FFEF50881EA1326EA55C1BC43EC9314.png'),
        ('badge.svg?style=social&label=Follow', 'badge.svg'),
        ('Photo.JPEG ?x=1', 'Photo.JPEG'),
    ])
    def test_strips_arguments_after_image_extension(self, name, expected):
        assert normalize_resource_name(name) == expected

    def test_unknown_extension_keeps_arguments(self):
        assert normalize_resource_name('archive.zip?download=1') == 'archive.zip?download=1'

    def test_configured_extension_becomes_png(self):
        assert normalize_resource_name('image.awebp', ['awebp']) == 'image.png'

    def test_configured_extension_is_case_insensitive(self):
        assert normalize_resource_name('image.AWEBP', ['awebp']) == 'image.png'
        assert normalize_resource_name('image.heic', ['.HEIC']) == 'image.png'

    def test_unconfigured_extension_is_kept(self):
        assert normalize_resource_name('image.heic') == 'image.heic'

    def test_bare_resource_id_gets_png(self):
        assert normalize_resource_name(RESOURCE_ID) == f'{RESOURCE_ID}.png'

    def test_lowercase_id_is_not_a_resource_id(self):
        assert normalize_resource_name(RESOURCE_ID.lower()) == RESOURCE_ID.lower()

    def test_plain_name_unchanged(self):
        assert normalize_resource_name('diagram.png') == 'diagram.png'

    def test_rules_apply_in_order(self):
        # argument stripping runs before the configured extension replacement
        assert normalize_resource_name('image.awebp&w=10', ['awebp']) == 'image.png'

    @pytest.mark.parametrize('name', [
        f'{RESOURCE_ID}.jpg =344x387',
        'image.awebp',
        RESOURCE_ID,
        'notes.txt',
    ])
    def test_idempotent(self, name):
        once = normalize_resource_name(name, ['awebp'])
        assert normalize_resource_name(once, ['awebp']) == once


class TestNormalizeResourceReferences:
    """Test content-mode rules."""

    def test_wrapped_reference_with_size_argument(self):
        text = f'![](resources/{RESOURCE_ID}.jpg =344x387)'
        assert normalize_resource_references(text, 'resources/') == f'![](resources/{RESOURCE_ID}.jpg)'

    def test_bare_reference_without_extension(self):
        text = f'see resources/{RESOURCE_ID} for details'
        assert normalize_resource_references(text, 'resources/') == \
            f'see resources/{RESOURCE_ID}.png for details'

    def test_configured_extension_in_content(self):
        text = '![](resources/shot.awebp)'
        assert normalize_resource_references(text, 'resources/', ['awebp']) == '![](resources/shot.png)'

    def test_text_without_prefix_unchanged(self):
        text = '![](https://example.com/a.jpg =10x10)'
        assert normalize_resource_references(text, 'resources/') == text

    def test_namer_is_idempotent_on_content(self):
        namer = ResourceNamer(['awebp'])
        text = f'![](res/{RESOURCE_ID}.jpg =1x1) and res/{RESOURCE_ID} and ![](res/a.awebp)'
        once = namer.normalize_references(text, 'res/')
        assert namer.normalize_references(once, 'res/') == once

    def test_kept_names_are_not_normalized(self):
        namer = ResourceNamer(['awebp'])
        text = f'![](res/{RESOURCE_ID}) and res/shot.awebp and res/other.awebp'

        result = namer.normalize_references(text, 'res/', keep={RESOURCE_ID, 'shot.awebp'})

        assert result == f'![](res/{RESOURCE_ID}) and res/shot.awebp and res/other.png'

"""Normalization of Quiver resource filenames and in-content resource references."""

import re
from typing import Container, Iterable, Optional, Pattern

# Image and container extensions whose trailing url arguments get stripped, e.g.
# `47D5523597D28227C87950448B4780A5.jpg =344x387`
# `9FFEF50881EA1326EA55C1BC43EC9314.png&w=2048&q=75`
# `55F20500B6E0C67E3EA78ED6C149B4D9.svg?style=social&label=Follow`
KNOWN_IMAGE_EXTENSIONS = (
    'bmp', 'jpg', 'png', 'tif', 'gif', 'pcx', 'tga', 'exif', 'fpx', 'svg', 'psd',
    'cdr', 'pcd', 'dxf', 'ufo', 'eps', 'ai', 'raw', 'wmf', 'webp', 'jpeg', 'ico', 'awebp'
)

DEFAULT_EXTENSION = '.png'

_URL_ARGS_PATTERN = re.compile(
    r'^(?P<keep>.*?\.(?:' + '|'.join(KNOWN_IMAGE_EXTENSIONS) + r'))[\s&?].*$',
    re.IGNORECASE | re.DOTALL
)
_RESOURCE_ID_PATTERN = re.compile(r'^[0-9A-F]{32}$')


def _build_extension_pattern(replace_extensions: Iterable[str]) -> Optional[Pattern]:
    extensions = sorted({ext.lower().lstrip('.') for ext in replace_extensions if ext and ext.strip('.')})
    if not extensions:
        return None
    return re.compile(
        r'^(?P<stem>.+)\.(?:' + '|'.join(re.escape(ext) for ext in extensions) + r')$',
        re.IGNORECASE
    )


def _apply_rules(name: str, extension_pattern: Optional[Pattern]) -> str:
    # 1. strip url arguments following a known image extension
    match = _URL_ARGS_PATTERN.match(name)
    if match:
        name = match.group('keep')

    # 2. replace configured unknown extensions with png
    if extension_pattern is not None:
        match = extension_pattern.match(name)
        if match:
            name = match.group('stem') + DEFAULT_EXTENSION

    # 3. add default extension to bare resource ids
    if _RESOURCE_ID_PATTERN.match(name):
        name = name + DEFAULT_EXTENSION

    return name


def normalize_resource_name(name: str, replace_extensions: Iterable[str] = ()) -> str:
    """
    Normalize a resource filename.

    Args:
        name: Resource filename as found in the note's resources directory
        replace_extensions: Extensions (case-insensitive, without dot) to rewrite to .png

    Returns:
        Normalized filename
    """
    return _apply_rules(name, _build_extension_pattern(replace_extensions))


def normalize_resource_references(text: str, prefix: str, replace_extensions: Iterable[str] = ()) -> str:
    """
    Normalize resource references embedded in markdown content.

    Both parenthesis-wrapped references, as in ``![](<prefix>NAME =100x100)``,
    and bare occurrences of ``<prefix>NAME`` are handled.

    Args:
        text: Markdown content
        prefix: Resource directory prefix preceding each resource name
        replace_extensions: Extensions to rewrite to .png

    Returns:
        Content with normalized resource references
    """
    return ResourceNamer(replace_extensions).normalize_references(text, prefix)


class ResourceNamer:
    """Resource naming rules bound to a configured set of extensions to replace."""

    def __init__(self, replace_extensions: Iterable[str] = ()):
        self.replace_extensions = tuple(replace_extensions or ())
        self._extension_pattern = _build_extension_pattern(self.replace_extensions)

    def normalize_filename(self, name: str) -> str:
        return _apply_rules(name, self._extension_pattern)

    def normalize_references(self, text: str, prefix: str, keep: Container[str] = ()) -> str:
        """Normalize every name after ``prefix``; names found in ``keep`` are left untouched."""
        if not text or not prefix or prefix not in text:
            return text

        escaped = re.escape(prefix)

        def normalize(name):
            if name in keep:
                return name
            return self.normalize_filename(name)

        def replace_wrapped(match):
            return f"({prefix}{normalize(match.group('name'))})"

        wrapped = re.compile(r'\(' + escaped + r'(?P<name>[^)\n]+)\)')
        text = wrapped.sub(replace_wrapped, text)

        def replace_bare(match):
            return prefix + normalize(match.group('name'))

        bare = re.compile(r'(?<!\()' + escaped + r'(?P<name>[^\s()\[\]<>"\']+)')
        return bare.sub(replace_bare, text)


__all__ = [
    'KNOWN_IMAGE_EXTENSIONS',
    'DEFAULT_EXTENSION',
    'ResourceNamer',
    'normalize_resource_name',
    'normalize_resource_references'
]

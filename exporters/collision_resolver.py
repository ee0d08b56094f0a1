"""Deterministic renaming of colliding note titles and resource filenames."""

import os
from typing import Collection, Iterable, Iterator, List, Set

from errors import RenameExhaustedError

MAX_RENAME_ATTEMPTS = 100


class CaseInsensitiveNames:
    """
    Names taken in one directory, compared ignoring letter case.

    Quiver runs on macOS, whose default file systems treat "Todo" and "TODO"
    as the same file. Names keep their spelling; membership uses casefold().
    """

    def __init__(self, names: Iterable[str] = ()):
        self._names: List[str] = []
        self._keys: Set[str] = set()
        for name in names:
            self.add(name)

    def add(self, name: str) -> None:
        key = name.casefold()
        if key not in self._keys:
            self._keys.add(key)
            self._names.append(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.casefold() in self._keys

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)


def resolve_distinct_name(
    candidate: str,
    used: Collection[str],
    start_suffix: int = 2,
    separator: str = ' '
) -> str:
    """
    Produce a name absent from ``used`` by appending a numeric suffix.

    Args:
        candidate: Desired name that already collides
        used: Names already taken in the same scope
        start_suffix: First number to try (2 gives "Name 2")
        separator: Text placed between the name and the number

    Returns:
        The first "{candidate}{separator}{n}" not in ``used``

    Raises:
        RenameExhaustedError: If no free name is found within MAX_RENAME_ATTEMPTS tries
    """
    for attempt in range(MAX_RENAME_ATTEMPTS):
        new_name = f"{candidate}{separator}{start_suffix + attempt}"
        if new_name not in used:
            return new_name
    raise RenameExhaustedError(candidate, MAX_RENAME_ATTEMPTS)


def resolve_distinct_filename(
    filename: str,
    used: Collection[str],
    start_suffix: int = 1,
    separator: str = '_'
) -> str:
    """Like resolve_distinct_name, but the suffix goes before the file extension."""
    stem, ext = os.path.splitext(filename)
    for attempt in range(MAX_RENAME_ATTEMPTS):
        new_name = f"{stem}{separator}{start_suffix + attempt}{ext}"
        if new_name not in used:
            return new_name
    raise RenameExhaustedError(filename, MAX_RENAME_ATTEMPTS)


__all__ = ['MAX_RENAME_ATTEMPTS', 'CaseInsensitiveNames', 'resolve_distinct_name', 'resolve_distinct_filename']

"""Storage abstraction used by the library reader."""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List

from errors import LibraryReadError


class Storage(ABC):
    """Read-only access to the files of a Quiver library."""

    @abstractmethod
    def list_children(self, path: Path) -> List[Path]:
        """List the entries of a directory, sorted by name."""
        pass

    @abstractmethod
    def read_json_file(self, path: Path) -> Any:
        """Read and parse a JSON file."""
        pass

    @abstractmethod
    def exists(self, path: Path) -> bool:
        pass

    @abstractmethod
    def is_directory(self, path: Path) -> bool:
        pass

    @abstractmethod
    def is_file(self, path: Path) -> bool:
        pass


class LocalStorage(Storage):
    """Storage backed by the local filesystem."""

    def list_children(self, path: Path) -> List[Path]:
        try:
            return sorted(Path(path).iterdir(), key=lambda child: child.name)
        except OSError as e:
            raise LibraryReadError(f"Cannot list directory {path}: {e}") from e

    def read_json_file(self, path: Path) -> Any:
        """
        Read and parse a JSON file.

        Raises:
            LibraryReadError: If the file cannot be read or is not valid JSON
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise LibraryReadError(f"Invalid JSON in {path}: {e}") from e
        except OSError as e:
            raise LibraryReadError(f"Cannot read {path}: {e}") from e

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def is_directory(self, path: Path) -> bool:
        return Path(path).is_dir()

    def is_file(self, path: Path) -> bool:
        return Path(path).is_file()


__all__ = ['Storage', 'LocalStorage']

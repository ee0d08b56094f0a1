"""Readers for Quiver library directories."""

from .storage import LocalStorage, Storage
from .library_reader import LibraryReader

__all__ = ['LibraryReader', 'LocalStorage', 'Storage']

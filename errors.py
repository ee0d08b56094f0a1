"""Exception hierarchy for the Quiver to Obsidian migration pipeline."""


class MigrationError(Exception):
    """Base exception for migration errors."""
    pass


class StructuralError(MigrationError):
    """Fatal inconsistency that aborts the whole run."""
    pass


class DuplicateNoteIdError(StructuralError):
    """Raised when the same note UUID is planned twice anywhere in the library."""

    def __init__(self, note_id: str, existing_path=None, new_path=None):
        self.note_id = note_id
        self.existing_path = existing_path
        self.new_path = new_path
        message = f"there are two notes with uuid ({note_id}), please check and try again"
        if existing_path is not None and new_path is not None:
            message += f" (planned as '{existing_path}' and '{new_path}')"
        super().__init__(message)


class HierarchyCycleError(StructuralError):
    """Raised when a notebook appears in its own ancestor chain."""

    def __init__(self, notebook_id: str, ancestor_ids):
        self.notebook_id = notebook_id
        self.ancestor_ids = list(ancestor_ids)
        chain = ' -> '.join(self.ancestor_ids + [notebook_id])
        super().__init__(f"notebook hierarchy contains a cycle: {chain}")


class RenameExhaustedError(StructuralError):
    """Raised when no distinct name is found within the retry bound."""

    def __init__(self, name: str, attempts: int):
        self.name = name
        self.attempts = attempts
        super().__init__(f"rename failed after {attempts} attempts: {name}")


class OutputExistsError(StructuralError):
    """Raised when the output root already holds a previous export."""
    pass


class LibraryReadError(MigrationError):
    """Raised when the Quiver library on disk is malformed or unreadable."""
    pass


__all__ = [
    'MigrationError',
    'StructuralError',
    'DuplicateNoteIdError',
    'HierarchyCycleError',
    'RenameExhaustedError',
    'OutputExistsError',
    'LibraryReadError',
]

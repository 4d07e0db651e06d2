"""Directory registry — the process-wide directory collaborator."""

from notifications.directory.directory_port import DirectoryPort

_directory: DirectoryPort | None = None


def get_directory() -> DirectoryPort:
    """Return the configured directory, defaulting to an in-memory one."""
    global _directory
    if _directory is None:
        from notifications.directory.memory_directory import InMemoryDirectory

        _directory = InMemoryDirectory()
    return _directory


def set_directory(directory: DirectoryPort) -> None:
    global _directory
    _directory = directory


def reset_directory() -> None:
    """Drop the configured directory (useful for testing)."""
    global _directory
    _directory = None

"""File watching — recent changes in the project tree."""

from devassist.watch.file_watcher import FileChange, FileWatcher

__all__ = ["FileChange", "FileWatcher"]

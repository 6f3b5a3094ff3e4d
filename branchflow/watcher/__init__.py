"""File system watcher module."""

from branchflow.watcher.file_watcher import DefinitionWatcher, FileChangeEvent, start_watching

__all__ = ["DefinitionWatcher", "FileChangeEvent", "start_watching"]

"""
Re-render trigger for definition documents.

Editors tend to touch a file several times per save (truncate, write,
chmod), and many save atomically by writing a temp file and renaming it
over the original. The handler below folds all of that into one event per
definition path, delivered after the directory has been quiet for
``debounce_seconds``. The observer thread never runs the callback itself;
a ``threading.Timer`` does.
"""

import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Literal

from rich.console import Console
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

console = Console()

EventType = Literal["created", "modified", "deleted"]

DEFINITION_SUFFIXES = {".json"}

# Directory names never scanned; rendered Markdown lands in "output"
SKIPPED_DIRECTORIES = {
    "__pycache__",
    ".git",
    ".venv",
    "venv",
    "node_modules",
    ".pytest_cache",
    "output",
}


@dataclass
class FileChangeEvent:
    """A definition document that needs re-rendering (or was removed)."""

    file_path: Path
    event_type: EventType
    timestamp: datetime


def is_definition_path(path: str | Path) -> bool:
    path = Path(path)
    if path.suffix not in DEFINITION_SUFFIXES:
        return False
    return not any(part in SKIPPED_DIRECTORIES for part in path.parts)


class DebouncedHandler(FileSystemEventHandler):
    """Collects definition changes and hands them over once saves settle."""

    def __init__(
        self,
        callback: Callable[[FileChangeEvent], None],
        debounce_seconds: float = 1.0,
    ):
        super().__init__()
        self.callback = callback
        self.debounce_seconds = debounce_seconds
        self._pending_events: dict[str, FileChangeEvent] = {}
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def _should_ignore(self, path: str) -> bool:
        return not is_definition_path(path)

    def _restart_timer(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce_seconds, self._fire_callback)
            self._timer.daemon = True
            self._timer.start()

    def _fire_callback(self):
        with self._lock:
            events = list(self._pending_events.values())
            self._pending_events.clear()
            self._timer = None

        for event in events:
            try:
                self.callback(event)
            except Exception as e:
                console.print(f"[red]ERROR: Re-render of {event.file_path.name} failed: {e}[/red]")

    def _handle_event(self, event_type: EventType, src_path: str):
        if self._should_ignore(src_path):
            return

        with self._lock:
            # One entry per document; the last thing that happened to it wins
            self._pending_events[src_path] = FileChangeEvent(
                file_path=Path(src_path),
                event_type=event_type,
                timestamp=datetime.now(),
            )
        self._restart_timer()

    def cancel(self):
        """Drop pending events without delivering them."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending_events.clear()

    def on_created(self, event):
        if not event.is_directory:
            self._handle_event("created", event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._handle_event("modified", event.src_path)

    def on_deleted(self, event):
        if not event.is_directory:
            self._handle_event("deleted", event.src_path)

    def on_moved(self, event):
        if event.is_directory:
            return
        # Atomic saves arrive as "survey.json.tmp -> survey.json"
        self._handle_event("deleted", event.src_path)
        self._handle_event("modified", event.dest_path)


class DefinitionWatcher:
    """
    Watches a directory tree of definition documents.

    Usage:
        watcher = DefinitionWatcher("flows", callback=rerender)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        path: str | Path,
        callback: Callable[[FileChangeEvent], None],
        debounce_seconds: float = 1.0,
    ):
        self.path = Path(path).resolve()
        self.handler = DebouncedHandler(callback, debounce_seconds)
        self._observer: Observer | None = None

    def start(self):
        if self._observer is not None:
            raise RuntimeError("Watcher is already running")

        self._observer = Observer()
        self._observer.schedule(self.handler, str(self.path), recursive=True)
        self._observer.start()
        console.print(f"[dim]Watching: {self.path}[/dim]")

    def stop(self):
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
        self.handler.cancel()
        console.print("[dim]Watcher stopped[/dim]")

    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()


def start_watching(
    path: str | Path,
    callback: Callable[[FileChangeEvent], None],
    debounce_seconds: float = 1.0,
) -> DefinitionWatcher:
    """Create a DefinitionWatcher for ``path`` and start it."""
    watcher = DefinitionWatcher(path, callback, debounce_seconds)
    watcher.start()
    return watcher


if __name__ == "__main__":
    def print_event(event: FileChangeEvent):
        console.print(f"[green]Event:[/green] {event.event_type} - {event.file_path}")

    watcher = start_watching(".", print_event)

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        watcher.stop()

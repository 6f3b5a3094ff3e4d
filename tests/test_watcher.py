"""Tests for the definition watcher."""

import tempfile
import time
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from branchflow.watcher.file_watcher import DebouncedHandler, DefinitionWatcher, FileChangeEvent


class TestDebouncedHandler:
    """Test cases for the DebouncedHandler."""

    def test_ignores_non_definition_files(self):
        """Only .json files are definitions."""
        handler = DebouncedHandler(callback=MagicMock())

        assert handler._should_ignore("test.txt") is True
        assert handler._should_ignore("FLOWCHART.md") is True
        assert handler._should_ignore("main.py") is True
        assert handler._should_ignore("diagram.mmd") is True

    def test_accepts_definition_files(self):
        """JSON files anywhere in the tree should be accepted."""
        handler = DebouncedHandler(callback=MagicMock())

        assert handler._should_ignore("flowchart.json") is False
        assert handler._should_ignore("/path/to/flows/survey.json") is False

    def test_ignores_output_directory(self):
        """Rendered output should never trigger another render."""
        handler = DebouncedHandler(callback=MagicMock())

        assert handler._should_ignore("output/survey.json") is True
        assert handler._should_ignore("/path/output/survey.json") is True

    def test_ignores_tooling_directories(self):
        """VCS and environment directories should be ignored."""
        handler = DebouncedHandler(callback=MagicMock())

        assert handler._should_ignore(".git/config.json") is True
        assert handler._should_ignore("node_modules/pkg/package.json") is True
        assert handler._should_ignore(".venv/lib/data.json") is True

    def test_latest_event_per_file_wins(self):
        """Pending events are collapsed per path."""
        callback = MagicMock()
        handler = DebouncedHandler(callback=callback, debounce_seconds=60)

        handler._handle_event("created", "/flows/a.json")
        handler._handle_event("modified", "/flows/a.json")
        handler._timer.cancel()
        handler._fire_callback()

        assert callback.call_count == 1
        assert callback.call_args[0][0].event_type == "modified"

    def test_atomic_save_is_a_modification(self):
        """A temp file renamed over a definition counts as a change to it."""
        callback = MagicMock()
        handler = DebouncedHandler(callback=callback, debounce_seconds=60)

        handler.on_moved(
            MagicMock(is_directory=False, src_path="/flows/.survey.json.swp", dest_path="/flows/survey.json")
        )
        handler._timer.cancel()
        handler._fire_callback()

        assert callback.call_count == 1
        event = callback.call_args[0][0]
        assert event.event_type == "modified"
        assert event.file_path == Path("/flows/survey.json")

    def test_rename_between_definitions(self):
        """Renaming a.json to b.json removes one document and adds the other."""
        callback = MagicMock()
        handler = DebouncedHandler(callback=callback, debounce_seconds=60)

        handler.on_moved(MagicMock(is_directory=False, src_path="/flows/a.json", dest_path="/flows/b.json"))
        handler._timer.cancel()
        handler._fire_callback()

        seen = {(c.args[0].file_path.name, c.args[0].event_type) for c in callback.call_args_list}
        assert seen == {("a.json", "deleted"), ("b.json", "modified")}

    def test_cancel_drops_pending_events(self):
        callback = MagicMock()
        handler = DebouncedHandler(callback=callback, debounce_seconds=60)

        handler._handle_event("modified", "/flows/a.json")
        handler.cancel()
        handler._fire_callback()

        callback.assert_not_called()

    def test_callback_errors_do_not_stop_other_events(self):
        """One failing callback should not drop the remaining events."""
        callback = MagicMock(side_effect=[ValueError("boom"), None])
        handler = DebouncedHandler(callback=callback, debounce_seconds=60)

        handler._handle_event("modified", "/flows/a.json")
        handler._handle_event("modified", "/flows/b.json")
        handler._timer.cancel()
        handler._fire_callback()

        assert callback.call_count == 2


class TestDefinitionWatcher:
    """Test cases for the DefinitionWatcher."""

    def test_watcher_starts_and_stops(self):
        """Watcher should start and stop cleanly."""
        with tempfile.TemporaryDirectory() as tmpdir:
            callback = MagicMock()
            watcher = DefinitionWatcher(path=tmpdir, callback=callback)

            watcher.start()
            assert watcher.is_running() is True

            watcher.stop()
            assert watcher.is_running() is False

    def test_watcher_cannot_start_twice(self):
        """Starting an already running watcher should raise an error."""
        with tempfile.TemporaryDirectory() as tmpdir:
            callback = MagicMock()
            watcher = DefinitionWatcher(path=tmpdir, callback=callback)

            watcher.start()
            with pytest.raises(RuntimeError):
                watcher.start()

            watcher.stop()

    def test_debouncing_consolidates_events(self):
        """Multiple rapid saves should result in at least one callback."""
        with tempfile.TemporaryDirectory() as tmpdir:
            callback = MagicMock()
            watcher = DefinitionWatcher(
                path=tmpdir,
                callback=callback,
                debounce_seconds=0.5,
            )

            watcher.start()

            definition = Path(tmpdir) / "survey.json"
            definition.write_text('{"nodes": []}')
            time.sleep(0.1)
            definition.write_text('{"nodes": [], "edges": []}')

            time.sleep(1.0)

            watcher.stop()

            assert callback.call_count >= 1
            assert all(
                call.args[0].file_path.name == "survey.json" for call in callback.call_args_list
            )


class TestFileChangeEvent:
    """Test cases for FileChangeEvent dataclass."""

    def test_event_creation(self):
        """FileChangeEvent should be created with correct fields."""
        event = FileChangeEvent(
            file_path=Path("/flows/survey.json"),
            event_type="modified",
            timestamp=datetime.now(),
        )

        assert event.file_path == Path("/flows/survey.json")
        assert event.event_type == "modified"

"""Reload the fact log when it is edited outside the process."""

import sys
from pathlib import Path

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from cronclaw.infrastructure.memory import PromptMemory


def _log(msg: str):
    print(msg, file=sys.stderr)


class MemoryFileHandler(FileSystemEventHandler):
    """Pushes changes of the watched fact file into PromptMemory."""

    def __init__(self, memory: PromptMemory):
        self._memory = memory
        self._target = memory.path.resolve()

    def _is_target(self, path: str) -> bool:
        return Path(path).resolve() == self._target

    def _emit(self, path: str, change_type: str):
        # Every event re-reads the file; reload() is a no-op when nothing changed
        if not self._is_target(path):
            return
        try:
            if self._memory.reload():
                _log(f"[watcher] {self._target.name} {change_type}, memory reloaded")
        except Exception as e:
            _log(f"[watcher] reload after {change_type} failed: {e}")

    def on_modified(self, event):
        if not event.is_directory:
            self._emit(event.src_path, "modified")

    def on_created(self, event):
        if not event.is_directory:
            self._emit(event.src_path, "created")

    def on_deleted(self, event):
        if not event.is_directory:
            self._emit(event.src_path, "deleted")

    def on_moved(self, event):
        if not event.is_directory:
            self._emit(event.dest_path, "replaced")


def start_memory_watcher(memory: PromptMemory) -> Observer:
    """Start an OS-level watcher on the fact log's directory."""
    watch_dir = memory.path.resolve().parent
    watch_dir.mkdir(parents=True, exist_ok=True)
    observer = Observer()
    observer.schedule(MemoryFileHandler(memory), str(watch_dir), recursive=False)
    observer.daemon = True
    observer.start()
    _log(f"[watcher] watching {memory.path}")
    return observer


def stop_memory_watcher(observer: Observer, timeout: float = 5.0) -> None:
    """Stop the watcher thread and wait for it to exit."""
    observer.stop()
    observer.join(timeout)
    if observer.is_alive():
        _log(f"[watcher] observer did not stop within {timeout:.0f}s")

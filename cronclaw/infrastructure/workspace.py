"""Workspace directory for files the agent is asked to save."""

import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from cronclaw.ports.outbound import FileLogPort


def _log(msg: str):
    print(msg, file=sys.stderr)


@dataclass
class FileInfo:
    name: str
    size: int
    modified: datetime


def _safe_name(filename: str) -> Optional[str]:
    """Strip any directory part; None if nothing usable is left."""
    name = Path(filename.replace("\\", "/")).name
    if not name or name in (".", ".."):
        return None
    return name


class Workspace:
    """Flat directory of generated files. Never overwrites an existing file."""

    def __init__(self, path: str, file_log: Optional[FileLogPort] = None):
        self._path = Path(path)
        self._path.mkdir(parents=True, exist_ok=True)
        self._file_log = file_log

    @property
    def path(self) -> Path:
        return self._path

    def _free_path(self, name: str) -> Path:
        candidate = self._path / name
        if not candidate.exists():
            return candidate
        stem = Path(name).stem or "untitled"
        suffix = Path(name).suffix or ".txt"
        counter = 1
        while True:
            candidate = self._path / f"{stem}_{counter}{suffix}"
            if not candidate.exists():
                return candidate
            counter += 1

    def save_file(self, filename: str, content: str) -> Path:
        """Write ``content`` under the base name of ``filename``; returns the final path."""
        safe_name = _safe_name(filename) or "untitled.txt"
        final_path = self._free_path(safe_name)
        final_path.write_text(content, encoding="utf-8")
        if self._file_log is not None:
            self._file_log.log_file(final_path.name, f"Generated file: {safe_name}")
        _log(f"[workspace] saved file: {final_path}")
        return final_path

    def list_files(self) -> List[FileInfo]:
        files = []
        for entry in self._path.iterdir():
            if not entry.is_file():
                continue
            stat = entry.stat()
            files.append(FileInfo(
                name=entry.name,
                size=stat.st_size,
                modified=datetime.fromtimestamp(stat.st_mtime),
            ))
        files.sort(key=lambda f: f.name)
        return files

    def read_file(self, filename: str) -> Optional[str]:
        safe_name = _safe_name(filename)
        if safe_name is None:
            return None
        path = self._path / safe_name
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

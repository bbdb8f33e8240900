"""File explorer operations on the shared folder."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

TEXT_EXTENSIONS = frozenset(
    {
        ".txt", ".log", ".csv", ".json", ".xml", ".yaml", ".yml",
        ".html", ".htm", ".css", ".js", ".ts", ".dart", ".java", ".py",
        ".c", ".cpp", ".h", ".hpp", ".md", ".sh", ".bat", ".ps1", ".sql",
        ".php", ".go", ".rb", ".rs", ".swift", ".toml", ".ini", ".cfg",
        ".conf", ".env", ".gitignore",
    }
)


class DirectoryNotEmptyError(OSError):
    """Raised when deleting a directory that still has contents."""


class OutsideRootError(ValueError):
    """Raised when an explorer path points outside the shared folder."""


@dataclass
class Entry:
    name: str
    path: str
    is_dir: bool
    size: int = 0
    modified: float = 0.0

    def to_dict(self, root: str | None = None) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "isDir": self.is_dir,
            "size": self.size,
            "modified": self.modified,
        }
        if root is not None:
            data["relativePath"] = Path(os.path.relpath(self.path, root)).as_posix()
        return data


def _sort_key(entry: Entry) -> tuple[bool, str]:
    return (not entry.is_dir, entry.path.lower())


def list_directory(path: str | Path) -> list[Entry]:
    """List *path*: directories first, then files, each case-insensitively by path."""
    directory = Path(path)
    if not directory.exists():
        raise FileNotFoundError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")

    entries: list[Entry] = []
    for item in directory.iterdir():
        try:
            is_dir = item.is_dir()
            stat = item.stat()
        except OSError:
            continue
        entries.append(
            Entry(
                name=item.name,
                path=str(item),
                is_dir=is_dir,
                size=0 if is_dir else stat.st_size,
                modified=stat.st_mtime,
            )
        )
    entries.sort(key=_sort_key)
    return entries


def delete_entry(path: str | Path) -> bool:
    """Delete a file or an empty directory. Returns True if it was a directory."""
    target = Path(path)
    if target.is_dir() and not target.is_symlink():
        if any(target.iterdir()):
            raise DirectoryNotEmptyError(f"Directory is not empty: {target}")
        target.rmdir()
        return True
    target.unlink()
    return False


def is_text_file(path: str | Path) -> bool:
    name = Path(path).name.lower()
    if name in TEXT_EXTENSIONS:
        # dotfiles such as ".gitignore" have no suffix
        return True
    return Path(name).suffix in TEXT_EXTENSIONS


def read_text(path: str | Path) -> str:
    target = Path(path)
    if not is_text_file(target):
        raise ValueError(f"Not a text file: {target.name}")
    return target.read_text(encoding="utf-8")


def resolve_inside(root: str | Path, relative: str = "") -> Path:
    """Resolve *relative* under *root*, refusing paths that escape it."""
    base = Path(root).resolve()
    candidate = (base / relative.lstrip("/\\")).resolve() if relative else base
    if candidate != base and base not in candidate.parents:
        raise OutsideRootError(f"Path is outside the shared folder: {relative}")
    return candidate


def download_url(base_url: str, root: str | Path, path: str | Path) -> str:
    """URL under which the running server serves *path*."""
    relative = Path(os.path.relpath(Path(path), Path(root))).as_posix()
    if relative == ".":
        relative = ""
    return base_url.rstrip("/") + "/" + quote(relative)

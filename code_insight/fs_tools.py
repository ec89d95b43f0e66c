"""Local filesystem traversal for code-insight.

This module walks a project directory, applies the exclusion rules from
``filters``, and loads every surviving file as UTF-8 text. Nothing here
raises because a single subdirectory or file is unreadable: such failures
are logged and collected on the returned ``TraversalReport`` so that the
rest of the tree is still analyzed.
"""

from __future__ import annotations

import asyncio
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .exceptions import InputError, RootNotDirectoryError, RootNotFoundError
from .filters import FilterPolicy, default_filter_policy
from .logging import logger
from .models import FileRecord, guess_declared_type, is_image_type


@dataclass(frozen=True)
class TraversalIssue:
    """A listing, stat or read failure absorbed during a walk."""

    path: str
    message: str


@dataclass
class TraversalReport:
    """Outcome of one walk; built per request and discarded afterwards.

    ``files`` keeps directory order (entries sorted by name within each
    directory), but callers should treat it as a set of paths.
    """

    root: str
    files: List[FileRecord] = field(default_factory=list)
    skipped_filtered: List[str] = field(default_factory=list)
    skipped_binary: List[str] = field(default_factory=list)
    errors: List[TraversalIssue] = field(default_factory=list)

    @property
    def analyzable_count(self) -> int:
        return sum(1 for f in self.files if f.has_content)

    @property
    def relative_paths(self) -> List[str]:
        return [f.relative_path for f in self.files]


def resolve_root(path_str: Optional[str]) -> Path:
    """Validate a traversal root and return it as an absolute path.

    Raises:
        InputError: If no path was given.
        RootNotFoundError: If the path does not exist or cannot be listed.
        RootNotDirectoryError: If the path is not a directory.
    """
    if path_str is None or not str(path_str).strip():
        raise InputError("Directory path is required")

    raw_path = Path(str(path_str).strip()).expanduser()
    try:
        st = raw_path.stat()
    except OSError:
        raise RootNotFoundError(str(path_str)) from None

    if not stat.S_ISDIR(st.st_mode):
        raise RootNotDirectoryError(str(path_str))
    if not os.access(raw_path, os.R_OK | os.X_OK):
        raise RootNotFoundError(str(path_str))

    return raw_path.resolve()


def _read_text(path: Path) -> str:
    # Bytes are decoded as-is so that line endings survive unchanged.
    return path.read_bytes().decode("utf-8")


def load_text(path: Path | str) -> Optional[str]:
    """Return the full UTF-8 content of a file, or None if it cannot be decoded or read."""
    try:
        return _read_text(Path(path))
    except (UnicodeDecodeError, OSError):
        return None


def load_file_record(path_str: Optional[str]) -> FileRecord:
    """Stat and load a single live file as a FileRecord.

    Raises:
        InputError: If no path was given or the path is a directory.
        RootNotFoundError: If the file does not exist or cannot be stat'ed.
    """
    if path_str is None or not str(path_str).strip():
        raise InputError("File path is required")

    path = Path(str(path_str).strip()).expanduser()
    try:
        st = path.stat()
    except OSError:
        raise RootNotFoundError(str(path_str), "File not found or not accessible") from None
    if stat.S_ISDIR(st.st_mode):
        raise InputError(f"Path is a directory, not a file: {path_str}")

    declared_type = guess_declared_type(path.name)
    content = None if is_image_type(declared_type) else load_text(path)
    return FileRecord(
        name=path.name,
        relative_path=path.name,
        declared_type=declared_type,
        size_bytes=st.st_size,
        content=content,
    )


def _list_entries(path: Path) -> List[os.DirEntry]:
    with os.scandir(path) as it:
        return sorted(it, key=lambda e: e.name)


def walk_directory(root: Path | str, policy: Optional[FilterPolicy] = None) -> TraversalReport:
    """Recursively collect FileRecords under ``root``.

    Depth is unbounded and the walk is sequential. Filtered directory names
    prune their whole subtree; filtered extensions drop the file. Every other
    regular file yields a record, with ``content`` set to None when it is
    binary, unreadable or an image. Symlinks are not followed.

    Args:
        root: Directory to walk. Should already be validated via resolve_root().
        policy: Exclusion rules; defaults to default_filter_policy().

    Returns:
        A TraversalReport describing included, skipped and failed entries.
    """
    root_path = Path(root)
    active_policy = policy or default_filter_policy()
    report = TraversalReport(root=str(root_path))

    def relative(path: Path) -> str:
        rel = path.relative_to(root_path).as_posix()
        return "" if rel == "." else rel

    def load_record(path: Path, name: str, rel_path: str, size: int) -> FileRecord:
        declared_type = guess_declared_type(name)
        content: Optional[str] = None
        if is_image_type(declared_type):
            report.skipped_binary.append(rel_path)
        else:
            try:
                content = _read_text(path)
            except UnicodeDecodeError:
                report.skipped_binary.append(rel_path)
            except OSError as e:
                logger.warning("walk.file_read_error", path=str(path), error=str(e))
                report.errors.append(TraversalIssue(rel_path, str(e)))
                report.skipped_binary.append(rel_path)

        return FileRecord(
            name=name,
            relative_path=rel_path,
            declared_type=declared_type,
            size_bytes=size,
            content=content,
        )

    def traverse(current: Path) -> None:
        try:
            entries = _list_entries(current)
        except OSError as e:
            logger.warning("walk.directory_error", path=str(current), error=str(e))
            report.errors.append(TraversalIssue(relative(current), str(e)))
            return

        for entry in entries:
            entry_path = current / entry.name
            rel_path = relative(entry_path)

            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = not is_dir and entry.is_file(follow_symlinks=False)
            except OSError as e:
                logger.warning("walk.entry_error", path=str(entry_path), error=str(e))
                report.errors.append(TraversalIssue(rel_path, str(e)))
                continue

            if is_dir:
                if active_policy.is_skipped_directory(entry.name):
                    report.skipped_filtered.append(rel_path)
                    continue
                traverse(entry_path)
            elif is_file:
                ext = os.path.splitext(entry.name)[1].lower()
                if active_policy.is_skipped_file(ext):
                    report.skipped_filtered.append(rel_path)
                    continue

                try:
                    size = entry.stat(follow_symlinks=False).st_size
                except OSError as e:
                    logger.warning("walk.stat_error", path=str(entry_path), error=str(e))
                    report.errors.append(TraversalIssue(rel_path, str(e)))
                    continue

                report.files.append(load_record(entry_path, entry.name, rel_path, size))

    traverse(root_path)

    logger.info(
        "walk.complete",
        root=str(root_path),
        files=len(report.files),
        analyzable=report.analyzable_count,
        skipped_filtered=len(report.skipped_filtered),
        skipped_binary=len(report.skipped_binary),
        errors=len(report.errors),
    )
    return report


async def walk_directory_async(root: Path | str, policy: Optional[FilterPolicy] = None) -> TraversalReport:
    """Run walk_directory() in a worker thread so the event loop stays responsive."""
    return await asyncio.to_thread(walk_directory, root, policy)


__all__ = [
    "TraversalIssue",
    "TraversalReport",
    "resolve_root",
    "load_text",
    "load_file_record",
    "walk_directory",
    "walk_directory_async",
]

"""Directory and extension filters applied while walking a file tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable

from . import config

SKIP_DIRECTORY_NAMES = frozenset(
    {
        "node_modules",
        ".git",
        ".next",
        "dist",
        "build",
        ".cache",
        "coverage",
        "__pycache__",
        ".venv",
        "venv",
        ".idea",
        ".vscode",
    }
)

SKIP_EXTENSIONS = frozenset(
    {
        # images
        ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".svg",
        # video
        ".mp4", ".avi", ".mov", ".wmv", ".flv",
        # audio
        ".mp3", ".wav", ".ogg", ".flac",
        # archives
        ".zip", ".tar", ".gz", ".rar", ".7z",
        # executables and libraries
        ".exe", ".dll", ".so", ".dylib",
        # office documents
        ".pdf", ".doc", ".docx", ".xls", ".xlsx",
    }
)


def normalize_extension(ext: str) -> str:
    """Return ``ext`` lower-cased and dot-prefixed ("PNG" -> ".png")."""
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


@dataclass(frozen=True)
class FilterPolicy:
    """Exact-match exclusion rules.

    Directory names are compared case-sensitively against a single path
    segment; a match prunes the whole subtree. Extensions are compared
    against the lower-cased suffix including its leading dot. There is no
    glob support: ``node_modules`` is pruned, ``node_modules_old`` is not.
    """

    skip_directory_names: FrozenSet[str] = field(default=SKIP_DIRECTORY_NAMES)
    skip_extensions: FrozenSet[str] = field(default=SKIP_EXTENSIONS)

    def __post_init__(self) -> None:
        object.__setattr__(self, "skip_directory_names", frozenset(self.skip_directory_names))
        object.__setattr__(
            self,
            "skip_extensions",
            frozenset(normalize_extension(e) for e in self.skip_extensions if e.strip()),
        )

    def is_skipped_directory(self, name: str) -> bool:
        return name in self.skip_directory_names

    def is_skipped_file(self, extension: str) -> bool:
        return extension in self.skip_extensions

    def extended(
        self,
        extra_dirs: Iterable[str] = (),
        extra_extensions: Iterable[str] = (),
    ) -> "FilterPolicy":
        """Return a new policy with additional directory names and extensions."""
        return FilterPolicy(
            skip_directory_names=self.skip_directory_names | frozenset(extra_dirs),
            skip_extensions=self.skip_extensions | frozenset(extra_extensions),
        )


DEFAULT_FILTER_POLICY = FilterPolicy()


def default_filter_policy() -> FilterPolicy:
    """Built-in policy plus any extra filters configured via environment."""
    if not config.EXTRA_SKIP_DIRS and not config.EXTRA_SKIP_EXTENSIONS:
        return DEFAULT_FILTER_POLICY
    return DEFAULT_FILTER_POLICY.extended(config.EXTRA_SKIP_DIRS, config.EXTRA_SKIP_EXTENSIONS)


__all__ = [
    "FilterPolicy",
    "DEFAULT_FILTER_POLICY",
    "SKIP_DIRECTORY_NAMES",
    "SKIP_EXTENSIONS",
    "default_filter_policy",
    "normalize_extension",
]

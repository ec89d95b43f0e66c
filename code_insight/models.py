"""In-memory file descriptors shared by the walker and the context builder."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Mapping, Optional

from .exceptions import InputError

DEFAULT_DECLARED_TYPE = "text/plain"


def guess_declared_type(name: str) -> str:
    """Return a MIME-like type for a file name, defaulting to text/plain."""
    guessed, _ = mimetypes.guess_type(name, strict=False)
    return guessed or DEFAULT_DECLARED_TYPE


def is_image_type(declared_type: Optional[str]) -> bool:
    return bool(declared_type) and declared_type.lower().startswith("image")


@dataclass(frozen=True)
class FileRecord:
    """One traversed or stored file.

    Attributes:
        name: Base file name.
        relative_path: Path relative to the traversal root, using "/" separators.
        declared_type: MIME-like type (e.g. "text/x-python", "image/png").
        size_bytes: Size reported by the filesystem or upload metadata.
        content: Decoded text, or None when binary, unreadable or an image.
    """

    name: str
    relative_path: str
    declared_type: str = DEFAULT_DECLARED_TYPE
    size_bytes: int = 0
    content: Optional[str] = None

    def __post_init__(self) -> None:
        # Image-family files never carry text content.
        if self.content is not None and is_image_type(self.declared_type):
            object.__setattr__(self, "content", None)

    @property
    def has_content(self) -> bool:
        return self.content is not None

    @property
    def is_image(self) -> bool:
        return is_image_type(self.declared_type)

    @classmethod
    def from_stored(cls, row: Mapping[str, Any]) -> "FileRecord":
        """Build a record from a persisted file row.

        Rows use the upload shape ``{name, path, type, size, content}``;
        ``relative_path``/``declared_type``/``size_bytes`` are accepted too.
        A missing ``type`` is guessed from the file name.

        Raises:
            InputError: The row has no name or path, or a non-numeric size.
        """
        raw_path = row.get("relative_path") or row.get("path") or row.get("name") or ""
        relative_path = str(raw_path).replace("\\", "/")
        name = row.get("name") or PurePosixPath(relative_path).name
        if not name:
            raise InputError("Stored file row has neither a name nor a path")

        content = row.get("content")
        declared_type = row.get("declared_type") or row.get("type") or guess_declared_type(name)

        size = row.get("size_bytes", row.get("size"))
        if size is None:
            size = len(content.encode("utf-8")) if isinstance(content, str) else 0
        try:
            size = int(size)
        except (TypeError, ValueError):
            raise InputError(f"Stored file row {relative_path or name!r} has an invalid size: {size!r}") from None

        return cls(
            name=name,
            relative_path=relative_path or name,
            declared_type=declared_type,
            size_bytes=size,
            content=content if isinstance(content, str) else None,
        )


__all__ = [
    "FileRecord",
    "DEFAULT_DECLARED_TYPE",
    "guess_declared_type",
    "is_image_type",
]

"""Value types returned by the forge client."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class EntryKind(str, Enum):
    """Kind of a tree entry, using the forge's own type names."""
    BLOB = "blob"
    TREE = "tree"


@dataclass(frozen=True)
class PathEntry:
    """One file-or-directory record of a flat recursive tree listing."""

    path: str
    kind: EntryKind
    size: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.path:
            raise ValueError("PathEntry.path cannot be empty")

    @property
    def segments(self) -> list[str]:
        return [s for s in self.path.split("/") if s]

    @property
    def depth(self) -> int:
        return len(self.segments)

    @classmethod
    def from_api(cls, item: Mapping[str, Any]) -> Optional["PathEntry"]:
        """Build from a git/trees item; None for submodules and empty paths."""
        try:
            kind = EntryKind(item.get("type"))
        except ValueError:
            return None
        path = item.get("path") or ""
        if not path:
            return None
        size = item.get("size")
        return cls(path=path, kind=kind, size=size if isinstance(size, int) else None)


@dataclass(frozen=True)
class Readme:
    """Decoded repository README."""

    name: str
    path: str
    content: str

"""Deterministic tree-to-graph compiler.

Turns a flat, ordered list of tree entries into a bounded, deduplicated
graph description: a root declaration followed by node and edge
declarations in first-seen order. The builder keeps no state between
calls, so identical input always renders byte-identical output.
"""

import hashlib
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Sequence, Union

from narrator.app.core.config import DEFAULT_IGNORE_NAMES
from narrator.app.forge.models import EntryKind, PathEntry

ROOT_ID = "root"
NODE_PREFIX = "node"
ID_SEPARATOR = "_"

# Anything outside this set is unsafe in a Mermaid identifier
_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_]")


class NodeKind(str, Enum):
    FILE = "file"
    CONTAINER = "container"


@dataclass(frozen=True)
class GraphNode:
    id: str
    label: str
    kind: NodeKind


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str


Statement = Union[GraphNode, GraphEdge]


@dataclass(frozen=True)
class GraphOptions:
    """Bounds applied while building a graph.

    Attributes:
        max_nodes: Scanning stops once more than this many nodes were declared
        max_depth: Entries with more segments than this are skipped
        ignore_names: Entries with any segment in this set are skipped
    """

    max_nodes: int = 50
    max_depth: int = 3
    ignore_names: frozenset = field(default_factory=lambda: frozenset(DEFAULT_IGNORE_NAMES))

    def __post_init__(self) -> None:
        if self.max_nodes < 1 or self.max_depth < 1:
            raise ValueError("max_nodes and max_depth must be at least 1")
        object.__setattr__(self, "ignore_names", frozenset(self.ignore_names))

    def accepts(self, segments: Sequence[str]) -> bool:
        """Whether an entry with these path segments passes the depth and ignore filters."""
        if not segments or len(segments) > self.max_depth:
            return False
        return not any(segment in self.ignore_names for segment in segments)


@dataclass
class Graph:
    """Ordered graph description: root first, then declarations in scan order."""

    root: GraphNode
    statements: List[Statement] = field(default_factory=list)
    truncated: bool = False

    @property
    def nodes(self) -> List[GraphNode]:
        return [s for s in self.statements if isinstance(s, GraphNode)]

    @property
    def edges(self) -> List[GraphEdge]:
        return [s for s in self.statements if isinstance(s, GraphEdge)]

    def render(self, direction: str = "LR") -> str:
        """Render as Mermaid flowchart text."""
        lines = [
            f"graph {direction}",
            f'{self.root.id}["{escape_label(self.root.label)}"]',
            f"style {self.root.id} fill:#58a6ff,stroke:#333,stroke-width:2px,color:#fff",
        ]
        for statement in self.statements:
            if isinstance(statement, GraphEdge):
                lines.append(f"{statement.source} --> {statement.target}")
            elif statement.kind is NodeKind.FILE:
                lines.append(f'{statement.id}("{escape_label(statement.label)}")')
            else:
                lines.append(f'{statement.id}[["{escape_label(statement.label)}"]]')
        return "\n".join(lines)


def escape_label(label: str) -> str:
    return label.replace('"', "#quot;")


def node_id(segments: Sequence[str]) -> str:
    """Derive a render-safe node id from a path prefix.

    The readable part joins the segments and replaces unsafe characters
    (hyphens, dots, whitespace and the rest) with underscores. A short
    digest of the exact segment sequence keeps ids distinct when two
    prefixes sanitize to the same text (``a-b`` vs ``a_b`` vs ``a/b``).
    """
    readable = _UNSAFE_ID_CHARS.sub(ID_SEPARATOR, ID_SEPARATOR.join(segments))
    digest = hashlib.blake2b("\x00".join(segments).encode("utf-8"), digest_size=4).hexdigest()
    return f"{NODE_PREFIX}{ID_SEPARATOR}{readable}{ID_SEPARATOR}{digest}"


class TreeGraphBuilder:
    """Pure, synchronous builder shared by the basic and advanced diagram modes."""

    def __init__(self, options: GraphOptions | None = None):
        self.options = options or GraphOptions()

    def build(
        self,
        entries: Iterable[PathEntry],
        root_label: str = "Repository",
        options: GraphOptions | None = None,
    ) -> Graph:
        """Compile entries into a graph.

        Entries are scanned in input order. Once more than ``max_nodes``
        nodes have been declared the scan stops; everything declared so far
        is kept, so a smaller bound always yields a prefix of a larger one.
        A node's kind is fixed when it is first declared: ``FILE`` only when
        it is the last segment of a blob entry, ``CONTAINER`` otherwise.
        """
        options = options or self.options
        graph = Graph(root=GraphNode(id=ROOT_ID, label=root_label, kind=NodeKind.CONTAINER))
        declared: set[str] = {ROOT_ID}
        linked: set[tuple[str, str]] = set()
        count = 0

        for entry in entries:
            if count > options.max_nodes:
                graph.truncated = True
                break

            segments = entry.segments
            if not options.accepts(segments):
                continue

            parent = ROOT_ID
            last = len(segments) - 1
            for index, segment in enumerate(segments):
                current = node_id(segments[: index + 1])

                if current not in declared:
                    is_file = index == last and entry.kind is EntryKind.BLOB
                    graph.statements.append(
                        GraphNode(
                            id=current,
                            label=segment,
                            kind=NodeKind.FILE if is_file else NodeKind.CONTAINER,
                        )
                    )
                    declared.add(current)
                    count += 1

                if (parent, current) not in linked:
                    graph.statements.append(GraphEdge(source=parent, target=current))
                    linked.add((parent, current))

                parent = current

        return graph

    def flat_paths(
        self,
        entries: Iterable[PathEntry],
        max_chars: int = 2000,
        options: GraphOptions | None = None,
    ) -> List[str]:
        """Filtered path list used as text-generation context.

        Applies the same depth and ignore filters as ``build`` without the
        node/edge expansion, and stops before the joined text would exceed
        ``max_chars`` (whole lines only).
        """
        options = options or self.options
        paths: List[str] = []
        used = 0
        for entry in entries:
            if not options.accepts(entry.segments):
                continue
            cost = len(entry.path) + (1 if paths else 0)
            if used + cost > max_chars:
                break
            paths.append(entry.path)
            used += cost
        return paths

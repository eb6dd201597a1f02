"""Analysis services for GitNarrator.

This package provides:
- The tree-to-graph compiler (TreeGraphBuilder)
- Mermaid diagram generation with optional generated architecture views
- Repository, commit and branch analysis
- Generated prose summaries
"""

from narrator.app.services.analyzer import RepositoryAnalyzer
from narrator.app.services.branch_comparator import BranchComparator
from narrator.app.services.commit_analyzer import CommitAnalyzer
from narrator.app.services.diagram import DiagramGenerator, DiagramMode, DiagramResult
from narrator.app.services.module_classifier import ModuleClassifier
from narrator.app.services.tree_graph import (
    Graph,
    GraphEdge,
    GraphNode,
    GraphOptions,
    NodeKind,
    TreeGraphBuilder,
)

__all__ = [
    "RepositoryAnalyzer",
    "BranchComparator",
    "CommitAnalyzer",
    "DiagramGenerator",
    "DiagramMode",
    "DiagramResult",
    "ModuleClassifier",
    "Graph",
    "GraphEdge",
    "GraphNode",
    "GraphOptions",
    "NodeKind",
    "TreeGraphBuilder",
]

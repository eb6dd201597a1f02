"""Path-based module classification."""

import re
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from narrator.app.forge.models import PathEntry
from narrator.app.services.models import ModuleStat

DEFAULT_MODULE = "Source Code"

_IMAGE_SUFFIX = re.compile(r"\.(png|jpe?g|gif|svg|ico)$")

# (category, substrings, suffixes), checked in order; first match wins
MODULE_RULES: List[Tuple[str, Tuple[str, ...], Tuple[str, ...]]] = [
    (
        "UI/Components",
        ("component", "ui/", "view/", "page/", "screen/", "template"),
        (".jsx", ".tsx"),
    ),
    (
        "API/Backend",
        ("api/", "route/", "endpoint/", "controller/", "handler/", "service/"),
        (),
    ),
    (
        "Utils/Helpers",
        ("util/", "helper/", "lib/", "common/", "shared/"),
        (),
    ),
    (
        "Configuration",
        ("config/", "setting/", "package.json", "tsconfig.json"),
        (".config.js", ".env"),
    ),
    (
        "Tests",
        ("test/", "spec/", "__test__/", "__tests__/"),
        (".test.js", ".spec.js"),
    ),
    (
        "Database",
        ("model/", "schema/", "db/", "database/", "migration/"),
        (),
    ),
    (
        "Styles",
        ("style/", "theme/"),
        (".css", ".scss", ".sass", ".less"),
    ),
    (
        "Documentation",
        ("doc/", "docs/", "readme"),
        (".md",),
    ),
    (
        "Assets",
        ("asset/", "image/", "img/", "static/"),
        (),
    ),
]


class ModuleClassifier:
    """Classifies files into module categories by path patterns."""

    @staticmethod
    def classify(path: str) -> str:
        lowered = path.lower()
        for category, substrings, suffixes in MODULE_RULES:
            if any(s in lowered for s in substrings) or lowered.endswith(suffixes):
                return category
        if _IMAGE_SUFFIX.search(lowered):
            return "Assets"
        return DEFAULT_MODULE

    @classmethod
    def group_by_module(cls, entries: Iterable[PathEntry]) -> Dict[str, List[str]]:
        modules: Dict[str, List[str]] = defaultdict(list)
        for entry in entries:
            modules[cls.classify(entry.path)].append(entry.path)
        return dict(modules)

    @staticmethod
    def module_stats(modules: Dict[str, List[str]]) -> List[ModuleStat]:
        """Per-module file counts, largest first (ties by name)."""
        stats = [
            ModuleStat(name=name, file_count=len(files), files=list(files))
            for name, files in modules.items()
        ]
        stats.sort(key=lambda s: (-s.file_count, s.name))
        return stats

"""Branch comparison analysis."""

from typing import Any, List, Mapping, Optional

from narrator.app.services.models import BranchComparison, ChangedFiles, FileChange

_BUCKETS = ("added", "modified", "removed", "renamed")


def _plural(count: int, what: str) -> str:
    return f"{count} file{'s' if count != 1 else ''} {what}"


class BranchComparator:
    @classmethod
    def analyze(cls, comparison: Optional[Mapping[str, Any]]) -> BranchComparison:
        """Bucket a forge compare payload into added/modified/removed/renamed files.

        Files with other statuses (copied, changed, unchanged) count toward the
        line totals but are not bucketed.
        """
        if not comparison or comparison.get("files") is None:
            return BranchComparison()

        files = ChangedFiles()
        additions = deletions = 0
        for item in comparison["files"]:
            change = FileChange(
                path=item.get("filename", ""),
                status=item.get("status", "modified"),
                additions=item.get("additions") or 0,
                deletions=item.get("deletions") or 0,
                changes=item.get("changes") or 0,
                previous_path=item.get("previous_filename"),
            )
            additions += change.additions
            deletions += change.deletions
            if change.status in _BUCKETS:
                getattr(files, change.status).append(change)

        # the compare payload may carry totals; prefer them over the per-file sums
        additions = comparison.get("additions", additions) or 0
        deletions = comparison.get("deletions", deletions) or 0

        return BranchComparison(
            status=comparison.get("status") or "unknown",
            ahead=comparison.get("ahead_by") or 0,
            behind=comparison.get("behind_by") or 0,
            files=files,
            total_changes=additions + deletions,
            additions=additions,
            deletions=deletions,
            summary=cls.summarize(files, additions, deletions),
        )

    @staticmethod
    def summarize(files: ChangedFiles, additions: int, deletions: int) -> str:
        parts = [
            _plural(len(getattr(files, bucket)), bucket)
            for bucket in _BUCKETS
            if getattr(files, bucket)
        ]
        if additions + deletions > 0:
            parts.append(f"{additions} additions, {deletions} deletions")
        if not parts:
            return "No changes between branches"
        return "; ".join(parts)

    @staticmethod
    def significant_changes(result: BranchComparison, limit: int = 10) -> List[FileChange]:
        """Added, modified and removed files ranked by line churn, largest first."""
        candidates = result.files.added + result.files.modified + result.files.removed
        ranked = sorted(candidates, key=lambda f: f.churn, reverse=True)
        return ranked[:limit]

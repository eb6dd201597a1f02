"""Repository analysis orchestrator.

Sequences the forge calls needed to describe one repository branch and
assembles the results into an AnalysisRecord. Calls run one after another
through the shared client, so they all count against the same gate. The
orchestrator never retries; recovery policy lives in the client.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from narrator.app.core.logging import get_log_context, get_logger
from narrator.app.exceptions import ForbiddenError, NotFoundError, TransientError
from narrator.app.forge.client import ForgeClient
from narrator.app.forge.models import EntryKind
from narrator.app.services.commit_analyzer import CommitAnalyzer
from narrator.app.services.models import (
    AnalysisRecord,
    BranchInfo,
    CommitAnalysis,
    Contributor,
    Documentation,
    RepositoryInfo,
    StructureInfo,
    Technologies,
    TreeItem,
)
from narrator.app.services.module_classifier import ModuleClassifier

logger = get_logger(__name__)

ProgressCallback = Callable[[int, str], None]

TOTAL_STEPS = 10


class RepositoryAnalyzer:
    def __init__(
        self,
        client: ForgeClient,
        classifier: Optional[ModuleClassifier] = None,
        commit_analyzer: Optional[CommitAnalyzer] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.client = client
        self.classifier = classifier or ModuleClassifier()
        self.commit_analyzer = commit_analyzer or CommitAnalyzer()
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def analyze(
        self,
        owner: str,
        repo: str,
        branch: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> AnalysisRecord:
        """Analyze a repository branch.

        Args:
            owner: Repository owner
            repo: Repository name
            branch: Branch to analyze; the repository default when omitted
            progress: Optional callback receiving ``(step, message)`` for steps 1..10

        Returns:
            The assembled analysis record

        Raises:
            NotFoundError: The repository does not exist
            ForbiddenError: The repository is private
            ForgeError: Any other failure of a required call
        """

        def report(step: int, message: str) -> None:
            if progress is not None:
                progress(step, message)

        context = get_log_context(owner=owner, repo=repo)

        report(1, "Fetching repository details...")
        details = await self.client.get_repo_details(owner, repo)
        if details.get("private"):
            raise ForbiddenError(
                f'Repository "{owner}/{repo}" is private. Only public repositories are supported.'
            )
        repository = repository_info(owner, repo, details)
        target = branch or repository.default_branch

        report(2, "Fetching branches...")
        branches = [branch_info(b) for b in await self.client.get_branches(owner, repo)]

        report(3, f"Analyzing file structure of {target}...")
        entries = await self.client.get_tree(owner, repo, target)

        report(4, "Detecting technologies...")
        language_stats = await self.client.get_languages(owner, repo)

        report(5, "Reading documentation...")
        readme = await self.client.get_readme(owner, repo)

        report(6, "Classifying modules...")
        files = [e for e in entries if e.kind is EntryKind.BLOB]
        modules = self.classifier.group_by_module(files)

        report(7, "Analyzing commit history...")
        try:
            commits = await self.client.get_commits(owner, repo, target)
        except (TransientError, NotFoundError) as e:
            logger.warning(f"Commit history unavailable: {e}", extra=context)
            commits = []
        commit_analysis = (
            self.commit_analyzer.analyze(commits, now=self._now()) if commits else CommitAnalysis()
        )

        report(8, "Fetching contributors...")
        contributors = [_contributor(c) for c in await self.client.get_contributors(owner, repo)]

        report(9, "Assembling analysis...")
        record = AnalysisRecord(
            repository=repository,
            branch=target,
            branches=branches,
            structure=StructureInfo(
                total_files=len(files),
                total_size=sum(e.size or 0 for e in files),
                modules=self.classifier.module_stats(modules),
                tree=[TreeItem(path=e.path, kind=e.kind.value, size=e.size) for e in entries],
            ),
            technologies=Technologies(
                languages=list(language_stats.keys()),
                language_stats=language_stats,
            ),
            documentation=Documentation(name=readme.name, content=readme.content) if readme else None,
            commits=commit_analysis,
            contributors=contributors,
            analysis_date=self._now(),
        )

        report(TOTAL_STEPS, "Analysis complete")
        logger.info(f"Analyzed {owner}/{repo}@{target}: {len(files)} files", extra=context)
        return record


def repository_info(owner: str, repo: str, details: Dict[str, Any]) -> RepositoryInfo:
    return RepositoryInfo(
        owner=(details.get("owner") or {}).get("login", owner),
        name=details.get("name", repo),
        full_name=details.get("full_name", f"{owner}/{repo}"),
        description=details.get("description"),
        default_branch=details.get("default_branch") or "main",
        stars=details.get("stargazers_count", 0),
        forks=details.get("forks_count", 0),
        watchers=details.get("watchers_count", 0),
        open_issues=details.get("open_issues_count", 0),
        created_at=details.get("created_at"),
        updated_at=details.get("updated_at"),
        language=details.get("language"),
        url=details.get("html_url"),
    )


def branch_info(item: Dict[str, Any]) -> BranchInfo:
    return BranchInfo(
        name=item["name"],
        sha=(item.get("commit") or {}).get("sha"),
        protected=bool(item.get("protected", False)),
    )


def _contributor(item: Dict[str, Any]) -> Contributor:
    return Contributor(
        login=item.get("login", "unknown"),
        contributions=item.get("contributions", 0),
        avatar=item.get("avatar_url"),
        url=item.get("html_url"),
    )

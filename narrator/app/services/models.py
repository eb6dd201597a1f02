"""Analysis record models.

Pydantic models so records serialize directly in API responses.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RepositoryInfo(BaseModel):
    owner: str
    name: str
    full_name: str
    description: Optional[str] = None
    default_branch: str = "main"
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    open_issues: int = 0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    language: Optional[str] = None
    url: Optional[str] = None


class BranchInfo(BaseModel):
    name: str
    sha: Optional[str] = None
    protected: bool = False


class ModuleStat(BaseModel):
    name: str
    file_count: int
    files: List[str] = Field(default_factory=list)


class TreeItem(BaseModel):
    path: str
    kind: str
    size: Optional[int] = None


class StructureInfo(BaseModel):
    total_files: int = 0
    total_size: int = 0
    modules: List[ModuleStat] = Field(default_factory=list)
    tree: List[TreeItem] = Field(default_factory=list)


class Technologies(BaseModel):
    languages: List[str] = Field(default_factory=list)
    language_stats: Dict[str, int] = Field(default_factory=dict)


class Documentation(BaseModel):
    name: str
    content: str


class TimelineEntry(BaseModel):
    sha: str
    message: str
    author: str
    date: datetime
    url: Optional[str] = None


class AuthorCommit(BaseModel):
    message: str
    date: datetime


class AuthorStats(BaseModel):
    name: str
    count: int = 0
    commits: List[AuthorCommit] = Field(default_factory=list)


class AuthorSummary(BaseModel):
    total: int = 0
    top_contributors: List[AuthorStats] = Field(default_factory=list)
    distribution: Dict[str, AuthorStats] = Field(default_factory=dict)


class CommitFrequency(BaseModel):
    by_day: Dict[str, int] = Field(default_factory=dict)
    by_month: Dict[str, int] = Field(default_factory=dict)
    by_year: Dict[str, int] = Field(default_factory=dict)


class RecentActivity(BaseModel):
    last_week: int = 0
    last_month: int = 0
    is_active: bool = False


class CommitAnalysis(BaseModel):
    total_commits: int = 0
    timeline: List[TimelineEntry] = Field(default_factory=list)
    authors: AuthorSummary = Field(default_factory=AuthorSummary)
    frequency: CommitFrequency = Field(default_factory=CommitFrequency)
    milestones: List[TimelineEntry] = Field(default_factory=list)
    recent_activity: RecentActivity = Field(default_factory=RecentActivity)


class Contributor(BaseModel):
    login: str
    contributions: int = 0
    avatar: Optional[str] = None
    url: Optional[str] = None


class AnalysisRecord(BaseModel):
    """Everything gathered about one repository branch."""

    repository: RepositoryInfo
    branch: str
    branches: List[BranchInfo] = Field(default_factory=list)
    structure: StructureInfo = Field(default_factory=StructureInfo)
    technologies: Technologies = Field(default_factory=Technologies)
    documentation: Optional[Documentation] = None
    commits: CommitAnalysis = Field(default_factory=CommitAnalysis)
    contributors: List[Contributor] = Field(default_factory=list)
    analysis_date: datetime


class FileChange(BaseModel):
    path: str
    status: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    previous_path: Optional[str] = None

    @property
    def churn(self) -> int:
        return self.additions + self.deletions


class ChangedFiles(BaseModel):
    added: List[FileChange] = Field(default_factory=list)
    modified: List[FileChange] = Field(default_factory=list)
    removed: List[FileChange] = Field(default_factory=list)
    renamed: List[FileChange] = Field(default_factory=list)


class BranchComparison(BaseModel):
    status: str = "unknown"
    ahead: int = 0
    behind: int = 0
    files: ChangedFiles = Field(default_factory=ChangedFiles)
    total_changes: int = 0
    additions: int = 0
    deletions: int = 0
    summary: str = "No differences found"

"""Commit history analysis: timeline, authors, frequency and milestones."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from narrator.app.services.models import (
    AuthorCommit,
    AuthorStats,
    AuthorSummary,
    CommitAnalysis,
    CommitFrequency,
    RecentActivity,
    TimelineEntry,
)

MILESTONE_KEYWORDS = (
    "release", "version", "v1.0", "v2.0", "initial", "first", "major",
    "milestone", "launch", "deploy", "production", "stable",
)
MAX_MILESTONES = 10
TOP_CONTRIBUTORS = 5


def _parse_date(raw: Optional[str]) -> datetime:
    if not raw:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _author(commit: Mapping[str, Any]) -> Mapping[str, Any]:
    return (commit.get("commit") or {}).get("author") or {}


def _first_line(commit: Mapping[str, Any]) -> str:
    message = (commit.get("commit") or {}).get("message") or ""
    return message.split("\n", 1)[0]


class CommitAnalyzer:
    """Summarizes a commit listing as returned by the forge."""

    @classmethod
    def analyze(
        cls, commits: Sequence[Mapping[str, Any]], now: Optional[datetime] = None
    ) -> CommitAnalysis:
        if not commits:
            return CommitAnalysis()

        return CommitAnalysis(
            total_commits=len(commits),
            timeline=cls.timeline(commits),
            authors=cls.authors(commits),
            frequency=cls.frequency(commits),
            milestones=cls.milestones(commits),
            recent_activity=cls.recent_activity(commits, now=now),
        )

    @staticmethod
    def _entry(commit: Mapping[str, Any]) -> TimelineEntry:
        author = _author(commit)
        return TimelineEntry(
            sha=(commit.get("sha") or "")[:7],
            message=_first_line(commit),
            author=author.get("name") or "unknown",
            date=_parse_date(author.get("date")),
            url=commit.get("html_url"),
        )

    @classmethod
    def timeline(cls, commits: Sequence[Mapping[str, Any]]) -> List[TimelineEntry]:
        """Newest first; the sort is stable so equal dates keep listing order."""
        entries = [cls._entry(c) for c in commits]
        entries.sort(key=lambda e: e.date, reverse=True)
        return entries

    @staticmethod
    def authors(commits: Sequence[Mapping[str, Any]]) -> AuthorSummary:
        distribution: Dict[str, AuthorStats] = {}
        for commit in commits:
            author = _author(commit)
            name = author.get("name") or "unknown"
            stats = distribution.setdefault(name, AuthorStats(name=name))
            stats.count += 1
            stats.commits.append(
                AuthorCommit(message=_first_line(commit), date=_parse_date(author.get("date")))
            )

        ranked = sorted(distribution.values(), key=lambda a: a.count, reverse=True)
        return AuthorSummary(
            total=len(ranked),
            top_contributors=ranked[:TOP_CONTRIBUTORS],
            distribution=distribution,
        )

    @staticmethod
    def frequency(commits: Sequence[Mapping[str, Any]]) -> CommitFrequency:
        freq = CommitFrequency()
        for commit in commits:
            date = _parse_date(_author(commit).get("date")).astimezone(timezone.utc)
            day = date.date().isoformat()
            month = f"{date.year}-{date.month:02d}"
            year = str(date.year)
            freq.by_day[day] = freq.by_day.get(day, 0) + 1
            freq.by_month[month] = freq.by_month.get(month, 0) + 1
            freq.by_year[year] = freq.by_year.get(year, 0) + 1
        return freq

    @classmethod
    def milestones(cls, commits: Sequence[Mapping[str, Any]]) -> List[TimelineEntry]:
        found = []
        for commit in commits:
            message = ((commit.get("commit") or {}).get("message") or "").lower()
            if any(keyword in message for keyword in MILESTONE_KEYWORDS):
                found.append(cls._entry(commit))
        found.sort(key=lambda e: e.date, reverse=True)
        return found[:MAX_MILESTONES]

    @staticmethod
    def recent_activity(
        commits: Sequence[Mapping[str, Any]], now: Optional[datetime] = None
    ) -> RecentActivity:
        now = now or datetime.now(timezone.utc)
        last_week = now - timedelta(days=7)
        last_month = now - timedelta(days=30)

        dates = [_parse_date(_author(c).get("date")) for c in commits]
        month_count = sum(1 for d in dates if d >= last_month)
        return RecentActivity(
            last_week=sum(1 for d in dates if d >= last_week),
            last_month=month_count,
            is_active=month_count > 0,
        )

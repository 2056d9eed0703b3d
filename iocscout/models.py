"""Dataclasses for search queries, extracted records, and run results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path

# category -> matched strings, e.g. {"ipv4": ["1.2.3.4"]}
IOCMap = dict[str, list[str]]


@dataclass(frozen=True)
class SearchQuery:
    """One paginated search against a GitHub search endpoint."""

    endpoint: str  # e.g. "https://api.github.com/search/code"
    q: str
    per_page: int
    max_results: int


@dataclass
class RepositoryRecord:
    """A repository returned by repository search."""

    name: str  # "owner/repo"
    url: str
    description: str
    stars: int
    forks: int
    open_issues: int
    language: str
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CodeRecord:
    """A file returned by code search."""

    name: str
    path: str
    repository: str
    url: str
    repository_url: str
    iocs: IOCMap | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.iocs is None:
            del data["iocs"]
        return data


@dataclass
class IssueAuthor:
    username: str | None
    profile_url: str | None


@dataclass
class IssueRecord:
    """An issue or pull request returned by issue search."""

    title: str
    url: str
    state: str
    comments: int
    created_at: str | None
    updated_at: str | None
    user: IssueAuthor
    iocs: IOCMap | None = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.iocs is None:
            del data["iocs"]
        return data


@dataclass
class SurfaceResult:
    """Outcome of searching one surface (repositories, code, or issues)."""

    surface: str
    records: list = field(default_factory=list)
    output_path: Path | None = None


@dataclass
class RunSummary:
    """Everything one scan produced."""

    actor: str
    surfaces: list[SurfaceResult] = field(default_factory=list)
    extracted_iocs: IOCMap | None = None
    verified_iocs: IOCMap | None = None
    written: list[Path] = field(default_factory=list)

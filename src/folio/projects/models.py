"""
Project, repository and sync result models.

A Project is the locally persisted record; a RemoteRepository is an
immutable snapshot of one GitHub repository; ProjectView is the public,
override-merged representation served by the read path.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ProjectSource(str, Enum):
    """Who owns a project record."""

    MANUAL = "MANUAL"
    GITHUB = "GITHUB"


class ProjectStatus(str, Enum):
    """Visibility status of a project."""

    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


def utcnow() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def format_title(repo_name: str) -> str:
    """Turn a repository name into a display title.

    ``my-cool_repo`` becomes ``My Cool Repo``.
    """
    words = [w for w in re.split(r"[-_]", repo_name) if w]
    return " ".join(w[0].upper() + w[1:] for w in words)


# Keyword rules checked in order against name, description and topics
CATEGORY_RULES: list[tuple[str, tuple[str, ...]]] = [
    ("Portfolio", ("portfolio", "website")),
    ("Backend", ("api", "backend")),
    ("Frontend", ("frontend", "react", "vue")),
    ("Mobile", ("mobile", "app")),
    ("Data Science", ("data", "analysis")),
    ("Game", ("game",)),
    ("Tool", ("tool", "utility")),
]


def infer_category(name: str, description: str | None, topics: list[str] | tuple[str, ...]) -> str | None:
    """Infer a project category from repository text, or None if nothing matches."""
    content = f"{name} {description or ''} {' '.join(topics)}".lower()
    for category, keywords in CATEGORY_RULES:
        if any(keyword in content for keyword in keywords):
            return category
    return None


@dataclass(frozen=True)
class Technology:
    """A technology used by a project, with its share of the codebase."""

    name: str
    percentage: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str | Technology) -> Technology:
        if isinstance(data, Technology):
            return data
        if isinstance(data, str):
            return cls(name=data)
        return cls(name=str(data["name"]), percentage=data.get("percentage"))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "percentage": self.percentage}


@dataclass(frozen=True)
class RemoteRepository:
    """Read-only snapshot of a GitHub repository."""

    id: int
    name: str
    full_name: str
    html_url: str
    description: str | None = None
    homepage: str | None = None
    stars: int = 0
    forks: int = 0
    primary_language: str | None = None
    size: int = 0
    private: bool = False
    archived: bool = False
    fork: bool = False
    topics: tuple[str, ...] = ()
    owner: str | None = None
    pushed_at: str | None = None
    updated_at: str | None = None
    created_at: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RemoteRepository:
        """Build from a GitHub API repository payload.

        Raises:
            ValueError: If the payload lacks the fields reconciliation needs
        """
        if not isinstance(data, dict):
            raise ValueError(f"Repository payload must be an object, got {type(data).__name__}")

        name = data.get("name")
        if not name or not isinstance(name, str):
            raise ValueError("Repository payload has no name")
        html_url = data.get("html_url")
        if not html_url:
            raise ValueError(f"Repository {name} has no html_url")

        owner = data.get("owner") or {}
        return cls(
            id=int(data.get("id") or 0),
            name=name,
            full_name=str(data.get("full_name") or name),
            html_url=str(html_url),
            description=data.get("description"),
            homepage=data.get("homepage") or None,
            stars=int(data.get("stargazers_count") or 0),
            forks=int(data.get("forks_count") or 0),
            primary_language=data.get("language"),
            size=int(data.get("size") or 0),
            private=bool(data.get("private", False)),
            archived=bool(data.get("archived", False)),
            fork=bool(data.get("fork", False)),
            topics=tuple(data.get("topics") or ()),
            owner=owner.get("login") if isinstance(owner, dict) else None,
            pushed_at=data.get("pushed_at"),
            updated_at=data.get("updated_at"),
            created_at=data.get("created_at"),
        )

    @property
    def image_url(self) -> str:
        """GitHub's generated social preview image for the repository."""
        return f"https://opengraph.githubassets.com/1/{self.full_name}"


@dataclass
class Project:
    """A locally persisted project record."""

    name: str
    title: str
    source: ProjectSource = ProjectSource.MANUAL
    status: ProjectStatus = ProjectStatus.ACTIVE
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    description: str | None = None
    image_url: str | None = None
    github_url: str | None = None
    live_url: str | None = None
    category: str | None = None
    featured: bool = False
    display_order: int | None = None
    view_count: int = 0
    like_count: int = 0
    title_override: str | None = None
    description_override: str | None = None
    image_url_override: str | None = None
    technologies: list[Technology] = field(default_factory=list)

    # Canonical GitHub fields (GITHUB-sourced projects only)
    github_id: int | None = None
    stars_count: int = 0
    forks_count: int = 0
    primary_language: str | None = None
    repo_size: int = 0
    is_private: bool = False
    pushed_at: str | None = None
    last_github_sync: str | None = None

    created_at: str = field(default_factory=utcnow)
    updated_at: str = field(default_factory=utcnow)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Project:
        """Build from a stored record, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["source"] = ProjectSource(values.get("source", ProjectSource.MANUAL.value))
        values["status"] = ProjectStatus(values.get("status", ProjectStatus.ACTIVE.value))
        values["technologies"] = [Technology.from_dict(t) for t in values.get("technologies") or []]
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source.value
        data["status"] = self.status.value
        return data

    @property
    def effective_title(self) -> str:
        return self.title_override if self.title_override is not None else self.title

    @property
    def effective_description(self) -> str | None:
        return self.description_override if self.description_override is not None else self.description

    @property
    def effective_image_url(self) -> str | None:
        return self.image_url_override if self.image_url_override is not None else self.image_url

    def to_view(self) -> ProjectView:
        """Merge override fields into display fields."""
        return ProjectView(
            id=self.name,
            title=self.effective_title,
            description=self.effective_description or "No description available",
            technologies=tuple(t.name for t in self.technologies),
            github=self.github_url,
            live=self.live_url,
            featured=self.featured,
            manual=self.source is ProjectSource.MANUAL,
            status=self.status.value.lower(),
            image=self.effective_image_url,
            category=self.category,
            order=self.display_order,
            stars=self.stars_count,
            forks=self.forks_count,
            language=self.primary_language,
            views=self.view_count,
            likes=self.like_count,
            pushed_at=self.pushed_at,
            created_at=self.created_at,
        )


@dataclass(frozen=True)
class ProjectView:
    """Public, override-merged representation of a project."""

    id: str
    title: str
    description: str
    technologies: tuple[str, ...]
    github: str | None
    live: str | None
    featured: bool
    manual: bool
    status: str
    image: str | None
    category: str | None
    order: int | None
    stars: int
    forks: int
    language: str | None
    views: int = 0
    likes: int = 0
    pushed_at: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["technologies"] = list(self.technologies)
        return data


@dataclass
class SyncResult:
    """Summary of one reconciliation run (not persisted)."""

    success: bool = False
    created: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)
    synced_projects: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.created + self.updated

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "created": self.created,
            "updated": self.updated,
            "total": self.total,
            "errors": list(self.errors),
            "syncedProjects": list(self.synced_projects),
            "skipped": list(self.skipped),
        }

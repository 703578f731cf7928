"""
Request bodies for the admin endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class InvalidateRequest(BaseModel):
    """Body for POST /cache/invalidate."""

    type: str  # projects, all or pattern
    pattern: str | None = None


class ProjectCreate(BaseModel):
    """Body for POST /admin/projects (MANUAL projects only)."""

    id: str = Field(min_length=1)
    title: str | None = None
    description: str | None = None
    github: str | None = None
    live: str | None = None
    image: str | None = None
    category: str | None = None
    featured: bool = False
    order: int | None = None
    technologies: list[str] = Field(default_factory=list)


class ProjectUpdate(BaseModel):
    """Body for PUT /admin/projects/{name}.

    Only fields present in the request are applied.
    """

    title: str | None = None
    description: str | None = None
    github: str | None = None
    live: str | None = None
    image: str | None = None
    category: str | None = None
    featured: bool | None = None
    order: int | None = None
    technologies: list[str] | None = None

"""
Admin project operations.

MANUAL projects are fully editable and hard-deleted. GITHUB projects are
owned by sync: admins may only set overrides, ``featured`` and
``display_order``, and "deleting" one clears those local fields.
"""

from __future__ import annotations

import logging
from typing import Any

from folio.cache.store import CacheStore
from folio.core.database import AuditLog, ProjectsDatabase
from folio.core.errors import ConflictError, InvalidRequestError, NotFoundError
from folio.projects.models import Project, ProjectSource, ProjectStatus, Technology

logger = logging.getLogger(__name__)


def ranked_technologies(names: list[str]) -> list[Technology]:
    """Manual technologies get a decreasing share by position (100, 90, ... floor 10)."""
    return [
        Technology(name=name, percentage=float(max(100 - index * 10, 10)))
        for index, name in enumerate(names)
    ]


def _override(value: str | None, canonical: str | None) -> str | None:
    # An override equal to the canonical value is no override at all
    if value is None or value == canonical:
        return None
    return value


def _check_required(project: Project, data: dict[str, Any]) -> None:
    """Reject edits that would blank a field every project must have.

    A null title on a GITHUB project only clears its override, so it is allowed.
    """
    if "featured" in data and data["featured"] is None:
        raise InvalidRequestError("featured cannot be null")
    if project.source is ProjectSource.MANUAL and "title" in data:
        title = data["title"]
        if title is None or not str(title).strip():
            raise InvalidRequestError("title cannot be empty")


class ProjectAdmin:
    """Admin CRUD for projects, with cache invalidation and an activity trail."""

    def __init__(self, db: ProjectsDatabase, cache: CacheStore, activity_log: AuditLog):
        self.db = db
        self.cache = cache
        self.activity_log = activity_log

    def get_config(
        self,
        github_username: str | None = None,
        include_repos: tuple[str, ...] = (),
        exclude_repos: tuple[str, ...] = (),
    ) -> dict[str, Any]:
        """Manual projects plus the effective values of every GitHub project."""
        projects = self.db.find_many()

        manual = [
            {
                "id": p.name,
                "title": p.title,
                "description": p.description or "",
                "technologies": [t.name for t in p.technologies],
                "github": p.github_url,
                "live": p.live_url,
                "image": p.image_url,
                "featured": p.featured,
                "manual": True,
                "order": p.display_order,
            }
            for p in projects
            if p.source is ProjectSource.MANUAL
        ]
        overrides = {
            p.name: {
                "title": p.effective_title,
                "description": p.effective_description,
                "image": p.effective_image_url,
                "featured": p.featured,
                "order": p.display_order,
                "technologies": [t.name for t in p.technologies],
            }
            for p in projects
            if p.source is ProjectSource.GITHUB
        }
        return {
            "githubUsername": github_username,
            "includeRepos": list(include_repos),
            "excludeRepos": list(exclude_repos),
            "manualProjects": manual,
            "repoOverrides": overrides,
        }

    def create_manual(self, data: dict[str, Any], **audit: Any) -> Project:
        """Create a MANUAL project.

        Args:
            data: Fields keyed as the admin API names them (id, title,
                description, github, live, image, featured, order,
                technologies, category)
            **audit: ip_address / user_agent for the activity entry

        Raises:
            ConflictError: If a project with that name already exists
        """
        name = data["id"]
        if name in self.db:
            raise ConflictError(f"Project already exists: {name}")

        project = self.db.create(Project(
            name=name,
            title=data.get("title") or name,
            source=ProjectSource.MANUAL,
            status=ProjectStatus.ACTIVE,
            description=data.get("description"),
            github_url=data.get("github"),
            live_url=data.get("live"),
            image_url=data.get("image"),
            category=data.get("category"),
            featured=bool(data.get("featured", False)),
            display_order=data.get("order"),
            technologies=ranked_technologies(list(data.get("technologies") or [])),
        ))
        self._after_write("project_create", project, **audit)
        return project

    def update(self, name: str, data: dict[str, Any], **audit: Any) -> Project:
        """Apply an admin edit according to the project's source.

        Only keys present in ``data`` are written.

        Raises:
            NotFoundError: If the project does not exist
            InvalidRequestError: If a required field is sent as null
        """
        existing = self.db.find_unique(name)
        if existing is None:
            raise NotFoundError("Project not found")
        _check_required(existing, data)

        changes: dict[str, Any] = {}
        if "featured" in data:
            changes["featured"] = bool(data["featured"])
        if "order" in data:
            changes["display_order"] = data["order"]

        if existing.source is ProjectSource.MANUAL:
            for key, field_name in (
                ("title", "title"),
                ("description", "description"),
                ("github", "github_url"),
                ("live", "live_url"),
                ("image", "image_url"),
                ("category", "category"),
            ):
                if key in data:
                    changes[field_name] = data[key]
            if data.get("technologies") is not None:
                changes["technologies"] = ranked_technologies(list(data["technologies"]))
        else:
            if "title" in data:
                changes["title_override"] = _override(data["title"], existing.title)
            if "description" in data:
                changes["description_override"] = _override(data["description"], existing.description)
            if "image" in data:
                changes["image_url_override"] = _override(data["image"], existing.image_url)

        project = self.db.update(name, **changes)
        self._after_write("project_update", project, **audit)
        return project

    def delete(self, name: str, **audit: Any) -> bool:
        """Delete a MANUAL project or reset a GITHUB project's local fields.

        Returns:
            True if the row was removed, False if it was reset

        Raises:
            NotFoundError: If the project does not exist
        """
        existing = self.db.find_unique(name)
        if existing is None:
            raise NotFoundError("Project not found")

        if existing.source is ProjectSource.MANUAL:
            self.db.delete(name)
            self._after_write("project_delete", existing, **audit)
            return True

        project = self.db.update(
            name,
            title_override=None,
            description_override=None,
            image_url_override=None,
            featured=False,
            display_order=None,
        )
        self._after_write("project_override_clear", project, **audit)
        return False

    def _after_write(self, action: str, project: Project, **audit: Any) -> None:
        self.cache.invalidate_projects()
        logger.info("Admin %s: %s", action, project.name)
        self.activity_log.append(
            action=action,
            resource="projects",
            resource_id=project.id,
            details={"projectName": project.name, "source": project.source.value},
            ip_address=audit.get("ip_address"),
            user_agent=audit.get("user_agent"),
        )

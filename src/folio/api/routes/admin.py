"""
Admin project CRUD.

- GET /admin/projects - Manual projects and GitHub project overrides
- POST /admin/projects - Create a manual project
- PUT /admin/projects/{name} - Edit (overrides only for GitHub projects)
- DELETE /admin/projects/{name} - Delete manual / reset GitHub project
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from folio.api.deps import Container, get_client_ip, get_container, get_user_agent, require_admin
from folio.api.schemas import ProjectCreate, ProjectUpdate

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def _audit(request: Request) -> dict[str, Any]:
    return {"ip_address": get_client_ip(request), "user_agent": get_user_agent(request)}


@router.get("/projects")
def get_project_config(container: Container = Depends(get_container)) -> dict[str, Any]:
    settings = container.settings
    return container.admin.get_config(
        github_username=settings.github_username,
        include_repos=settings.include_repos,
        exclude_repos=settings.exclude_repos,
    )


@router.post("/projects", status_code=201)
def create_project(
    body: ProjectCreate,
    request: Request,
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    project = container.admin.create_manual(body.model_dump(), **_audit(request))
    return {"success": True, "project": project.to_view().to_dict()}


@router.put("/projects/{name}")
def update_project(
    name: str,
    body: ProjectUpdate,
    request: Request,
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    project = container.admin.update(name, body.model_dump(exclude_unset=True), **_audit(request))
    return {"success": True, "project": project.to_view().to_dict()}


@router.delete("/projects/{name}")
def delete_project(
    name: str,
    request: Request,
    container: Container = Depends(get_container),
) -> JSONResponse:
    deleted = container.admin.delete(name, **_audit(request))
    return JSONResponse({"success": True, "deleted": deleted})

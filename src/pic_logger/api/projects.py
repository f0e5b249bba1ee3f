"""Project and log entry endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from pic_logger.api.models import (  # noqa: TC001
    LogEntryList,
    ProjectCreate,
    ProjectList,
)

if TYPE_CHECKING:
    from pic_logger.containers import AppContainer

router = APIRouter(prefix="/projects", tags=["projects"])


def _project_list(container: AppContainer) -> ProjectList:
    store = container.project_store
    return ProjectList(projects=store.list_projects(), current_project=store.current())


def _require_project(container: AppContainer, name: str) -> None:
    if name not in container.project_store.list_projects():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)


@router.get("")
async def list_projects(request: Request) -> ProjectList:
    """Return all projects and the current selection."""
    container: AppContainer = request.app.state.container
    return _project_list(container)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(body: ProjectCreate, request: Request) -> ProjectList:
    """Create a project and make it current."""
    container: AppContainer = request.app.state.container
    name = body.name.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required"
        )
    if not container.project_store.create(name):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Project already exists"
        )
    return _project_list(container)


@router.post("/{name}/select")
async def select_project(name: str, request: Request) -> ProjectList:
    container: AppContainer = request.app.state.container
    if not container.project_store.select(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return _project_list(container)


@router.delete("/{name}")
async def delete_project(name: str, request: Request) -> ProjectList:
    """Delete a project together with its log entries."""
    container: AppContainer = request.app.state.container
    if not container.project_store.delete(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return _project_list(container)


@router.get("/{name}/logs")
async def list_logs(name: str, request: Request) -> LogEntryList:
    container: AppContainer = request.app.state.container
    _require_project(container, name)
    return LogEntryList(
        project=name, entries=container.log_store.list_entries(name)
    )


@router.delete("/{name}/logs/{entry_id}")
async def delete_log(name: str, entry_id: str, request: Request) -> LogEntryList:
    """Delete one log entry."""
    container: AppContainer = request.app.state.container
    _require_project(container, name)
    if not container.log_store.delete_entry(name, entry_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return LogEntryList(
        project=name, entries=container.log_store.list_entries(name)
    )


@router.delete("/{name}/logs")
async def clear_logs(name: str, request: Request) -> LogEntryList:
    """Delete every log entry of a project."""
    container: AppContainer = request.app.state.container
    _require_project(container, name)
    container.log_store.delete_all(name)
    return LogEntryList(project=name, entries=[])

# routers/projects.py — Project CRUD
# Deleting a project removes its tasks (with assignees and comments) and files.
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from errors import APIError
from models import Project, ProjectFile, Task, TaskAssignee, CommentOwner, utcnow
from routers.comments import purge_comments
from routers.files import remove_stored_file

logger = logging.getLogger("custor-portal.projects")

router = APIRouter(prefix="/api/projects", tags=["Projects"])


# --- Schemas ---

class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None


def _ts(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def _project_out(p: Project, creator_email: Optional[str] = None) -> dict:
    if creator_email is None and p.creator is not None:
        creator_email = p.creator.email
    return {
        "projectKey": p.id,
        "name": p.name,
        "description": p.description,
        "creatorId": p.creator_id,
        "creator": creator_email,
        "createdAt": _ts(p.created_at),
        "updatedAt": _ts(p.updated_at),
    }


async def _get_project(db: AsyncSession, project_id: int) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project with ID {project_id} not found.")
    return project


def _check_owner(project: Project, user: CurrentUser) -> None:
    if project.creator_id != user.id and not user.is_admin:
        raise APIError("CP-AUTH-004", "Only the project creator or an Admin can change this project.")


# --- Endpoints ---

@router.get("")
async def list_projects(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await db.execute(select(Project).order_by(Project.id))
    return [_project_out(p) for p in result.scalars().all()]


@router.get("/{project_id}")
async def get_project(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return _project_out(await _get_project(db, project_id))


@router.post("", status_code=201)
async def create_project(
    data: ProjectCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    project = Project(
        name=data.name.strip(),
        description=data.description,
        creator_id=user.id,
        created_at=utcnow(),
    )
    db.add(project)
    await db.commit()
    logger.info(f"Project {project.id} created by user {user.id}")
    return _project_out(project, creator_email=user.email)


@router.put("/{project_id}")
async def update_project(
    project_id: int,
    data: ProjectUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    project = await _get_project(db, project_id)
    _check_owner(project, user)

    if data.name is not None:
        project.name = data.name.strip()
    if data.description is not None:
        project.description = data.description
    project.updated_at = utcnow()
    await db.commit()
    return _project_out(project)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    project = await _get_project(db, project_id)
    _check_owner(project, user)

    task_ids = (await db.execute(select(Task.id).where(Task.project_id == project_id))).scalars().all()
    files = (await db.execute(
        select(ProjectFile.id, ProjectFile.path).where(ProjectFile.project_id == project_id)
    )).all()

    await purge_comments(db, CommentOwner.TASK, task_ids)
    await purge_comments(db, CommentOwner.FILE, [f.id for f in files])
    if task_ids:
        await db.execute(delete(TaskAssignee).where(TaskAssignee.task_id.in_(task_ids)))
    await db.execute(delete(Task).where(Task.project_id == project_id))
    await db.execute(delete(ProjectFile).where(ProjectFile.project_id == project_id))
    await db.delete(project)
    await db.commit()

    for f in files:
        remove_stored_file(f.path)
    logger.info(
        f"Project {project_id} deleted by user {user.id} "
        f"({len(task_ids)} tasks, {len(files)} files)"
    )

# routers/files.py — Project file uploads with per-name versioning
import logging
import os
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, File as FastAPIFile
from fastapi.responses import FileResponse
from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from config import Settings, get_settings
from database import get_db_session
from models import ProjectFile, Project, CommentOwner, NotificationType, utcnow
from notify import build_notification
from routers.comments import purge_comments

logger = logging.getLogger("custor-portal.files")

router = APIRouter(prefix="/api", tags=["Files"])


# --- Helpers ---

def _ts(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def file_out(f: ProjectFile, uploader_email: Optional[str] = None) -> dict:
    if uploader_email is None and f.uploader is not None:
        uploader_email = f.uploader.email
    return {
        "fileKey": f.id,
        "projectKey": f.project_id,
        "fileName": f.name,
        "fileType": f.file_type,
        "size": f.size,
        "version": f.version,
        "isCurrent": f.is_current,
        "uploaderId": f.uploader_id,
        "uploader": uploader_email,
        "uploadedAt": _ts(f.uploaded_at),
    }


def remove_stored_file(path: str) -> None:
    """Unlink a stored upload. A file already gone from disk is not an error."""
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.warning(f"Stored file already missing: {path}")


async def _get_file(db: AsyncSession, file_id: int) -> ProjectFile:
    f = await db.get(ProjectFile, file_id)
    if f is None:
        raise HTTPException(status_code=404, detail=f"File with ID {file_id} not found.")
    return f


async def _get_project(db: AsyncSession, project_id: int) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project with ID {project_id} not found.")
    return project


# ============================================================
# UPLOAD
# ============================================================

@router.post("/projects/{project_id}/files", status_code=201)
async def upload_file(
    project_id: int,
    file: UploadFile = FastAPIFile(...),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
):
    """Store an upload. Re-uploading a name bumps its version."""
    project = await _get_project(db, project_id)

    name = os.path.basename(file.filename or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="File name is required.")

    content = await file.read()
    if len(content) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=400,
            detail=f"File exceeds the maximum upload size of {settings.max_upload_size_mb} MB.",
        )

    latest = await db.execute(
        select(func.max(ProjectFile.version)).where(
            ProjectFile.project_id == project_id, ProjectFile.name == name,
        )
    )
    previous_version = latest.scalar() or 0
    if previous_version:
        await db.execute(
            update(ProjectFile)
            .where(ProjectFile.project_id == project_id, ProjectFile.name == name)
            .values(is_current=False)
        )

    project_dir = os.path.join(settings.file_storage_root, str(project_id))
    os.makedirs(project_dir, exist_ok=True)
    stored_path = os.path.join(project_dir, f"{uuid.uuid4().hex}_{name}")
    with open(stored_path, "wb") as out:
        out.write(content)

    record = ProjectFile(
        project_id=project_id,
        name=name,
        file_type=file.content_type or "application/octet-stream",
        path=stored_path,
        size=len(content),
        version=previous_version + 1,
        is_current=True,
        uploader_id=user.id,
        uploaded_at=utcnow(),
    )
    db.add(record)

    try:
        await db.flush()
        if project.creator_id != user.id:
            db.add(build_notification(
                project.creator_id,
                "New File Uploaded",
                f"{user.first_name} {user.last_name} uploaded '{name}' (v{record.version}) to project '{project.name}'",
                NotificationType.FILE_UPLOAD.value,
                related_id=record.id, related_type="file",
            ))
        await db.commit()
    except IntegrityError:
        # A concurrent upload of the same name took this version
        await db.rollback()
        remove_stored_file(stored_path)
        raise HTTPException(
            status_code=409,
            detail=f"Another upload of '{name}' finished first. Please retry.",
        )
    except Exception:
        remove_stored_file(stored_path)
        raise

    logger.info(f"File {record.id} ({name} v{record.version}) uploaded to project {project_id} by user {user.id}")
    return file_out(record, uploader_email=user.email)


# ============================================================
# READ
# ============================================================

@router.get("/projects/{project_id}/files")
async def list_project_files(
    project_id: int,
    all_versions: bool = Query(False),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    await _get_project(db, project_id)
    stmt = select(ProjectFile).where(ProjectFile.project_id == project_id)
    if not all_versions:
        stmt = stmt.where(ProjectFile.is_current.is_(True))
    result = await db.execute(stmt.order_by(ProjectFile.name, ProjectFile.version.desc()))
    return [file_out(f) for f in result.scalars().all()]


@router.get("/files/{file_id}")
async def get_file(
    file_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return file_out(await _get_file(db, file_id))


@router.get("/files/{file_id}/download")
async def download_file(
    file_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    f = await _get_file(db, file_id)
    if not os.path.isfile(f.path):
        logger.error(f"File {f.id} has no stored content at {f.path}")
        raise HTTPException(status_code=404, detail="File content not found.")
    return FileResponse(f.path, media_type=f.file_type, filename=f.name)


# ============================================================
# DELETE
# ============================================================

@router.delete("/files/{file_id}", status_code=204)
async def delete_file(
    file_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Remove one version with its comments. The newest survivor becomes current."""
    f = await _get_file(db, file_id)
    stored_path, was_current = f.path, f.is_current
    project_id, name = f.project_id, f.name

    await purge_comments(db, CommentOwner.FILE, [f.id])
    await db.delete(f)
    await db.flush()

    if was_current:
        result = await db.execute(
            select(ProjectFile)
            .where(ProjectFile.project_id == project_id, ProjectFile.name == name)
            .order_by(ProjectFile.version.desc())
            .limit(1)
        )
        survivor = result.scalar_one_or_none()
        if survivor is not None:
            survivor.is_current = True

    await db.commit()
    remove_stored_file(stored_path)
    logger.info(f"File {file_id} deleted by user {user.id}")

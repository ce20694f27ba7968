"""
Careers board.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.models import Job
from nanoflows.modules.auth import require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.content import JobCreate, JobUpdate, JobResponse

router = APIRouter()


async def _get_job(db: AsyncSession, job_id: str) -> Job:
    result = await execute_with_retry(db, select(Job).where(Job.id == job_id))
    job = result.scalar_one_or_none()
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
    return job


@router.get("")
async def list_jobs(
    department: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    query = select(Job).where(Job.is_active == True)  # noqa: E712
    if department:
        query = query.where(Job.department == department)

    result = await execute_with_retry(db, query.order_by(Job.created_at.desc()))
    return {"jobs": [JobResponse.model_validate(j) for j in result.scalars().all()]}


@router.get("/admin/all")
async def admin_list_jobs(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(db, select(Job).order_by(Job.created_at.desc()))
    return {"jobs": [JobResponse.model_validate(j) for j in result.scalars().all()]}


@router.get("/{job_id}")
async def get_job(job_id: str, db: AsyncSession = Depends(get_db)):
    return {"job": JobResponse.model_validate(await _get_job(db, job_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_job(
    job_data: JobCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    if not job_data.requirements:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Requirements must be a non-empty list"
        )

    job = Job(**job_data.model_dump())
    db.add(job)
    await db.commit()
    await db.refresh(job)

    return {"job": JobResponse.model_validate(job)}


@router.put("/{job_id}")
async def update_job(
    job_id: str,
    job_data: JobUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    job = await _get_job(db, job_id)

    updates = job_data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    if "requirements" in updates and not updates["requirements"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Requirements must be a non-empty list"
        )

    for field, value in updates.items():
        setattr(job, field, value)

    await db.commit()
    await db.refresh(job)

    return {"job": JobResponse.model_validate(job)}


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    job = await _get_job(db, job_id)
    await db.delete(job)
    await db.commit()
    return {"message": "Job deleted successfully"}

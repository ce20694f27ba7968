"""
Certificate endpoints.

Certificates are issued once per (user, course) at 100% completion and can
be verified publicly by their certificate id.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.responses import FileResponse
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nanoflows.api.v1.endpoints.courses import get_course_or_404
from nanoflows.core.config import settings
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.exceptions import CertificateGenerationError
from nanoflows.models import Certificate, User
from nanoflows.modules.auth import get_current_user
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.learning import CertificateResponse
from nanoflows.services.certificate_service import certificate_service
from nanoflows.services.progress_service import progress_service

router = APIRouter()


async def _find_certificate(db: AsyncSession, identifier: str) -> Certificate:
    """Look up by row id or by the public certificate id"""
    result = await execute_with_retry(
        db,
        select(Certificate)
        .where(or_(Certificate.id == identifier, Certificate.certificate_id == identifier))
        .options(selectinload(Certificate.course))
    )
    certificate = result.scalar_one_or_none()
    if not certificate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")
    return certificate


def _check_access(certificate: Certificate, current_user: CurrentUser) -> None:
    if certificate.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")


@router.post("/course/{course_id}")
async def generate_certificate(
    course_id: str,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Issue (or return) the caller's certificate for a completed course"""
    course = await get_course_or_404(db, course_id)

    completion = await progress_service.get_course_completion(db, current_user.id, course_id)
    if not completion["total_lessons"] or completion["percentage"] < 100:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Course not completed yet",
                "progress": completion["percentage"],
            }
        )

    existing = await certificate_service.get_for_user(db, current_user.id, course_id)
    if existing:
        return {"message": "Certificate already issued", "certificate": CertificateResponse.model_validate(existing)}

    user = (await execute_with_retry(db, select(User).where(User.id == current_user.id))).scalar_one()
    certificate = await certificate_service.issue(db, user, course, background_tasks)
    await db.commit()
    await db.refresh(certificate)

    return {
        "message": "Certificate generated successfully",
        "certificate": CertificateResponse.model_validate(certificate),
    }


@router.get("/user")
async def get_user_certificates(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Certificate)
        .where(Certificate.user_id == current_user.id)
        .order_by(Certificate.issued_at.desc())
    )
    return {"certificates": [CertificateResponse.model_validate(c) for c in result.scalars().all()]}


@router.get("/verify/{certificate_id}")
async def verify_certificate(
    certificate_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Public check that a certificate id is genuine"""
    result = await execute_with_retry(
        db,
        select(Certificate).where(Certificate.certificate_id == certificate_id)
    )
    certificate = result.scalar_one_or_none()
    if not certificate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")

    return {
        "valid": True,
        "certificate_id": certificate.certificate_id,
        "student_name": certificate.student_name,
        "course_title": certificate.course_title,
        "issued_at": certificate.issued_at,
        "verify_url": settings.get_certificate_verify_url(certificate.certificate_id),
    }


@router.get("/{certificate_id}/download")
async def download_certificate(
    certificate_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    certificate = await _find_certificate(db, certificate_id)
    _check_access(certificate, current_user)

    instructor = certificate.course.instructor_name if certificate.course else None
    path = await certificate_service.ensure_pdf(certificate, instructor)
    if path is None:
        raise CertificateGenerationError("Certificate file could not be generated")

    return FileResponse(
        path,
        media_type="application/pdf",
        filename=f"certificate-{certificate.certificate_id}.pdf",
    )


@router.get("/{certificate_id}")
async def get_certificate(
    certificate_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    certificate = await _find_certificate(db, certificate_id)
    _check_access(certificate, current_user)

    return {"certificate": CertificateResponse.model_validate(certificate)}

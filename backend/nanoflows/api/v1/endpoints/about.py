"""
About page sections. POST upserts by section_type.
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.models import AboutSection
from nanoflows.modules.auth import require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.content import AboutSectionCreate, AboutSectionUpdate, AboutSectionResponse

router = APIRouter()


async def _get_section(db: AsyncSession, section_id: str) -> AboutSection:
    result = await execute_with_retry(db, select(AboutSection).where(AboutSection.id == section_id))
    section = result.scalar_one_or_none()
    if not section:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    return section


@router.get("")
async def get_about_sections(db: AsyncSession = Depends(get_db)):
    result = await execute_with_retry(
        db,
        select(AboutSection)
        .where(AboutSection.active == True)  # noqa: E712
        .order_by(AboutSection.order_index)
    )
    return {"sections": [AboutSectionResponse.model_validate(s) for s in result.scalars().all()]}


@router.get("/admin/all")
async def admin_get_about_sections(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(db, select(AboutSection).order_by(AboutSection.order_index))
    return {"sections": [AboutSectionResponse.model_validate(s) for s in result.scalars().all()]}


@router.get("/type/{section_type}")
async def get_section_by_type(
    section_type: str,
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db, select(AboutSection).where(AboutSection.section_type == section_type)
    )
    section = result.scalar_one_or_none()
    if not section:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    return {"section": AboutSectionResponse.model_validate(section)}


@router.post("")
async def upsert_about_section(
    section_data: AboutSectionCreate,
    response: Response,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a section, or replace the one with the same section_type"""
    result = await execute_with_retry(
        db, select(AboutSection).where(AboutSection.section_type == section_data.section_type)
    )
    section = result.scalar_one_or_none()

    if section:
        for field, value in section_data.model_dump().items():
            setattr(section, field, value)
    else:
        section = AboutSection(**section_data.model_dump())
        db.add(section)
        response.status_code = status.HTTP_201_CREATED

    await db.commit()
    await db.refresh(section)

    return {"section": AboutSectionResponse.model_validate(section)}


@router.put("/{section_id}")
async def update_about_section(
    section_id: str,
    section_data: AboutSectionUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    section = await _get_section(db, section_id)

    for field, value in section_data.model_dump(exclude_unset=True).items():
        setattr(section, field, value)

    await db.commit()
    await db.refresh(section)

    return {"section": AboutSectionResponse.model_validate(section)}


@router.delete("/{section_id}")
async def delete_about_section(
    section_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    section = await _get_section(db, section_id)
    await db.delete(section)
    await db.commit()
    return {"message": "Section deleted successfully"}

"""
AI tools directory.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.models import AITool
from nanoflows.modules.auth import require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.content import AIToolCreate, AIToolUpdate, AIToolResponse

router = APIRouter()

PRICING_TYPES = ("free", "paid")


def _check_pricing(pricing_type: str) -> None:
    if pricing_type not in PRICING_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='pricing_type must be either "free" or "paid"'
        )


def _check_features(features) -> None:
    if not features:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Features must be a non-empty list"
        )


async def _get_tool(db: AsyncSession, tool_id: str) -> AITool:
    result = await execute_with_retry(db, select(AITool).where(AITool.id == tool_id))
    tool = result.scalar_one_or_none()
    if not tool:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="AI tool not found")
    return tool


@router.get("")
async def list_tools(
    category: Optional[str] = None,
    pricing_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db)
):
    query = select(AITool).where(AITool.is_active == True)  # noqa: E712
    if category:
        query = query.where(AITool.category == category)
    if pricing_type:
        query = query.where(AITool.pricing_type == pricing_type)

    result = await execute_with_retry(db, query.order_by(AITool.created_at.desc()))
    return {"tools": [AIToolResponse.model_validate(t) for t in result.scalars().all()]}


@router.get("/admin/all")
async def admin_list_tools(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(db, select(AITool).order_by(AITool.created_at.desc()))
    return {"tools": [AIToolResponse.model_validate(t) for t in result.scalars().all()]}


@router.get("/{tool_id}")
async def get_tool(tool_id: str, db: AsyncSession = Depends(get_db)):
    return {"tool": AIToolResponse.model_validate(await _get_tool(db, tool_id))}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_tool(
    tool_data: AIToolCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    _check_pricing(tool_data.pricing_type)
    _check_features(tool_data.features)

    tool = AITool(**tool_data.model_dump())
    db.add(tool)
    await db.commit()
    await db.refresh(tool)

    return {"tool": AIToolResponse.model_validate(tool)}


@router.put("/{tool_id}")
async def update_tool(
    tool_id: str,
    tool_data: AIToolUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    tool = await _get_tool(db, tool_id)

    updates = tool_data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    if "pricing_type" in updates:
        _check_pricing(updates["pricing_type"])
    if "features" in updates:
        _check_features(updates["features"])

    for field, value in updates.items():
        setattr(tool, field, value)

    await db.commit()
    await db.refresh(tool)

    return {"tool": AIToolResponse.model_validate(tool)}


@router.delete("/{tool_id}")
async def delete_tool(
    tool_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    tool = await _get_tool(db, tool_id)
    await db.delete(tool)
    await db.commit()
    return {"message": "AI tool deleted successfully"}

"""
File uploads stored on local disk and served from /uploads.

Course media (images, videos, thumbnails, resources) is admin only;
students upload assignment files through /student-file.
"""
from fastapi import APIRouter, Depends, File, UploadFile, status

from nanoflows.modules.auth import get_current_user, require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.services.upload_service import upload_service

router = APIRouter()


@router.post("/image", status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_admin)
):
    return await upload_service.save(file, "image")


@router.post("/video", status_code=status.HTTP_201_CREATED)
async def upload_video(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_admin)
):
    return await upload_service.save(file, "video")


@router.post("/thumbnail", status_code=status.HTTP_201_CREATED)
async def upload_thumbnail(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_admin)
):
    return await upload_service.save(file, "thumbnail")


@router.post("/resource", status_code=status.HTTP_201_CREATED)
async def upload_resource(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_admin)
):
    return await upload_service.save(file, "resource")


@router.post("/student-file", status_code=status.HTTP_201_CREATED)
async def upload_student_file(
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Assignment attachment (documents or images)"""
    return await upload_service.save(file, "student-file")

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from ..config import Settings
from ..services import uploads
from ..services.policy import Actor
from ..services.uploads import ByteBudget, FileStore
from .deps import get_actor, get_file_store, get_settings

router = APIRouter(prefix="/uploads", tags=["uploads"])


class ImageUploadResponse(BaseModel):
    url: str
    path: str
    filename: str
    mime_type: str
    size: int


@router.post("/images", response_model=ImageUploadResponse, status_code=201)
def upload_image(
    image: UploadFile = File(...),
    actor: Actor = Depends(get_actor),
    files: FileStore = Depends(get_file_store),
    settings: Settings = Depends(get_settings),
) -> ImageUploadResponse:
    """
    Generic image upload (avatars, sheet portraits, feed images).
    """
    uploads.require_image(image, "image")
    stored = files.save(
        image,
        uploads.IMAGES,
        field="image",
        budget=ByteBudget(settings.image_max_bytes),
        limit_message="The image exceeds the size limit.",
    )
    return ImageUploadResponse(
        url=stored.reference,
        path=stored.reference,
        filename=stored.original_name,
        mime_type=stored.mime_type,
        size=stored.size,
    )

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from iguana.core.exceptions import ValidationError
from iguana.services import images as images_service

router = APIRouter()


class SaveImageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    prompt: str | None = None
    model: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")


@router.post("")
async def save_image(body: SaveImageRequest):
    if not body.user_id or not body.prompt or not body.model or not body.image_url:
        raise ValidationError("Missing required fields")
    image = await images_service.save_image(body.user_id, body.prompt, body.model, body.image_url)
    return {"success": True, "data": image.to_public()}


@router.get("")
async def list_images(user_id: str | None = Query(default=None, alias="userId")):
    """Return a user's saved images (newest first)."""
    if not user_id:
        raise ValidationError("User ID is required")
    images = await images_service.list_images(user_id)
    return {"success": True, "data": [i.to_public() for i in images]}

"""Saved image records per user."""

import pymongo
from pymongo.errors import PyMongoError

from iguana.core.catalog import get_model
from iguana.core.exceptions import BadRequestError, StoreReadError, StoreWriteError
from iguana.core.logging import get_logger
from iguana.models.image import Image

log = get_logger(__name__)


async def save_image(user_id: str, prompt: str, model: str, image_url: str) -> Image:
    if not prompt.strip():
        raise BadRequestError("Prompt must not be empty")
    get_model(model)
    image = Image(user_id=user_id, prompt=prompt, model=model, image_url=image_url)
    try:
        await image.insert()
    except PyMongoError as e:
        raise StoreWriteError("Failed to save image", str(e)) from e
    log.info("image_saved", user_id=user_id, image_id=str(image.id), model=model, prompt_length=len(prompt))
    return image


async def list_images(user_id: str) -> list[Image]:
    try:
        return (
            await Image.find(Image.user_id == user_id)
            .sort([("created_at", pymongo.DESCENDING), ("_id", pymongo.DESCENDING)])
            .to_list()
        )
    except PyMongoError as e:
        raise StoreReadError("Failed to fetch images", str(e)) from e

from datetime import datetime

from pymongo.errors import DuplicateKeyError, PyMongoError

from iguana.core.audit import record_credit_event
from iguana.core.config import get_settings
from iguana.core.exceptions import BadRequestError, NotFoundError, ProfileReadError, StoreWriteError
from iguana.core.logging import get_logger
from iguana.models.profile import Profile

log = get_logger(__name__)


async def _load(user_id: str) -> Profile | None:
    try:
        return await Profile.get(user_id)
    except PyMongoError as e:
        raise ProfileReadError(str(e)) from e


async def get_profile(user_id: str) -> Profile:
    profile = await _load(user_id)
    if not profile:
        raise NotFoundError("User profile not found")
    return profile


async def create_profile(user_id: str, username: str | None = None, full_name: str | None = None) -> tuple[Profile, bool]:
    """
    Create the profile for a newly registered identity with the starting grant.
    Returns (profile, created); an existing profile is returned unchanged.
    """
    if not user_id or not user_id.strip():
        raise BadRequestError("User ID is required")
    existing = await _load(user_id)
    if existing:
        return existing, False
    settings = get_settings()
    now = datetime.utcnow()
    profile = Profile(
        id=user_id,
        username=username,
        full_name=full_name,
        credits=settings.starting_credits,
        created_at=now,
        updated_at=now,
    )
    try:
        await profile.insert()
    except DuplicateKeyError:
        # Registered concurrently
        return await get_profile(user_id), False
    except PyMongoError as e:
        raise StoreWriteError("Failed to create profile", str(e)) from e
    log.info("profile_created", user_id=user_id, credits=profile.credits)
    try:
        await record_credit_event(user_id, "profile_created", profile.credits)
    except PyMongoError as e:
        log.warning("credit_event_write_failed", user_id=user_id, event_type="profile_created", error=str(e))
    return profile, True


def profile_to_public(profile: Profile) -> dict:
    return {
        "id": profile.id,
        "username": profile.username,
        "full_name": profile.full_name,
        "credits": profile.credits,
        "created_at": profile.created_at.isoformat(),
        "updated_at": profile.updated_at.isoformat(),
    }

import uuid
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from supabase import AsyncClient

from social_api.core.config import Settings
from social_api.core.database import UNIQUE_VIOLATION, run_query
from social_api.core.dependencies import CurrentUser, get_current_user
from social_api.core.errors import Forbidden, InvalidRequest, NotFound, PersistenceFailure
from social_api.core.supabase_client import get_settings, get_supabase
from social_api.utils.profiles import PUBLIC_PROFILE_COLUMNS, get_profile
from social_api.utils.storage import upload_public_file
from .schemas import UpdateUserResponseModel, UserProfile


logger = logging.getLogger(__name__)
router = APIRouter()

SEARCH_LIMIT = 20


def escape_like(value: str) -> str:
    """Make `%` and `_` match literally inside an ILIKE pattern."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@router.get("/search", response_model=List[UserProfile], status_code=200)
async def search_users(
    query: Optional[str] = None,
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Case-insensitive substring search on usernames.

    **Errors**
    - 400: `query` parameter missing or blank
    """
    if not query or not query.strip():
        raise InvalidRequest("Query parameter is required")

    response = await run_query(
        supabase.table("users")
        .select(PUBLIC_PROFILE_COLUMNS)
        .ilike("username", f"%{escape_like(query.strip())}%")
        .order("username")
        .limit(SEARCH_LIMIT)
    )
    return response.data or []


@router.get("/{user_id}", response_model=UserProfile, status_code=200)
async def get_user_profile(user_id: str, supabase: AsyncClient = Depends(get_supabase)):
    profile = await get_profile(supabase, user_id)
    if profile is None:
        raise NotFound("User not found")
    return profile


@router.put("/{user_id}", response_model=UpdateUserResponseModel, status_code=200)
async def update_user(
    user_id: str,
    username: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Update the caller's username and/or profile picture.

    **Input** (multipart form)
    - `username`: new username (optional)
    - `file`: new profile picture (optional)

    **Errors**
    - 400: Username already taken
    - 401: Not authenticated
    - 403: Trying to update someone else's profile
    - 404: User not found
    """
    if user.id != user_id:
        raise Forbidden("You can only update your own profile.")

    existing = await get_profile(supabase, user_id)
    if existing is None:
        raise NotFound("User not found")

    update_data = {}

    new_username = username.strip() if username else None
    if new_username and new_username != existing["username"]:
        update_data["username"] = new_username

    if file and file.filename:
        update_data["profile_pic_url"] = await upload_public_file(
            supabase,
            settings.storage_bucket,
            f"{user_id}-{uuid.uuid4()}-{file.filename}",
            file,
        )

    if not update_data:
        return {"message": "No changes to update", "user": existing}

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

    try:
        response = await run_query(
            supabase.table("users").update(update_data).eq("id", user_id)
        )
    except PersistenceFailure as error:
        if error.code == UNIQUE_VIOLATION:
            raise InvalidRequest("Username already taken")
        raise

    updated = response.data[0]
    logger.info(f"user_updated id={user_id} fields={sorted(update_data)}")

    return {
        "message": "User updated successfully",
        "user": {
            "id": updated["id"],
            "username": updated["username"],
            "profile_pic_url": updated.get("profile_pic_url"),
        },
    }

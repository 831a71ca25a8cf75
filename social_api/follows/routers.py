import logging

from fastapi import APIRouter, Depends
from supabase import AsyncClient

from social_api.core.database import UNIQUE_VIOLATION, is_uuid, run_query
from social_api.core.dependencies import CurrentUser, get_current_user
from social_api.core.errors import Conflict, InvalidRequest, NotFound, PersistenceFailure
from social_api.core.supabase_client import get_supabase
from social_api.utils.profiles import get_profile, get_profiles
from .schemas import (
    CheckFollowingResponseModel,
    FollowersResponseModel,
    FollowingResponseModel,
    FollowResponseModel,
    FollowUserModel,
    UnfollowResponseModel,
)


logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=FollowResponseModel, status_code=201)
async def follow_user(
    data: FollowUserModel,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Follow another user.

    **Input**
    - `followingId`: id of the user to follow

    **Errors**
    - 400: Trying to follow yourself
    - 401: Not authenticated
    - 404: No such user
    - 409: Already following
    """
    following_id = data.followingId

    if user.id == following_id:
        raise InvalidRequest("You cannot follow yourself.")

    if await get_profile(supabase, following_id) is None:
        raise NotFound("User not found.")

    try:
        response = await run_query(
            supabase.table("follows").insert(
                {"follower_id": user.id, "following_id": following_id}
            ),
            failure_message="Failed to follow user.",
        )
    except PersistenceFailure as error:
        if error.code == UNIQUE_VIOLATION:
            raise Conflict("Already following this user.")
        raise

    logger.info(f"follow_created follower_id={user.id} following_id={following_id}")
    return {"message": "Followed successfully.", "follow": response.data[0]}


@router.delete("/{following_id}", response_model=UnfollowResponseModel, status_code=200)
async def unfollow_user(
    following_id: str,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    if not is_uuid(following_id):
        raise NotFound("Follow relationship not found.")

    response = await run_query(
        supabase.table("follows")
        .delete()
        .eq("follower_id", user.id)
        .eq("following_id", following_id),
        failure_message="Failed to unfollow user.",
    )

    if not response.data:
        raise NotFound("Follow relationship not found.")

    logger.info(f"follow_removed follower_id={user.id} following_id={following_id}")
    return {"message": "Unfollowed successfully."}


@router.get("/check/{following_id}", response_model=CheckFollowingResponseModel)
async def check_following(
    following_id: str,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """Whether the authenticated user follows `following_id`."""
    if not is_uuid(following_id):
        return {"isFollowing": False}

    response = await run_query(
        supabase.table("follows")
        .select("id")
        .eq("follower_id", user.id)
        .eq("following_id", following_id)
        .limit(1),
        failure_message="Failed to check following status.",
    )
    return {"isFollowing": bool(response.data)}


@router.get("/{user_id}/followers", response_model=FollowersResponseModel)
async def get_followers(user_id: str, supabase: AsyncClient = Depends(get_supabase)):
    if not is_uuid(user_id):
        return {"count": 0, "followers": []}

    response = await run_query(
        supabase.table("follows")
        .select("follower_id")
        .eq("following_id", user_id)
        .order("created_at"),
        failure_message="Failed to fetch followers.",
    )
    rows = response.data or []
    profiles = await get_profiles(supabase, [row["follower_id"] for row in rows])

    followers = [
        {"follower_id": row["follower_id"], "users": profiles.get(row["follower_id"])}
        for row in rows
    ]
    return {"count": len(followers), "followers": followers}


@router.get("/{user_id}/following", response_model=FollowingResponseModel)
async def get_following(user_id: str, supabase: AsyncClient = Depends(get_supabase)):
    if not is_uuid(user_id):
        return {"count": 0, "following": []}

    response = await run_query(
        supabase.table("follows")
        .select("following_id")
        .eq("follower_id", user_id)
        .order("created_at"),
        failure_message="Failed to fetch following.",
    )
    rows = response.data or []
    profiles = await get_profiles(supabase, [row["following_id"] for row in rows])

    following = [
        {"following_id": row["following_id"], "users": profiles.get(row["following_id"])}
        for row in rows
    ]
    return {"count": len(following), "following": following}

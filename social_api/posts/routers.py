import time
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from supabase import AsyncClient

from social_api.core.config import Settings
from social_api.core.database import is_uuid, run_query
from social_api.core.dependencies import CurrentUser, get_current_user, get_optional_user
from social_api.core.errors import Forbidden, InvalidRequest, NotFound
from social_api.core.supabase_client import get_settings, get_supabase
from social_api.utils.profiles import get_profiles
from social_api.utils.storage import upload_public_file
from . import likes
from .schemas import (
    DeletePostResponseModel,
    LikePostResponseModel,
    PostData,
    PostUpdateModel,
    ToggleLikeResponseModel,
)


logger = logging.getLogger(__name__)
router = APIRouter()
liked_router = APIRouter()

POST_COLUMNS = (
    "id, user_id, description, image_url, tags, visibility, likes, created_at, updated_at"
)
UNKNOWN_USER = "Unknown User"


async def attach_usernames(supabase: AsyncClient, posts: List[dict]) -> List[dict]:
    profiles = await get_profiles(supabase, [post["user_id"] for post in posts])
    return [
        {
            **post,
            "username": profiles.get(post["user_id"], {}).get("username") or UNKNOWN_USER,
        }
        for post in posts
    ]


async def fetch_post(supabase: AsyncClient, post_id: str) -> dict:
    if not is_uuid(post_id):
        raise NotFound("Post not found")

    response = await run_query(
        supabase.table("posts").select(POST_COLUMNS).eq("id", post_id).limit(1)
    )
    if not response.data:
        raise NotFound("Post not found")
    return response.data[0]


async def fetch_own_post(supabase: AsyncClient, post_id: str, user: CurrentUser) -> dict:
    post = await fetch_post(supabase, post_id)
    if post["user_id"] != user.id:
        raise Forbidden("You can only modify your own posts.")
    return post


@router.get("", response_model=List[PostData], status_code=200)
async def get_all_posts(
    userId: Optional[str] = None,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    All posts, newest first, each with the author's `username`.

    **Query**
    - `userId`: only posts by this user (optional)
    """
    if userId and not is_uuid(userId):
        return []

    query = supabase.table("posts").select(POST_COLUMNS)
    if userId:
        query = query.eq("user_id", userId)

    response = await run_query(
        query.order("created_at", desc=True), failure_message="Failed to fetch posts"
    )
    return await attach_usernames(supabase, response.data or [])


@router.post("", response_model=PostData, status_code=201)
async def create_post(
    description: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Create a post from a multipart form with a `description` and an `image`.

    The image is uploaded to the storage bucket and its public URL stored on
    the post.

    **Errors**
    - 400: Missing description or image
    - 401: Not authenticated
    - 500: Upload or database failure
    """
    if not description or not description.strip() or not image or not image.filename:
        raise InvalidRequest("Missing required fields")

    file_name = f"{int(time.time() * 1000)}-{image.filename}"
    image_url = await upload_public_file(supabase, settings.storage_bucket, file_name, image)

    now = datetime.now(timezone.utc).isoformat()
    response = await run_query(
        supabase.table("posts").insert(
            {
                "user_id": user.id,
                "description": description,
                "image_url": image_url,
                "created_at": now,
                "updated_at": now,
            }
        ),
        failure_message="Failed to create post",
    )

    post = response.data[0]
    logger.info(f"post_created id={post['id']} user_id={user.id}")
    return post


@router.get("/{post_id}", response_model=PostData, status_code=200)
async def get_post_by_id(
    post_id: str,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    post = await fetch_post(supabase, post_id)
    return (await attach_usernames(supabase, [post]))[0]


@router.put("/{post_id}", response_model=PostData, status_code=200)
async def update_post(
    post_id: str,
    data: PostUpdateModel,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Update `description`, `tags` and/or `visibility` of one of the caller's posts.
    Fields left out of the body are not touched.
    """
    await fetch_own_post(supabase, post_id, user)

    changes = data.model_dump(exclude_unset=True)
    if "description" in changes and not (changes["description"] or "").strip():
        raise InvalidRequest("Description cannot be empty")

    changes["updated_at"] = datetime.now(timezone.utc).isoformat()

    response = await run_query(
        supabase.table("posts").update(changes).eq("id", post_id),
        failure_message="Failed to update post",
    )
    return response.data[0]


@router.delete("/{post_id}", response_model=DeletePostResponseModel, status_code=200)
async def delete_post(
    post_id: str,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    await fetch_own_post(supabase, post_id, user)

    response = await run_query(
        supabase.table("posts").delete().eq("id", post_id),
        failure_message="Failed to delete post",
    )
    logger.info(f"post_deleted id={post_id} user_id={user.id}")
    return {"message": "Post deleted successfully", "data": response.data or []}


@router.patch("/{post_id}/like", response_model=LikePostResponseModel, status_code=200)
async def like_post(
    post_id: str,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Like a post. Liking an already liked post changes nothing.

    **Errors**
    - 401: Not authenticated
    - 404: Post not found
    """
    await fetch_post(supabase, post_id)
    await likes.add_like(supabase, user.id, post_id)
    post = await likes.sync_like_count(supabase, post_id)

    return {"message": "Post liked successfully", "post": post}


@router.patch(
    "/{post_id}/toggle-like", response_model=ToggleLikeResponseModel, status_code=200
)
async def toggle_like(
    post_id: str,
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Like the post if the caller has not liked it yet, otherwise remove the like.

    **Returns**
    - `liked`: whether the caller likes the post after the call
    - `likes`: the post's like count
    """
    await fetch_post(supabase, post_id)

    if await likes.has_user_liked_post(supabase, user.id, post_id):
        await likes.remove_like(supabase, user.id, post_id)
        liked = False
    else:
        await likes.add_like(supabase, user.id, post_id)
        liked = True

    post = await likes.sync_like_count(supabase, post_id)
    return {"liked": liked, "likes": post["likes"]}


@liked_router.get("", response_model=List[PostData], status_code=200)
async def get_liked_posts(
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """Posts the authenticated user has liked, newest first."""
    post_ids = await likes.liked_post_ids(supabase, user.id)
    if not post_ids:
        return []

    response = await run_query(
        supabase.table("posts")
        .select(POST_COLUMNS)
        .in_("id", post_ids)
        .order("created_at", desc=True),
        failure_message="Failed to fetch liked posts",
    )
    return await attach_usernames(supabase, response.data or [])

import logging
from typing import List

from supabase import AsyncClient

from social_api.core.database import UNIQUE_VIOLATION, run_query
from social_api.core.errors import NotFound, PersistenceFailure


logger = logging.getLogger(__name__)


async def has_user_liked_post(supabase: AsyncClient, user_id: str, post_id: str) -> bool:
    response = await run_query(
        supabase.table("likes")
        .select("user_id")
        .eq("user_id", user_id)
        .eq("post_id", post_id)
        .limit(1)
    )
    return bool(response.data)


async def add_like(supabase: AsyncClient, user_id: str, post_id: str) -> bool:
    """Insert the like row; False when it was already there."""
    try:
        await run_query(
            supabase.table("likes").insert({"user_id": user_id, "post_id": post_id})
        )
    except PersistenceFailure as error:
        if error.code == UNIQUE_VIOLATION:
            return False
        raise
    return True


async def remove_like(supabase: AsyncClient, user_id: str, post_id: str) -> bool:
    response = await run_query(
        supabase.table("likes").delete().eq("user_id", user_id).eq("post_id", post_id)
    )
    return bool(response.data)


async def sync_like_count(supabase: AsyncClient, post_id: str) -> dict:
    """
    Set ``posts.likes`` to the number of like rows for the post and return
    the updated post.
    """
    counted = await run_query(
        supabase.table("likes").select("post_id", count="exact").eq("post_id", post_id)
    )
    total = counted.count if counted.count is not None else len(counted.data or [])

    updated = await run_query(
        supabase.table("posts").update({"likes": total}).eq("id", post_id)
    )
    if not updated.data:
        raise NotFound("Post not found")

    logger.info(f"like_count_synced post_id={post_id} likes={total}")
    return updated.data[0]


async def liked_post_ids(supabase: AsyncClient, user_id: str) -> List[str]:
    response = await run_query(
        supabase.table("likes").select("post_id").eq("user_id", user_id)
    )
    return [row["post_id"] for row in response.data or []]

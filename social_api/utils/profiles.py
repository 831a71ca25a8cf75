from typing import Dict, Iterable, Optional

from supabase import AsyncClient

from social_api.core.database import is_uuid, run_query


PUBLIC_PROFILE_COLUMNS = "id, username, profile_pic_url"


async def get_profile(supabase: AsyncClient, user_id: str) -> Optional[dict]:
    """Public profile of one user, or None when there is no such user."""
    if not is_uuid(user_id):
        return None

    response = await run_query(
        supabase.table("users")
        .select(PUBLIC_PROFILE_COLUMNS)
        .eq("id", str(user_id))
        .limit(1)
    )
    return response.data[0] if response.data else None


async def get_profiles(supabase: AsyncClient, user_ids: Iterable[str]) -> Dict[str, dict]:
    """Public profiles keyed by user id; unknown ids are simply absent."""
    ids = sorted({str(user_id) for user_id in user_ids if is_uuid(user_id)})
    if not ids:
        return {}

    response = await run_query(
        supabase.table("users").select(PUBLIC_PROFILE_COLUMNS).in_("id", ids)
    )
    return {row["id"]: row for row in response.data or []}

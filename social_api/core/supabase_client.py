from fastapi import Request
from supabase import AsyncClient, acreate_client

from social_api.core.config import Settings


async def create_supabase_client(settings: Settings) -> AsyncClient:
    """Service-role client shared by every request of the process."""
    return await acreate_client(settings.supabase_url, settings.supabase_key)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_supabase(request: Request) -> AsyncClient:
    return request.app.state.supabase

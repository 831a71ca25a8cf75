import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from social_api.utils.env_helper import env_bool, env_list, env_none_or_str


DEFAULT_ORIGINS = ["http://localhost:5173"]


class Settings(BaseModel):
    """
    Process-wide configuration.

    Built once when the app is created and stored on ``app.state.settings``.
    Handlers receive it through ``Depends(get_settings)`` instead of reading
    the environment themselves.
    """

    supabase_url: str
    supabase_key: str
    # When set, access tokens are verified locally (HS256) instead of
    # round-tripping to Supabase Auth.
    supabase_jwt_secret: Optional[str] = None

    storage_bucket: str = "uploads"
    api_prefix: str = "/api"
    cors_origins: List[str] = DEFAULT_ORIGINS

    cookie_secure: bool = False
    cookie_samesite: str = "lax"
    cookie_domain: Optional[str] = None

    log_level: str = "INFO"
    log_json: bool = False

    @property
    def jwt_issuer(self) -> str:
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        supabase_url = env_none_or_str("SUPABASE_URL")
        supabase_key = env_none_or_str("SUPABASE_KEY")

        if not supabase_url or not supabase_key:
            raise RuntimeError("Supabase URL or Key is missing")

        return cls(
            supabase_url=supabase_url,
            supabase_key=supabase_key,
            supabase_jwt_secret=env_none_or_str("SUPABASE_JWT_SECRET"),
            storage_bucket=os.getenv("STORAGE_BUCKET", "uploads"),
            api_prefix=os.getenv("API_PREFIX", "/api"),
            cors_origins=env_list("CORS_ORIGINS", DEFAULT_ORIGINS),
            cookie_secure=env_bool("COOKIE_SECURE", default=False),
            cookie_samesite=os.getenv("COOKIE_SAMESITE", "lax"),
            cookie_domain=env_none_or_str("COOKIE_DOMAIN"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=env_bool("LOG_JSON", default=False),
        )

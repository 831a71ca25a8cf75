import time
import uuid

import jwt
from fastapi.testclient import TestClient

from social_api.core.config import Settings
from social_api.main import create_app
from fake_supabase import FakeSupabase


SUPABASE_URL = "https://project.supabase.co"
JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
PASSWORD = "Secret123!"


def make_settings(**overrides) -> Settings:
    values = {
        "supabase_url": SUPABASE_URL,
        "supabase_key": "service-role-key",
        "supabase_jwt_secret": JWT_SECRET,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(**values)


def make_client(raise_server_exceptions=True, **settings_overrides):
    settings = make_settings(**settings_overrides)
    fake = FakeSupabase(url=SUPABASE_URL, jwt_secret=settings.supabase_jwt_secret)
    client = TestClient(
        create_app(settings=settings, supabase=fake),
        raise_server_exceptions=raise_server_exceptions,
    )
    return client, fake


def add_user(fake: FakeSupabase, username: str, user_id: str = None) -> str:
    """Auth account plus mirrored ``users`` row, as signup would leave them."""
    user_id = user_id or str(uuid.uuid4())
    fake.auth.create_account(f"{username}@example.com", PASSWORD, user_id=user_id)
    fake.db.insert_rows(
        "users", {"id": user_id, "username": username, "profile_pic_url": None}
    )
    return user_id


def token_for(user_id: str, expires_in: int = 3600, secret: str = JWT_SECRET) -> str:
    return jwt.encode(
        {
            "sub": user_id,
            "email": f"{user_id}@example.com",
            "iss": f"{SUPABASE_URL}/auth/v1",
            "exp": int(time.time()) + expires_in,
        },
        secret,
        algorithm="HS256",
    )


def auth(user_id: str) -> dict:
    return {"Authorization": f"Bearer {token_for(user_id)}"}

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from pydantic import ValidationError
from supabase import AsyncClient, AuthApiError

from social_api.core.config import Settings
from social_api.core.database import run_query
from social_api.core.dependencies import CurrentUser, get_current_user
from social_api.core.errors import (
    Conflict,
    InvalidRequest,
    NotFound,
    PersistenceFailure,
    Unauthorized,
    validation_message,
)
from social_api.core.supabase_client import get_settings, get_supabase
from social_api.utils.profiles import get_profile
from social_api.utils.storage import upload_public_file
from .cookies import REFRESH_COOKIE, clear_session_cookies, set_session_cookies
from .schemas import (
    LogoutResponseModel,
    MeResponseModel,
    RefreshResponseModel,
    UserLoginModel,
    UserLoginResponseModel,
    UserSignupModel,
    UserSignupResponseModel,
)


logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/signup", response_model=UserSignupResponseModel, status_code=201)
async def sign_up(
    email: str = Form(...),
    password: str = Form(...),
    username: str = Form(...),
    profilePic: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Register a new user.

    Creates the Supabase Auth user, optionally uploads a profile picture, and
    mirrors the user into the `users` table under the same id.

    **Input Fields** (multipart form)
    - **email**: A valid email, not already registered.
    - **username**: 3 to 20 characters, letters, numbers, underscores or dots.
    - **password**: Minimum 8 characters.
    - **profilePic**: Optional image file.

    **Errors**
    - 400: Invalid input or Supabase refused the sign-up
    - 409: Username already taken
    - 500: Storage or database error
    """
    try:
        data = UserSignupModel(email=email, username=username, password=password)
    except ValidationError as error:
        raise InvalidRequest(validation_message(error))

    # Check if username already exists
    username_check = await run_query(
        supabase.table("users").select("id").eq("username", data.username).limit(1)
    )
    if username_check.data:
        raise Conflict("Username already taken.")

    try:
        res = await supabase.auth.sign_up(
            {
                "email": data.email,
                "password": data.password.get_secret_value(),
            }
        )
    except AuthApiError as error:
        logger.error(f"supabase_error={error.message}")
        raise InvalidRequest(error.message)

    if not res or not res.user:
        raise InvalidRequest("Failed to sign up.")

    user_id = str(res.user.id)
    profile_pic_url = None

    if profilePic and profilePic.filename:
        profile_pic_url = await upload_public_file(
            supabase, settings.storage_bucket, f"{user_id}-{profilePic.filename}", profilePic
        )

    now = datetime.now(timezone.utc).isoformat()
    await run_query(
        supabase.table("users").insert(
            {
                "id": user_id,
                "username": data.username,
                "profile_pic_url": profile_pic_url,
                "created_at": now,
                "updated_at": now,
            }
        )
    )

    logger.info(f"user_signup_success email={data.email}, username={data.username}")

    return {
        "user": {
            "id": user_id,
            "email": res.user.email,
            "username": data.username,
            "profile_pic_url": profile_pic_url,
        }
    }


@router.post("/login", response_model=UserLoginResponseModel, status_code=200)
async def log_in(
    user_data: UserLoginModel,
    response: Response,
    settings: Settings = Depends(get_settings),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Authenticate a user with email and password.

    On success the access token is set in the `authToken` cookie and the
    refresh token in the httponly `refreshToken` cookie; both are also
    returned in the body.

    **Errors**
    - 400: Missing fields, invalid credentials, or no `users` row
    - 500: Supabase returned no session
    """
    try:
        res = await supabase.auth.sign_in_with_password(
            {
                "email": user_data.email,
                "password": user_data.password.get_secret_value(),
            }
        )
    except AuthApiError as error:
        logger.info(f"user_login_failed email={user_data.email}")
        raise InvalidRequest(error.message)

    if not res or not res.session or not res.user:
        raise PersistenceFailure("Supabase authentication returned an unexpected response.")

    user_id = str(res.user.id)
    profile = await get_profile(supabase, user_id)
    if profile is None:
        raise InvalidRequest("User not found in the database.")

    set_session_cookies(response, res.session, settings)
    logger.info(f"user_login_success email={user_data.email}")

    return {
        "user": {
            "id": user_id,
            "email": res.user.email,
            "username": profile["username"],
            "profile_pic_url": profile.get("profile_pic_url"),
        },
        "token": res.session.access_token,
        "refreshToken": res.session.refresh_token,
    }


@router.get("/user", response_model=MeResponseModel, status_code=200)
async def get_user(
    user: CurrentUser = Depends(get_current_user),
    supabase: AsyncClient = Depends(get_supabase),
):
    """Profile of the authenticated user (`id`, `username`, `profile_pic_url`)."""
    profile = await get_profile(supabase, user.id)
    if profile is None:
        raise NotFound("User not found.")
    return profile


@router.post("/refresh", response_model=RefreshResponseModel, status_code=200)
async def refresh_auth_token(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_settings),
    supabase: AsyncClient = Depends(get_supabase),
):
    """
    Exchange the `refreshToken` cookie for a new session.

    Both cookies are rewritten with the rotated tokens.

    **Errors**
    - 401: Missing, expired, revoked, or invalid refresh token
    """
    refresh_token = request.cookies.get(REFRESH_COOKIE)

    if not refresh_token:
        raise Unauthorized("No refresh token provided")

    try:
        result = await supabase.auth.refresh_session(refresh_token)
    except AuthApiError as error:
        logger.warning(f"session_refresh_failed error={error.message}")
        raise Unauthorized("Invalid or expired refresh token")

    if not result or not result.session:
        raise Unauthorized("Failed to refresh session")

    set_session_cookies(response, result.session, settings)

    return {
        "message": "Token refreshed successfully",
        "user": (
            {"id": str(result.user.id), "email": result.user.email}
            if result.user
            else None
        ),
    }


@router.post("/logout", response_model=LogoutResponseModel, status_code=200)
def log_out(response: Response, settings: Settings = Depends(get_settings)):
    """
    Log out by clearing both session cookies. Supabase cannot invalidate
    issued access tokens early, they simply expire.
    """
    clear_session_cookies(response, settings)
    return {"logged_out": True}

import logging
from typing import Optional

import jwt
from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel
from supabase import AsyncClient, AuthApiError

from social_api.auth.cookies import ACCESS_COOKIE, REFRESH_COOKIE, set_session_cookies
from social_api.core.config import Settings
from social_api.core.errors import Unauthorized
from social_api.core.supabase_client import get_settings, get_supabase


logger = logging.getLogger(__name__)
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None


class InvalidCredential(Exception):
    pass


async def verify_token(
    token: str, settings: Settings, supabase: AsyncClient
) -> CurrentUser:
    """
    Resolve an access token to the user it was issued for.

    With ``SUPABASE_JWT_SECRET`` configured the token is checked locally;
    otherwise Supabase Auth is asked.
    """
    if settings.supabase_jwt_secret:
        try:
            payload = jwt.decode(
                token,
                settings.supabase_jwt_secret,
                algorithms=["HS256"],
                issuer=settings.jwt_issuer,
                options={"verify_aud": False},
                leeway=60,
            )
        except jwt.ExpiredSignatureError:
            raise InvalidCredential("Token expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"jwt_verification_failed error={e}")
            raise InvalidCredential("Invalid token")

        if not payload.get("sub"):
            raise InvalidCredential("Invalid token")

        return CurrentUser(id=payload["sub"], email=payload.get("email"))

    try:
        user_data = await supabase.auth.get_user(token)
    except AuthApiError as error:
        raise InvalidCredential(error.message)

    if not user_data or not user_data.user:
        raise InvalidCredential("Invalid authentication")

    return CurrentUser(id=str(user_data.user.id), email=user_data.user.email)


async def refresh_credential(
    refresh_token: str,
    response: Response,
    settings: Settings,
    supabase: AsyncClient,
) -> CurrentUser:
    try:
        result = await supabase.auth.refresh_session(refresh_token)
    except AuthApiError as error:
        logger.warning(f"session_refresh_failed error={error.message}")
        raise Unauthorized("Session expired. Please login again.")

    if not result or not result.session or not result.user:
        raise Unauthorized("Session expired. Please login again.")

    set_session_cookies(response, result.session, settings)
    logger.info(f"session_refreshed user_id={result.user.id}")

    return CurrentUser(id=str(result.user.id), email=result.user.email)


async def get_optional_user(
    request: Request,
    response: Response,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
    supabase: AsyncClient = Depends(get_supabase),
) -> Optional[CurrentUser]:
    """
    Authentication gate.

    Looks for the access token in the ``authToken`` cookie, then in an
    ``Authorization: Bearer`` header. No token means an anonymous request
    (``None``). A token that fails verification is exchanged through the
    ``refreshToken`` cookie when one is present; the new pair is written back
    as cookies on the response.
    """
    token = request.cookies.get(ACCESS_COOKIE)
    if not token and credentials:
        token = credentials.credentials

    if not token:
        return None

    try:
        return await verify_token(token, settings, supabase)
    except InvalidCredential as error:
        refresh_token = request.cookies.get(REFRESH_COOKIE)
        if not refresh_token:
            logger.info(f"auth_rejected reason={error}")
            raise Unauthorized("Authentication required")

    return await refresh_credential(refresh_token, response, settings, supabase)


def get_current_user(
    user: Optional[CurrentUser] = Depends(get_optional_user),
) -> CurrentUser:
    if user is None:
        raise Unauthorized("Unauthorized")
    return user

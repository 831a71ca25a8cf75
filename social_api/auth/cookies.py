from fastapi import Response

from social_api.core.config import Settings


ACCESS_COOKIE = "authToken"
REFRESH_COOKIE = "refreshToken"

ACCESS_MAX_AGE = 60 * 60 * 24  # 1 day
REFRESH_MAX_AGE = 60 * 60 * 24 * 30  # 30 days


def set_session_cookies(response: Response, session, settings: Settings) -> None:
    """Write the access/refresh pair of a Supabase session onto ``response``."""
    # The SPA reads the access token, so it is not httponly.
    response.set_cookie(
        key=ACCESS_COOKIE,
        value=session.access_token,
        httponly=False,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        domain=settings.cookie_domain,
        max_age=ACCESS_MAX_AGE,
        path="/",
    )
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=session.refresh_token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.cookie_samesite,
        domain=settings.cookie_domain,
        max_age=REFRESH_MAX_AGE,
        path="/",
    )


def clear_session_cookies(response: Response, settings: Settings) -> None:
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(key=key, domain=settings.cookie_domain, path="/")

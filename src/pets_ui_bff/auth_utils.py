# src/pets_ui_bff/auth_utils.py

import json
import logging
import typing

from fastapi import Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response as StarletteResponse

from .config import Settings
from .session_data import SessionData, SessionUser

logger = logging.getLogger(__name__)

TOKEN_COOKIE_NAME = "auth_token"
USER_COOKIE_NAME = "user"
SESSION_COOKIE_NAMES = (TOKEN_COOKIE_NAME, USER_COOKIE_NAME)

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"


# --- Cookie helpers ---

def read_session_cookies(cookies: typing.Mapping[str, str]) -> typing.Tuple[typing.Optional[SessionData], bool]:
    """
    Rebuilds the session from the cookie pair.
    Returns (session, needs_clear). needs_clear is True when some session cookie
    was present but the pair could not be turned into a valid session.
    """
    token = cookies.get(TOKEN_COOKIE_NAME)
    user_str = cookies.get(USER_COOKIE_NAME)

    if not token and not user_str:
        return None, False
    if not token or not user_str:
        logger.info("AUTH: lone session cookie found, discarding the pair")
        return None, True

    try:
        user = SessionUser.model_validate(json.loads(user_str))
    except (ValueError, ValidationError) as e:
        logger.warning("AUTH: failed to parse user cookie: %s", e)
        return None, True

    return SessionData(token=token, user=user), False


def serialize_user(user: SessionUser) -> str:
    return json.dumps(user.model_dump(mode="json"), separators=(",", ":"))


def write_session_cookies(response: StarletteResponse, session: SessionData, settings: Settings) -> None:
    response.set_cookie(
        TOKEN_COOKIE_NAME,
        session.token,
        max_age=settings.SESSION_MAX_AGE,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
    )
    response.set_cookie(
        USER_COOKIE_NAME,
        serialize_user(session.user),
        max_age=settings.SESSION_MAX_AGE,
        path="/",
        secure=settings.COOKIE_SECURE,
        samesite="strict",
    )


def clear_session_cookies(response: StarletteResponse, settings: Settings) -> None:
    for name in SESSION_COOKIE_NAMES:
        response.delete_cookie(
            name,
            path="/",
            secure=settings.COOKIE_SECURE,
            httponly=name == TOKEN_COOKIE_NAME,
            samesite="strict",
        )


def _response_sets_cookie(response: StarletteResponse, name: str) -> bool:
    prefix = f"{name}="
    return any(
        value.startswith(prefix)
        for key, value in response.headers.items()
        if key.lower() == "set-cookie"
    )


def is_protected_path(path: str, prefixes: typing.Iterable[str]) -> bool:
    return any(path.startswith(prefix) for prefix in prefixes)


# --- Session guard ---

class SessionGuardMiddleware(BaseHTTPMiddleware):
    """
    Runs before every route: attaches the cookie session (or None) to
    request.state.session and turns unauthenticated requests for protected
    prefixes into a 303 to the login page.
    """

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request, call_next):
        session, needs_clear = read_session_cookies(request.cookies)
        request.state.session = session

        if session is None and is_protected_path(request.url.path, self.settings.PROTECTED_PREFIXES):
            logger.info("AUTH: no session for protected path %s, redirecting to %s", request.url.path, LOGIN_PATH)
            response: StarletteResponse = RedirectResponse(url=LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)
        else:
            response = await call_next(request)

        if needs_clear:
            # Leave cookies alone if the route already replaced the session
            if not any(_response_sets_cookie(response, name) for name in SESSION_COOKIE_NAMES):
                clear_session_cookies(response, self.settings)
        return response


def get_session(request: Request) -> typing.Optional[SessionData]:
    return getattr(request.state, "session", None)

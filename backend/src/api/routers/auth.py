"""Authentication endpoints: register, login, logout and refresh."""
from fastapi import APIRouter, Cookie, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_session_cache,
    get_settings,
    role_based_rate_limit,
)
from core.config import Settings
from core.session_cache import SessionCache
from schemas.auth import AuthResponse, LoginRequest, MessageResponse, RegisterRequest, UserPublic
from services import auth_service
from services.auth_service import IssuedSession

router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE = "jwt"
LOGIN_COOKIE_MAX_AGE = 24 * 60 * 60  # 1 day
REFRESH_COOKIE_MAX_AGE = 7 * 24 * 60 * 60  # 7 days


def _set_refresh_cookie(
    response: Response,
    refresh_token: str,
    settings: Settings,
    max_age: int,
) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def _auth_response(message: str, session: IssuedSession) -> AuthResponse:
    return AuthResponse(
        message=message,
        user=UserPublic.model_validate(session.user),
        access_token=session.access_token,
    )


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    data: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
    cache: SessionCache = Depends(get_session_cache),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """
    Create an account and open a session.

    The refresh token is set as the http-only `jwt` cookie (1 day).
    Returns 409 if the email is already registered.
    """
    session = await auth_service.register(db, cache, settings, data)
    _set_refresh_cookie(response, session.refresh_token, settings, LOGIN_COOKIE_MAX_AGE)
    return _auth_response("User registered successfully", session)


@router.post(
    "/login",
    response_model=AuthResponse,
    dependencies=[Depends(role_based_rate_limit)],
)
async def login(
    data: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_async_session),
    cache: SessionCache = Depends(get_session_cache),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """
    Log in with email and password.

    Returns 401 for an unknown email or a wrong password.
    """
    session = await auth_service.login(db, cache, settings, data)
    _set_refresh_cookie(response, session.refresh_token, settings, LOGIN_COOKIE_MAX_AGE)
    return _auth_response("Login successful", session)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    response: Response,
    refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
    db: AsyncSession = Depends(get_async_session),
    cache: SessionCache = Depends(get_session_cache),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    """
    Exchange the refresh cookie for a new access token.

    The refresh token is rotated and the cookie reset (7 days).
    Returns 401 without a cookie, 403 if the token is not recognized.
    """
    session = await auth_service.refresh(db, cache, settings, refresh_token)
    _set_refresh_cookie(response, session.refresh_token, settings, REFRESH_COOKIE_MAX_AGE)
    return _auth_response("Token refreshed", session)


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={204: {"description": "No session cookie; nothing to do"}},
)
async def logout(
    refresh_token: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
    db: AsyncSession = Depends(get_async_session),
    cache: SessionCache = Depends(get_session_cache),
    settings: Settings = Depends(get_settings),
) -> Response:
    """
    End the current session and clear the refresh cookie.

    Returns 204 when there is no cookie.
    """
    if not await auth_service.logout(db, cache, refresh_token):
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    response = JSONResponse(
        content=MessageResponse(message="Logged out successfully").model_dump(),
    )
    response.delete_cookie(
        key=REFRESH_COOKIE,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return response

import logging
from dataclasses import dataclass

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from dashboard_auth.auth import SessionManager
from dashboard_auth.config import settings
from dashboard_auth.db import get_db
from dashboard_auth.errors import AccountDisabledError
from dashboard_auth.schemas import (
    ApiErrorDetail,
    DisableUserResponse,
    LoginRequest,
    LoginResponse,
    SessionCheckResponse,
    UserResponse,
)
from dashboard_auth.sessions import SessionStore
from dashboard_auth.users import SqlUserDirectory, UserRecord

router = APIRouter(prefix="/api/auth", tags=["auth"])
users_router = APIRouter(prefix="/api/users", tags=["users"])


@dataclass
class SessionContext:
    session_id: str
    user: UserRecord


def _logger(request: Request, suffix: str) -> logging.Logger:
    auth_log = getattr(request.app.state, "auth_log", None)
    if auth_log is None:
        return logging.getLogger(f"dashboard_auth.{suffix}")
    return auth_log.child(suffix)


def get_session_manager(request: Request, db: Session = Depends(get_db)) -> SessionManager:
    return SessionManager(
        SqlUserDirectory(db, logger=_logger(request, "users")),
        SessionStore(db),
        logger=_logger(request, "sessions"),
        ttl=settings.session_ttl,
    )


def read_session_token(request: Request) -> str:
    return (
        request.cookies.get(settings.session_cookie_name)
        or request.headers.get(settings.session_header_name)
        or ""
    )


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "UNAUTHORIZED", "message": "Authentication required"},
    )


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "INVALID_CREDENTIALS", "message": "Invalid username or password"},
    )


def _account_disabled() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={
            "code": "ACCOUNT_DISABLED",
            "message": "This account has been disabled. Contact an administrator.",
        },
    )


def require_session(
    request: Request,
    manager: SessionManager = Depends(get_session_manager),
) -> SessionContext:
    session_id = read_session_token(request)
    if not manager.validate_session(session_id):
        raise _unauthorized()

    user = manager.get_user_from_session(session_id)
    if user is None:
        raise _unauthorized()

    return SessionContext(session_id=session_id, user=user)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"model": ApiErrorDetail}, 403: {"model": ApiErrorDetail}},
)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
) -> LoginResponse:
    try:
        result = manager.login(
            payload.username,
            payload.password,
            ip_address=request.client.host if request.client else "",
            user_agent=request.headers.get("user-agent", ""),
        )
    except AccountDisabledError as exc:
        raise _account_disabled() from exc

    if result is None:
        raise _invalid_credentials()

    response.set_cookie(
        key=settings.session_cookie_name,
        value=result.session_id,
        max_age=int(manager.ttl.total_seconds()),
        path="/",
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return LoginResponse(
        session_id=result.session_id,
        expires_at=result.expires_at,
        user=UserResponse.from_record(result.user),
    )


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
)
def logout(
    request: Request,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
) -> None:
    manager.destroy_session(read_session_token(request))
    response.delete_cookie(key=settings.session_cookie_name, path="/")


@router.get(
    "/check",
    response_model=SessionCheckResponse,
    responses={401: {"model": ApiErrorDetail}},
)
def check(context: SessionContext = Depends(require_session)) -> SessionCheckResponse:
    return SessionCheckResponse(authenticated=True, user=UserResponse.from_record(context.user))


@users_router.post(
    "/{user_id}/disable",
    response_model=DisableUserResponse,
    responses={401: {"model": ApiErrorDetail}, 404: {"model": ApiErrorDetail}},
)
def disable_user(
    user_id: int,
    context: SessionContext = Depends(require_session),
    manager: SessionManager = Depends(get_session_manager),
) -> DisableUserResponse:
    revoked = manager.disable_user(user_id)
    if revoked is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "USER_NOT_FOUND", "message": "User not found"},
        )
    return DisableUserResponse(user_id=user_id, revoked_sessions=revoked)

"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, EmailStr, Field, field_validator
from schemas import AccountListItem, AccountProfile

from ..config import get_settings
from ..domain.account import Account
from ..domain.contracts import RegisterAccountInput
from ..domain.service import AccountService
from ..domain.session import SessionContext
from ..security.passwords import MAX_PASSWORD_BYTES, password_byte_length
from ..security.redis_session_store import RedisSessionStore
from ..security.session_store import InMemorySessionStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")


class RegisterAccountRequest(BaseModel):
    """Payload accepted when registering an account."""

    user_name: str = Field(..., min_length=1)
    family_name: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if password_byte_length(value) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")
        return value


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginResponse(BaseModel):
    """Returned after a successful login; the session travels in a cookie."""

    account: AccountProfile


class ExistsResponse(BaseModel):
    exists: bool


settings = get_settings()


def _build_session_store() -> InMemorySessionStore | RedisSessionStore:
    """Instantiate the configured session store backend, preferring Redis when available."""
    if settings.session_backend == "redis" and settings.redis_url:
        try:
            import redis

            client = redis.from_url(settings.redis_url)
            # ensure connectivity early to fail fast and fall back
            client.ping()
            logger.info("session store configured for redis backend at %s", settings.redis_url)
            return RedisSessionStore(client, ttl_seconds=settings.session_ttl_seconds)
        except Exception as exc:  # pragma: no cover - depends on a live redis
            logger.warning("redis session store unavailable, falling back to in-memory: %s", exc)

    logger.info("session store using in-memory backend")
    return InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds)


session_store = _build_session_store()


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def get_session(request: Request) -> SessionContext:
    """Load the caller's session from the cookie, or start a blank one."""
    session_id = request.cookies.get(settings.session_cookie_name)
    if session_id:
        data = session_store.load(session_id)
        if data is not None:
            return SessionContext(session_id, data)
    return SessionContext()


def _persist_session(session: SessionContext, response: Response) -> None:
    if session.invalidated:
        session_store.destroy(session.session_id)
        response.delete_cookie(settings.session_cookie_name)
        return
    session_store.save(session.session_id, session.data)
    response.set_cookie(
        settings.session_cookie_name,
        session.session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def _require_login(session: SessionContext) -> dict:
    login = session.login
    if not login:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="not logged in")
    return login


def _require_admin(session: SessionContext) -> dict:
    login = _require_login(session)
    if not login.get("is_admin"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin only")
    return login


def _profile(account: Account) -> AccountProfile:
    return AccountProfile(
        account_id=account.id,
        user_name=account.user_name,
        family_name=account.family_name,
        first_name=account.first_name,
        email=account.email,
        is_admin=account.is_admin,
        is_deleted=account.is_deleted,
        locked=account.locked_flg,
    )


def _profile_from_session(login: dict) -> AccountProfile:
    return AccountProfile(
        account_id=login["id"],
        user_name=login["user_name"],
        family_name=login["family_name"],
        first_name=login["first_name"],
        email=login["email"],
        is_admin=login.get("is_admin", False),
        is_deleted=login.get("is_deleted", False),
        locked=login.get("locked_flg", False),
    )


@router.post("/accounts", response_model=AccountProfile, status_code=status.HTTP_201_CREATED)
def register_account(
    payload: RegisterAccountRequest,
    service: AccountService = Depends(get_service),
) -> AccountProfile:
    """Register an account; fails with 409 when the email is already taken."""
    if service.find_by_email(payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email already registered")
    created = service.register(
        RegisterAccountInput(
            user_name=payload.user_name,
            family_name=payload.family_name,
            first_name=payload.first_name,
            email=payload.email,
            password=payload.password,
        )
    )
    if not created:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="account could not be created",
        )
    account = service.find_by_email(payload.email)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="account created but could not be loaded",
        )
    return _profile(account)


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    response: Response,
    service: AccountService = Depends(get_service),
    session: SessionContext = Depends(get_session),
) -> LoginResponse:
    """Log in with email and password, honouring the failed-attempt lockout."""
    if not service.login_with_lockout(payload.email, payload.password, session):
        errors = session.errors()
        detail = next(iter(errors.values()), "invalid credentials")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)
    session_store.destroy(session.rotate_id())
    _persist_session(session, response)
    return LoginResponse(account=_profile_from_session(session.login))


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    service: AccountService = Depends(get_service),
    session: SessionContext = Depends(get_session),
) -> Response:
    """Clear the caller's session and expire its cookie."""
    service.logout(session)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    _persist_session(session, response)
    return response


@router.get("/me", response_model=AccountProfile)
def current_account(session: SessionContext = Depends(get_session)) -> AccountProfile:
    return _profile_from_session(_require_login(session))


@router.get("/accounts", response_model=list[AccountListItem])
def list_accounts(
    service: AccountService = Depends(get_service),
    session: SessionContext = Depends(get_session),
) -> list[AccountListItem]:
    """List every account, soft-deleted ones included."""
    _require_admin(session)
    return [
        AccountListItem(
            account_id=summary.id,
            user_name=summary.user_name,
            family_name=summary.family_name,
            first_name=summary.first_name,
            is_admin=summary.is_admin,
            is_deleted=summary.is_deleted,
        )
        for summary in service.list_all()
    ]


@router.get("/accounts/{account_id}", response_model=AccountProfile)
def get_account(
    account_id: str,
    service: AccountService = Depends(get_service),
    session: SessionContext = Depends(get_session),
) -> AccountProfile:
    _require_login(session)
    account = service.get_by_id(account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found")
    return _profile(account)


@router.get("/accounts/{account_id}/exists", response_model=ExistsResponse)
def account_exists(
    account_id: str,
    service: AccountService = Depends(get_service),
    session: SessionContext = Depends(get_session),
) -> ExistsResponse:
    _require_login(session)
    return ExistsResponse(exists=service.exists(account_id))


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: str,
    service: AccountService = Depends(get_service),
    session: SessionContext = Depends(get_session),
) -> Response:
    """Soft-delete an account (admin only)."""
    _require_admin(session)
    if service.get_by_id(account_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found")
    if not service.soft_delete(account_id):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="account could not be deleted",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)

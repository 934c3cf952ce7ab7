# chatvault/routers/auth.py
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, Depends, Request, Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from .. import credentials
from ..config import Settings
from ..database import get_db
from ..errors import Unauthenticated
from ..security import PasswordHasher, get_password_hasher, sign_session_token, unsign_session_token
from ..sessions import SessionManager, get_session_manager

logger = logging.getLogger(__name__)

authRoutes = APIRouter(prefix="/api", tags=["auth"])

SESSION_COOKIE = "chatvault_sid"
HOME_PAGE = "/index.html"
LOGIN_PAGE = "/login"


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


db_link = Annotated[Session, Depends(get_db)]
settings_dep = Annotated[Settings, Depends(get_app_settings)]
sessions_dep = Annotated[SessionManager, Depends(get_session_manager)]
hasher_dep = Annotated[PasswordHasher, Depends(get_password_hasher)]


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=120)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RedirectOut(BaseModel):
    success: bool = True
    redirect: str


class UserOut(BaseModel):
    username: str
    email: EmailStr

    class Config:
        from_attributes = True  # Pydantic v2


def get_session_token(
    settings: settings_dep,
    sid: Annotated[Optional[str], Cookie(alias=SESSION_COOKIE)] = None,
) -> Optional[str]:
    return unsign_session_token(sid, settings.session_secret)


def get_optional_user_id(
    token: Annotated[Optional[str], Depends(get_session_token)],
    sessions: sessions_dep,
) -> Optional[int]:
    return sessions.resolve(token)


def get_current_user_id(user_id: Annotated[Optional[int], Depends(get_optional_user_id)]) -> int:
    if user_id is None:
        raise Unauthenticated()
    return user_id


def start_session(
    response: Response,
    sessions: SessionManager,
    settings: Settings,
    user_id: int,
    previous_token: Optional[str] = None,
) -> None:
    # rotate: whatever session the browser arrived with is retired
    sessions.destroy(previous_token)
    token = sessions.create(user_id)
    max_age = int(sessions.ttl.total_seconds())
    response.set_cookie(
        key=SESSION_COOKIE,
        value=sign_session_token(token, settings.session_secret),
        httponly=True,
        max_age=max_age,
        expires=max_age,
        samesite="lax",
        secure=settings.is_production,  # plain http in development
    )


@authRoutes.post("/register", response_model=RedirectOut)
def register_user(
    payload: RegisterRequest,
    db: db_link,
    hasher: hasher_dep,
    sessions: sessions_dep,
    settings: settings_dep,
    response: Response,
    previous_token: Annotated[Optional[str], Depends(get_session_token)],
):
    user = credentials.register_user(
        db,
        hasher,
        username=payload.username,
        email=payload.email,
        password=payload.password,
    )
    start_session(response, sessions, settings, user.id, previous_token)
    return RedirectOut(redirect=HOME_PAGE)


@authRoutes.post("/login", response_model=RedirectOut)
def login(
    payload: LoginRequest,
    db: db_link,
    hasher: hasher_dep,
    sessions: sessions_dep,
    settings: settings_dep,
    response: Response,
    previous_token: Annotated[Optional[str], Depends(get_session_token)],
):
    user = credentials.authenticate_user(db, hasher, email=payload.email, password=payload.password)
    start_session(response, sessions, settings, user.id, previous_token)
    logger.info("User id=%s logged in", user.id)
    return RedirectOut(redirect=HOME_PAGE)


@authRoutes.get("/logout", response_model=RedirectOut)
def logout(
    token: Annotated[Optional[str], Depends(get_session_token)],
    sessions: sessions_dep,
    settings: settings_dep,
    response: Response,
):
    sessions.destroy(token)
    response.delete_cookie(SESSION_COOKIE, httponly=True, samesite="lax", secure=settings.is_production)
    return RedirectOut(redirect=LOGIN_PAGE)


@authRoutes.get("/me", response_model=UserOut)
def read_me(user_id: Annotated[int, Depends(get_current_user_id)], db: db_link):
    return credentials.get_user_by_id(db, user_id)

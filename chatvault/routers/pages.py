from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, RedirectResponse

from ..config import Settings
from .auth import HOME_PAGE, LOGIN_PAGE, get_app_settings, get_optional_user_id

pages = APIRouter(tags=["pages"], include_in_schema=False)

session_user = Annotated[Optional[int], Depends(get_optional_user_id)]
settings_dep = Annotated[Settings, Depends(get_app_settings)]


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=302)


@pages.get("/")
def root(user_id: session_user):
    return _redirect(HOME_PAGE if user_id is not None else LOGIN_PAGE)


@pages.get("/login")
def login_page(user_id: session_user, settings: settings_dep):
    if user_id is not None:
        return _redirect(HOME_PAGE)
    return FileResponse(settings.public_dir / "login.html")


@pages.get("/signup")
def signup_page(user_id: session_user, settings: settings_dep):
    if user_id is not None:
        return _redirect(HOME_PAGE)
    return FileResponse(settings.public_dir / "signup.html")


@pages.get("/index.html")
def index_page(user_id: session_user, settings: settings_dep):
    if user_id is None:
        return _redirect(LOGIN_PAGE)
    return FileResponse(settings.public_dir / "index.html")

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .database import Base, build_engine, build_session_factory
from .errors import ChatVaultError, ValidationError
from .i18n import negotiate_locale, translate
from .routers import auth, chats, pages
from .security import PasslibHasher, PasswordHasher
from .sessions import InMemorySessionBackend, SessionManager, SqlSessionBackend

logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("chatvault")


def _error_response(request: Request, code: str, status_code: int, context: Optional[str] = None) -> JSONResponse:
    settings: Settings = request.app.state.settings
    locale = negotiate_locale(request.headers.get("accept-language"), settings.default_locale)
    # the endpoint's name picks the operation-specific message
    endpoint = request.scope.get("endpoint")
    context = context or getattr(endpoint, "__name__", None)
    return JSONResponse(
        status_code=status_code,
        content={"error": translate(code, locale, context), "code": code},
    )


async def handle_app_error(request: Request, exc: ChatVaultError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
    return _error_response(request, exc.code, exc.status_code, exc.context)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected body on %s: %s", request.url.path, exc.errors())
    return _error_response(request, ValidationError.code, ValidationError.status_code)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(request, "error", 500)


def create_app(
    settings: Optional[Settings] = None,
    sessions: Optional[SessionManager] = None,
    password_hasher: Optional[PasswordHasher] = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title="chatvault")

    engine = build_engine(settings.sqlalchemy_url)
    Base.metadata.create_all(bind=engine)  # create tables
    session_factory = build_session_factory(engine)

    if sessions is None:
        if settings.session_backend == "memory":
            backend = InMemorySessionBackend()
        else:
            backend = SqlSessionBackend(session_factory)
        sessions = SessionManager(backend)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.sessions = sessions
    app.state.password_hasher = password_hasher or PasslibHasher()

    app.include_router(auth.authRoutes)
    app.include_router(chats.router)
    app.include_router(pages.pages)

    js_dir = settings.public_dir / "js"
    if js_dir.is_dir():
        app.mount("/js", StaticFiles(directory=js_dir), name="js")

    app.add_exception_handler(ChatVaultError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    logger.info("chatvault ready (env=%s, sessions=%s)", settings.app_env, type(sessions.backend).__name__)
    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError

from isyourdayok.infra.config.settings import settings
from isyourdayok.infra.database import get_database_manager
from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.access.policy import AccessPolicy
from isyourdayok.api.router import health, auth, user, activity, achievement, chat, admin
from isyourdayok.api.middleware.security.rate_limiter import RateLimitMiddleware
from isyourdayok.api.middleware.logging.request_logging import RequestLoggingMiddleware
from isyourdayok.core.exceptions.handler import ServiceError, GlobalErrorHandler

logger = get_logger(__name__)


async def seed_admin_roles() -> None:
    if not settings.ADMIN_WALLET_ADDRESSES:
        return
    session_factory = get_database_manager().get_session_factory()
    async with session_factory() as session:
        await AccessPolicy(session).seed_admins(settings.ADMIN_WALLET_ADDRESSES)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="""
IsYourDayOk wellness API - daily mood, journal and meditation tracking with on-chain streak achievements.

## Services
- **Authentication**: EVM wallet sign-in with JWT access/refresh tokens
- **Activities**: mood logs, journal entries and meditation sessions with points and streaks
- **Achievements**: streak milestones minted as NFTs
- **Chat**: community feed with admin announcements and milestones

## Authentication
All write endpoints and `/me` reads require a JWT Bearer access token.
        """,
        version=settings.APP_VERSION,
        docs_url="/",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=600,
    )

    app.add_middleware(RateLimitMiddleware)

    # added last so it wraps everything, including rate limited responses
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(ServiceError, GlobalErrorHandler.service_error_handler)
    app.add_exception_handler(StarletteHTTPException, GlobalErrorHandler.http_exception_handler)
    app.add_exception_handler(RequestValidationError, GlobalErrorHandler.validation_error_handler)
    app.add_exception_handler(Exception, GlobalErrorHandler.general_exception_handler)

    for module in (health, auth, user, activity, achievement, chat, admin):
        app.include_router(module.router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event():
        logger.info(
            "Starting IsYourDayOk API",
            extra={"service": settings.APP_NAME, "version": settings.APP_VERSION, "chain_id": settings.CHAIN_ID}
        )

        try:
            await get_database_manager().create_tables()
            await seed_admin_roles()
        except Exception as e:
            logger.error(f"Database initialization failed on startup: {str(e)}", exc_info=True)

    @app.on_event("shutdown")
    async def shutdown_event():
        await get_database_manager().close()
        logger.info("Shutting down IsYourDayOk API", extra={"service": settings.APP_NAME})

    return app

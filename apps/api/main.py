from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apps.api.api.routes import auth, categories, health, tickets, users
from apps.api.core.config import get_settings
from apps.api.core.errors import install_exception_handlers
from apps.api.core.logging import configure_logging, init_tracer, shutdown_tracer
from apps.api.core.security import TokenSigner
from apps.api.middleware.request_logging import RequestLoggingMiddleware
from apps.api.services.categories import CategoryRepository, CategoryService
from apps.api.services.database import Database
from apps.api.services.users import UserRepository, UserService
from apps.api.tickets import TicketRepository, TicketService


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider

    database = Database(settings.database_url, echo=settings.database_echo)
    app.state.database = database
    try:
        await database.ensure_schema()
        session_factory = database.session_factory
        signer = TokenSigner(settings.secret_key, settings.access_token_ttl_seconds)
        app.state.user_service = UserService(UserRepository(session_factory), signer=signer)
        app.state.category_service = CategoryService(CategoryRepository(session_factory))
        app.state.ticket_service = TicketService(TicketRepository(session_factory))
        logger.info("%s %s started", settings.app_name, settings.api_version)
        yield
    finally:
        await database.close()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, version=settings.api_version, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    install_exception_handlers(app)
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(categories.router)
    app.include_router(tickets.router)
    return app


app = create_app()

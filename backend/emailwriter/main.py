from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from emailwriter.api import auth, user, settings, email
from emailwriter.config import Settings, get_settings
from emailwriter.db.postgres import Database
from emailwriter.exceptions import register_exception_handlers
from emailwriter.logging_config import configure_logging
from emailwriter.services.crypto import CredentialCipher
from emailwriter.services.http_client import OutboundHttpClient
from emailwriter.services.llm_providers import build_provider_registry


def init_state(app: FastAPI, config: Settings, db: Database, http_client: OutboundHttpClient | None = None) -> None:
    """Attach the process-wide collaborators that request handlers share."""
    app.state.db = db
    app.state.cipher = CredentialCipher(config.encryption_key)
    app.state.providers = build_provider_registry(config)
    app.state.http_client = http_client or OutboundHttpClient(
        timeout=config.llm_request_timeout,
        max_redirects=config.http_max_redirects,
    )


def create_app(config: Settings | None = None) -> FastAPI:
    config = config or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config.log_level, config.log_json)
        db = Database(config.database_url, echo=config.database_echo)
        await db.create_all()
        init_state(app, config, db)

        yield

        await app.state.http_client.close()
        await db.dispose()

    app = FastAPI(
        title="Email Writer API",
        description="AI-assisted email drafting with per-user LLM providers",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(user.router, prefix="/api/user", tags=["user"])
    app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
    app.include_router(email.router, prefix="/api/email", tags=["email"])

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


app = create_app()

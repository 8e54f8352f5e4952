"""Wire services from the objects created at startup (see ``main.lifespan``)."""

from fastapi import Depends, Request

from emailwriter.config import Settings, get_settings
from emailwriter.db.postgres import Database, get_database
from emailwriter.services.email_generator import EmailGenerator
from emailwriter.services.history import HistoryRecorder
from emailwriter.services.settings_store import SettingsStore


def get_settings_store(
    request: Request,
    db: Database = Depends(get_database),
    config: Settings = Depends(get_settings),
) -> SettingsStore:
    return SettingsStore(
        db.sessionmaker,
        request.app.state.cipher,
        default_provider=config.default_llm_provider,
        default_ollama_endpoint=config.default_ollama_endpoint,
    )


def get_history_recorder(db: Database = Depends(get_database)) -> HistoryRecorder:
    return HistoryRecorder(db.sessionmaker)


def get_email_generator(
    request: Request,
    settings_store: SettingsStore = Depends(get_settings_store),
    history: HistoryRecorder = Depends(get_history_recorder),
    config: Settings = Depends(get_settings),
) -> EmailGenerator:
    return EmailGenerator(
        settings_store=settings_store,
        history=history,
        http_client=request.app.state.http_client,
        providers=request.app.state.providers,
        timeout=config.llm_request_timeout,
    )

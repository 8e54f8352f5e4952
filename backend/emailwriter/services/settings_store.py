"""Reads and writes a user's LLM settings, encrypting API keys on the way in
and decrypting them on the way out."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import httpx
from sqlalchemy import select, update, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from emailwriter.exceptions import DatabaseError, ValidationError
from emailwriter.models.settings import UserSettings, LLM_PROVIDERS, API_KEY_FIELDS
from emailwriter.services.crypto import CredentialCipher

logger = logging.getLogger(__name__)

SECRET_FIELDS = frozenset(API_KEY_FIELDS.values())
UPDATABLE_FIELDS = frozenset({"preferred_llm", "ollama_endpoint"}) | SECRET_FIELDS


@dataclass
class LLMSettings:
    """Decrypted view of a ``user_settings`` row."""
    user_id: int
    preferred_llm: str
    ollama_endpoint: Optional[str] = None
    api_keys: dict[str, Optional[str]] = field(default_factory=dict)
    updated_at: Optional[datetime] = None
    id: Optional[int] = None

    def api_key(self, provider: str) -> Optional[str]:
        return self.api_keys.get(provider)

    def has_api_key(self, provider: str) -> bool:
        return bool(self.api_keys.get(provider))


def _check_endpoint(value: str) -> str:
    """Reject endpoints the HTTP client could not call."""
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL:
        url = None
    if url is None or url.scheme not in ("http", "https") or not url.host:
        raise ValidationError(
            "'ollama_endpoint' must be an http:// or https:// URL.",
            details={"field": "ollama_endpoint"},
        )
    return value


def _insert_for(session: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT DO UPDATE."""
    if session.bind.dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


class SettingsStore:
    def __init__(
        self,
        sessionmaker: async_sessionmaker,
        cipher: CredentialCipher,
        default_provider: str = "ollama",
        default_ollama_endpoint: Optional[str] = "http://localhost:11434",
    ):
        self._sessionmaker = sessionmaker
        self._cipher = cipher
        self.default_provider = default_provider
        self.default_ollama_endpoint = default_ollama_endpoint

    async def get(self, user_id: int) -> Optional[LLMSettings]:
        """Load and decrypt settings. Returns None when the user has no row.

        A key that fails to decrypt comes back as None; the rest of the
        record is still returned.
        """
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(UserSettings).where(UserSettings.user_id == user_id)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to load settings for user_id %s", user_id, extra={"user_id": user_id}, exc_info=True)
            raise DatabaseError() from e

        if row is None:
            return None

        api_keys: dict[str, Optional[str]] = {}
        for provider, column in API_KEY_FIELDS.items():
            blob = getattr(row, column)
            if not blob:
                api_keys[provider] = None
                continue
            plaintext = self._cipher.decrypt(blob)
            if plaintext is None:
                logger.error(
                    "Failed to decrypt %s for user_id %s. Key may be corrupted or ENCRYPTION_KEY changed.",
                    column,
                    user_id,
                    extra={"user_id": user_id, "field": column},
                )
            api_keys[provider] = plaintext

        return LLMSettings(
            id=row.id,
            user_id=row.user_id,
            preferred_llm=row.preferred_llm,
            ollama_endpoint=row.ollama_endpoint,
            api_keys=api_keys,
            updated_at=row.updated_at,
        )

    def _prepare(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Validate a sparse update and map it to column values."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(
                "Unknown settings fields.", details={"fields": sorted(unknown)}
            )
        if not fields:
            raise ValidationError("No settings data provided to update.")

        values: dict[str, Any] = {}
        for name, value in fields.items():
            if isinstance(value, str):
                value = value.strip()

            if name == "preferred_llm":
                if value not in LLM_PROVIDERS:
                    raise ValidationError(
                        f"Invalid 'preferred_llm' value. Allowed values are: {', '.join(LLM_PROVIDERS)}.",
                        details={"allowed": list(LLM_PROVIDERS)},
                    )
                values[name] = value
            elif name in SECRET_FIELDS:
                # empty or null clears the stored key
                values[name] = self._cipher.encrypt(value) if value else None
            else:
                values[name] = _check_endpoint(value) if value else None
        return values

    async def upsert(self, user_id: int, fields: dict[str, Any]) -> None:
        """Insert or partially update settings for ``user_id``.

        Only keys present in ``fields`` are written. ``preferred_llm`` is
        required when the row does not exist yet.
        """
        values = self._prepare(fields)

        async with self._sessionmaker() as session:
            try:
                if "preferred_llm" in values:
                    insert = _insert_for(session)
                    stmt = insert(UserSettings).values(user_id=user_id, updated_at=func.now(), **values)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["user_id"],
                        set_={**values, "updated_at": func.now()},
                    )
                    await session.execute(stmt)
                else:
                    result = await session.execute(
                        update(UserSettings)
                        .where(UserSettings.user_id == user_id)
                        .values(updated_at=func.now(), **values)
                    )
                    if result.rowcount == 0:
                        await session.rollback()
                        raise ValidationError("'preferred_llm' is required when creating settings.")
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Failed to save settings for user_id %s", user_id, extra={"user_id": user_id}, exc_info=True)
                raise DatabaseError("Failed to update LLM settings. Please try again.") from e

        logger.info(
            "Saved settings fields %s for user_id %s",
            ",".join(sorted(values)),
            user_id,
            extra={"user_id": user_id},
        )

    async def create_defaults(self, user_id: int) -> None:
        await self.upsert(user_id, {
            "preferred_llm": self.default_provider,
            "ollama_endpoint": self.default_ollama_endpoint,
        })

    async def get_or_create(self, user_id: int) -> LLMSettings:
        """Return settings, creating the default row first if it is missing."""
        settings = await self.get(user_id)
        if settings is None:
            logger.warning("No settings found for user_id %s, creating defaults", user_id, extra={"user_id": user_id})
            await self.create_defaults(user_id)
            settings = await self.get(user_id)
        if settings is None:
            raise DatabaseError("LLM settings could not be created.")
        return settings

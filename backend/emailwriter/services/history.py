"""Generation history. Writes are best-effort: a failure is logged and swallowed
so it never affects the response already produced for the user."""

import logging
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from emailwriter.models.history import GenerationAttempt

logger = logging.getLogger(__name__)


class HistoryRecorder:
    def __init__(self, sessionmaker: async_sessionmaker):
        self._sessionmaker = sessionmaker

    async def record(
        self,
        user_id: int,
        raw_thoughts: str,
        tone: str,
        context_email: Optional[str],
        generated_email: Optional[str],
        llm_used: str,
    ) -> Optional[int]:
        """Append one attempt. Returns the new row id, or None if it could not be stored."""
        attempt = GenerationAttempt(
            user_id=user_id,
            raw_thoughts=raw_thoughts,
            tone=tone,
            context_email=context_email or None,
            generated_email=generated_email,
            llm_used=llm_used,
        )
        try:
            async with self._sessionmaker() as session:
                session.add(attempt)
                await session.commit()
                return attempt.id
        except (SQLAlchemyError, OSError):
            logger.error(
                "Failed to record generation history for user_id %s",
                user_id,
                extra={"user_id": user_id, "llm_used": llm_used},
                exc_info=True,
            )
            return None

    async def list_for_user(self, user_id: int, limit: int = 20, offset: int = 0) -> list[GenerationAttempt]:
        """Newest first."""
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(GenerationAttempt)
                    .where(GenerationAttempt.user_id == user_id)
                    .order_by(GenerationAttempt.created_at.desc(), GenerationAttempt.id.desc())
                    .limit(limit)
                    .offset(offset)
                )
                return list(result.scalars().all())
        except SQLAlchemyError:
            logger.error("Failed to load history for user_id %s", user_id, extra={"user_id": user_id}, exc_info=True)
            return []

    async def count_for_user(self, user_id: int) -> int:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(func.count()).select_from(GenerationAttempt).where(GenerationAttempt.user_id == user_id)
                )
                return int(result.scalar_one())
        except SQLAlchemyError:
            logger.error("Failed to count history for user_id %s", user_id, extra={"user_id": user_id}, exc_info=True)
            return 0

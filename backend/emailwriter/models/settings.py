"""Per-user LLM provider settings."""

from datetime import datetime
from sqlalchemy import String, Text, ForeignKey, DateTime, Integer, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from emailwriter.db.postgres import Base

LLM_PROVIDERS = ("ollama", "openai", "claude", "gemini", "groq", "cohere")

# Provider name -> column holding its encrypted API key
API_KEY_FIELDS = {
    "openai": "openai_api_key",
    "claude": "claude_api_key",
    "gemini": "gemini_api_key",
    "groq": "groq_api_key",
    "cohere": "cohere_api_key",
}


class UserSettings(Base):
    """One row per user. API key columns hold hex(iv || ciphertext), never plaintext."""
    __tablename__ = "user_settings"
    __table_args__ = (
        CheckConstraint(
            "preferred_llm IN (" + ", ".join(f"'{name}'" for name in LLM_PROVIDERS) + ")",
            name="ck_user_settings_preferred_llm",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True)

    preferred_llm: Mapped[str] = mapped_column(String(20), default="ollama")  # one of LLM_PROVIDERS
    ollama_endpoint: Mapped[str | None] = mapped_column(String(500), nullable=True)

    openai_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    claude_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    gemini_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    groq_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    cohere_api_key: Mapped[str | None] = mapped_column(Text, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="settings")

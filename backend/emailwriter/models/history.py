"""Append-only log of email generation attempts."""

from datetime import datetime
from sqlalchemy import String, Text, ForeignKey, DateTime, Integer, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from emailwriter.db.postgres import Base


class GenerationAttempt(Base):
    __tablename__ = "user_emails_history"
    __table_args__ = (
        Index("ix_user_emails_history_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"))
    raw_thoughts: Mapped[str] = mapped_column(Text)
    tone: Mapped[str] = mapped_column(String(50))
    context_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    generated_email: Mapped[str | None] = mapped_column(Text, nullable=True)  # null when generation failed
    llm_used: Mapped[str] = mapped_column(String(100))  # e.g. openai_gpt-3.5-turbo, ollama_llama3_error
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="email_history")

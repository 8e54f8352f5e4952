from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class GenerateEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    raw_thoughts: str = Field(alias="rawThoughts")
    tone: str = Field(max_length=50)
    context_email: Optional[str] = Field(None, alias="contextEmail")


class GenerateEmailResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Email generated successfully."
    generated_email: str = Field(serialization_alias="generatedEmail")
    llm_used: str = Field(serialization_alias="llmUsed")


class HistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    raw_thoughts: str
    tone: str
    context_email: Optional[str] = None
    generated_email: Optional[str] = None
    llm_used: str
    created_at: datetime


class HistoryPage(BaseModel):
    items: list[HistoryItem]
    total: int
    limit: int
    offset: int

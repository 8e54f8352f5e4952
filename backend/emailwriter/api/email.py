from fastapi import APIRouter, Depends, Query

from emailwriter.api.dependencies import get_email_generator, get_history_recorder
from emailwriter.exceptions import ValidationError
from emailwriter.models.user import User
from emailwriter.schemas.email import (
    GenerateEmailRequest,
    GenerateEmailResponse,
    HistoryItem,
    HistoryPage,
)
from emailwriter.security import get_current_user
from emailwriter.services.email_generator import EmailGenerator
from emailwriter.services.history import HistoryRecorder

router = APIRouter()


@router.post("/generate", response_model=GenerateEmailResponse)
async def generate_email(
    data: GenerateEmailRequest,
    current_user: User = Depends(get_current_user),
    generator: EmailGenerator = Depends(get_email_generator),
):
    raw_thoughts = data.raw_thoughts.strip()
    tone = data.tone.strip()
    context_email = (data.context_email or "").strip()

    if not raw_thoughts:
        raise ValidationError("Raw thoughts input cannot be empty.")
    if not tone:
        raise ValidationError("Tone input cannot be empty.")

    result = await generator.generate(current_user.id, raw_thoughts, tone, context_email or None)
    if result.error is not None:
        raise result.error

    return GenerateEmailResponse(generated_email=result.email, llm_used=result.llm_used)


@router.get("/history", response_model=HistoryPage)
async def get_history(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    history: HistoryRecorder = Depends(get_history_recorder),
):
    items = await history.list_for_user(current_user.id, limit=limit, offset=offset)
    total = await history.count_for_user(current_user.id)
    return HistoryPage(
        items=[HistoryItem.model_validate(item) for item in items],
        total=total,
        limit=limit,
        offset=offset,
    )

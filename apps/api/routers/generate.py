"""AI coloring generation router."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from database import get_db
from models.generation_attempt import GenerationAttempt
from routers.auth_scope import AuthContext, get_auth_context
from routers.rate_limit import rate_limit
from services.generation import run_generation
from services.styles import DEFAULT_STYLE, list_styles

router = APIRouter()


class GenerateRequest(BaseModel):
    imageData: str = Field(min_length=1)
    selectedStyle: str

    @field_validator("imageData")
    @classmethod
    def _validate_image_data(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith("data:image/") or ";base64," not in value:
            raise ValueError("imageData must be a base64 data URI for an image")
        if len(value) > int(settings.MAX_IMAGE_DATA_BYTES):
            raise ValueError("imageData exceeds the maximum upload size")
        return value


class GenerateResponse(BaseModel):
    coloredImageUrl: str
    creditsUsed: float
    remainingFreeGenerations: int
    remainingCredits: float
    attemptId: str


class GenerationAttemptResponse(BaseModel):
    id: str
    status: str
    selected_style: str
    prompt_used: str
    is_free_attempt: bool
    cost: float
    generated_image_url: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


def _serialize_attempt(attempt: GenerationAttempt) -> GenerationAttemptResponse:
    return GenerationAttemptResponse(
        id=attempt.id,
        status=attempt.status,
        selected_style=attempt.selected_style,
        prompt_used=attempt.prompt_used,
        is_free_attempt=bool(attempt.is_free_attempt),
        cost=float(attempt.cost or 0),
        generated_image_url=attempt.generated_image_url,
        error_message=attempt.error_message,
        created_at=attempt.created_at.isoformat() if attempt.created_at else None,
        completed_at=attempt.completed_at.isoformat() if attempt.completed_at else None,
    )


@router.post("/generate", response_model=GenerateResponse)
@router.post("/generate-colored-image", response_model=GenerateResponse, include_in_schema=False)
async def generate_colored_image(
    request: GenerateRequest,
    _rate_limit: None = Depends(rate_limit("generate", limit=30, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """Color an uploaded line drawing in the selected style."""
    outcome = await run_generation(
        auth.user_id,
        request.imageData,
        request.selectedStyle,
        db,
        email=auth.email,
    )
    return outcome.to_response()


@router.get("/generate/styles")
async def get_styles():
    """List the available coloring styles."""
    return {"default_style": DEFAULT_STYLE.value, "styles": list_styles()}


@router.get("/generate/attempts", response_model=List[GenerationAttemptResponse])
async def list_attempts(
    limit: int = Query(default=20, ge=1, le=100),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(GenerationAttempt)
        .where(GenerationAttempt.user_id == auth.user_id)
        .order_by(GenerationAttempt.created_at.desc())
        .limit(limit)
    )
    return [_serialize_attempt(attempt) for attempt in result.scalars().all()]


@router.get("/generate/attempts/{attempt_id}", response_model=GenerationAttemptResponse)
async def get_attempt(
    attempt_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(GenerationAttempt).where(
            GenerationAttempt.id == attempt_id,
            GenerationAttempt.user_id == auth.user_id,
        )
    )
    attempt = result.scalar_one_or_none()
    if not attempt:
        raise HTTPException(status_code=404, detail="Generation attempt not found")
    return _serialize_attempt(attempt)

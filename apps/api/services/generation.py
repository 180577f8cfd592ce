"""Orchestration of one AI coloring request, from funding to settlement."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.generation_attempt import ATTEMPT_STATUS_PENDING, GenerationAttempt
from models.user import User
from services.credits import (
    FundingDecision,
    ensure_credit_account,
    release_reservation,
    reserve_funding,
    settle,
)
from services.errors import GenerationFailed, InsufficientCredits, StorageError
from services.image_provider import generate_colored_image
from services.styles import ColoringStyle, build_generation_prompt, prompt_for_style, resolve_style

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationOutcome:
    attempt_id: str
    colored_image_url: str
    credits_used: Decimal
    remaining_free_generations: int
    remaining_credits: Decimal

    def to_response(self) -> Dict[str, Any]:
        return {
            "coloredImageUrl": self.colored_image_url,
            "creditsUsed": float(self.credits_used),
            "remainingFreeGenerations": self.remaining_free_generations,
            "remainingCredits": float(self.remaining_credits),
            "attemptId": self.attempt_id,
        }


async def ensure_user(db: AsyncSession, user_id: str, email: Optional[str] = None) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(id=user_id, email=email)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent first request created the same user.
        await db.rollback()
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one()
    return user


async def _prepare_account(db: AsyncSession, user_id: str, email: Optional[str]) -> None:
    try:
        await ensure_user(db, user_id, email)
        await ensure_credit_account(user_id, db)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Credit account lookup failed for user %s", user_id)
        raise StorageError("Failed to check user credits") from exc


async def create_pending_attempt(
    user_id: str,
    style: ColoringStyle,
    db: AsyncSession,
) -> Tuple[GenerationAttempt, FundingDecision]:
    """
    Reserve funding and record a pending attempt in one transaction.

    A denied reservation raises InsufficientCredits and leaves no attempt
    behind; a storage failure rolls the reservation back with the insert.
    """
    try:
        funding = await reserve_funding(user_id, db)
        if funding.is_denied:
            await db.rollback()
            raise InsufficientCredits()

        attempt = GenerationAttempt(
            user_id=user_id,
            status=ATTEMPT_STATUS_PENDING,
            is_free_attempt=funding.is_free,
            cost=funding.cost,
            selected_style=style.value,
            prompt_used=prompt_for_style(style),
        )
        db.add(attempt)
        await db.flush()
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to create generation attempt for user %s", user_id)
        raise StorageError("Failed to create generation attempt") from exc

    return attempt, funding


async def _abort_attempt(user_id: str, attempt_id: str, db: AsyncSession, reason: str) -> None:
    try:
        await release_reservation(user_id, attempt_id, db, error_message=reason)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Could not release reservation for attempt %s", attempt_id)


async def run_generation(
    user_id: str,
    image_data: str,
    selected_style: Optional[str],
    db: AsyncSession,
    *,
    email: Optional[str] = None,
) -> GenerationOutcome:
    """Run the full generation lifecycle for an authenticated user."""
    style = resolve_style(selected_style)
    if style.value != str(selected_style or "").strip().lower():
        logger.info("Unknown style %r for user %s; using %s", selected_style, user_id, style.value)

    await _prepare_account(db, user_id, email)
    attempt, funding = await create_pending_attempt(user_id, style, db)
    attempt_id = attempt.id
    logger.info(
        "generation_attempt_created user=%s attempt=%s style=%s funding=%s",
        user_id,
        attempt_id,
        style.value,
        funding.source.value,
    )

    try:
        image_url = await generate_colored_image(image_data, build_generation_prompt(style))
    except GenerationFailed as exc:
        logger.warning("generation_failed user=%s attempt=%s: %s", user_id, attempt_id, exc.message)
        await _abort_attempt(user_id, attempt_id, db, exc.message)
        raise
    except asyncio.CancelledError:
        logger.warning("generation_cancelled user=%s attempt=%s", user_id, attempt_id)
        await asyncio.shield(_abort_attempt(user_id, attempt_id, db, "Generation cancelled"))
        raise
    except Exception as exc:
        logger.exception("Unexpected provider error for attempt %s", attempt_id)
        await _abort_attempt(user_id, attempt_id, db, f"Image generation failed: {exc}")
        raise GenerationFailed(f"Image generation failed: {exc}") from exc

    try:
        balances = await settle(user_id, attempt_id, db, generated_image_url=image_url)
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to settle generation attempt %s", attempt_id)
        await _abort_attempt(user_id, attempt_id, db, "Failed to record generated image")
        raise StorageError("Failed to update generation attempt") from exc

    return GenerationOutcome(
        attempt_id=attempt_id,
        colored_image_url=image_url,
        credits_used=funding.cost,
        remaining_free_generations=balances.free_generations_remaining,
        remaining_credits=balances.paid_credits,
    )

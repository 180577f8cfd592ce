"""Credit ledger: funding decisions, reservations and settlement."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
import logging
from typing import Any, Dict, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.generation_attempt import (
    ATTEMPT_STATUS_COMPLETED,
    ATTEMPT_STATUS_FAILED,
    ATTEMPT_STATUS_PENDING,
    GenerationAttempt,
)
from models.user_credit import UserCredit
from services.errors import SettlementError

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class FundingSource(str, Enum):
    FREE = "free"
    PAID = "paid"
    DENIED = "denied"


@dataclass(frozen=True)
class FundingDecision:
    source: FundingSource
    unit_cost: Decimal = ZERO

    @property
    def is_free(self) -> bool:
        return self.source == FundingSource.FREE

    @property
    def is_denied(self) -> bool:
        return self.source == FundingSource.DENIED

    @property
    def cost(self) -> Decimal:
        return self.unit_cost if self.source == FundingSource.PAID else ZERO


@dataclass(frozen=True)
class CreditBalances:
    free_generations_remaining: int
    paid_credits: Decimal
    total_generations: int


def unit_cost() -> Decimal:
    return Decimal(settings.GENERATION_UNIT_COST).quantize(Decimal("0.01"))


def _to_money(value: Any) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(Decimal("0.01"))


async def _load_account(user_id: str, db: AsyncSession) -> Optional[UserCredit]:
    result = await db.execute(
        select(UserCredit)
        .where(UserCredit.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_balances(user_id: str, db: AsyncSession) -> CreditBalances:
    account = await _load_account(user_id, db)
    if account is None:
        return CreditBalances(free_generations_remaining=0, paid_credits=ZERO, total_generations=0)
    return CreditBalances(
        free_generations_remaining=int(account.free_generations_remaining or 0),
        paid_credits=_to_money(account.paid_credits),
        total_generations=int(account.total_generations or 0),
    )


async def ensure_credit_account(user_id: str, db: AsyncSession) -> UserCredit:
    """Return the user's credit record, provisioning the free quota on first use."""
    account = await _load_account(user_id, db)
    if account is not None:
        return account

    account = UserCredit(
        user_id=user_id,
        free_generations_remaining=max(int(settings.FREE_GENERATIONS_QUOTA), 0),
        paid_credits=ZERO,
        total_generations=0,
    )
    db.add(account)
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request provisioned the same row first.
        await db.rollback()
        account = await _load_account(user_id, db)
        if account is None:
            raise
        return account

    logger.info("credit_account_provisioned user=%s free=%s", user_id, account.free_generations_remaining)
    return account


def _decide(balances: CreditBalances) -> FundingDecision:
    cost = unit_cost()
    if balances.free_generations_remaining > 0:
        return FundingDecision(FundingSource.FREE)
    if balances.paid_credits >= cost:
        return FundingDecision(FundingSource.PAID, unit_cost=cost)
    return FundingDecision(FundingSource.DENIED)


async def decide_funding(user_id: str, db: AsyncSession) -> FundingDecision:
    """Read-only funding decision. A missing record counts as empty balances."""
    return _decide(await get_balances(user_id, db))


async def reserve_funding(user_id: str, db: AsyncSession) -> FundingDecision:
    """
    Atomically decide and reserve funding for one generation.

    Each branch is a single conditional UPDATE, so two concurrent requests can
    never both take the last free slot or push paid credits below zero. The
    caller owns the transaction: the reservation becomes durable on commit and
    disappears on rollback.
    """
    free_result = await db.execute(
        update(UserCredit)
        .where(
            UserCredit.user_id == user_id,
            UserCredit.free_generations_remaining > 0,
        )
        .values(free_generations_remaining=UserCredit.free_generations_remaining - 1)
        .execution_options(synchronize_session=False)
    )
    if free_result.rowcount == 1:
        return FundingDecision(FundingSource.FREE)

    cost = unit_cost()
    paid_result = await db.execute(
        update(UserCredit)
        .where(
            UserCredit.user_id == user_id,
            UserCredit.free_generations_remaining <= 0,
            UserCredit.paid_credits >= cost,
        )
        .values(paid_credits=UserCredit.paid_credits - cost)
        .execution_options(synchronize_session=False)
    )
    if paid_result.rowcount == 1:
        return FundingDecision(FundingSource.PAID, unit_cost=cost)

    return FundingDecision(FundingSource.DENIED)


async def settle(
    user_id: str,
    attempt_id: str,
    db: AsyncSession,
    *,
    generated_image_url: str,
) -> CreditBalances:
    """
    Complete a reserved attempt and count it against the user's totals.

    The pending -> completed transition is conditional, so a second settlement
    of the same attempt (or a settlement after a release) raises
    SettlementError without touching the ledger.
    """
    transition = await db.execute(
        update(GenerationAttempt)
        .where(
            GenerationAttempt.id == attempt_id,
            GenerationAttempt.user_id == user_id,
            GenerationAttempt.status == ATTEMPT_STATUS_PENDING,
        )
        .values(
            status=ATTEMPT_STATUS_COMPLETED,
            generated_image_url=generated_image_url,
            completed_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if transition.rowcount != 1:
        raise SettlementError(f"Generation attempt {attempt_id} is not pending")

    await db.execute(
        update(UserCredit)
        .where(UserCredit.user_id == user_id)
        .values(total_generations=UserCredit.total_generations + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info("generation_settled user=%s attempt=%s", user_id, attempt_id)
    return await get_balances(user_id, db)


async def release_reservation(
    user_id: str,
    attempt_id: str,
    db: AsyncSession,
    *,
    error_message: Optional[str] = None,
) -> CreditBalances:
    """Mark a pending attempt as failed and return its reserved funding."""
    result = await db.execute(
        select(GenerationAttempt).where(
            GenerationAttempt.id == attempt_id,
            GenerationAttempt.user_id == user_id,
        )
    )
    attempt = result.scalar_one_or_none()
    if attempt is None:
        raise SettlementError(f"Generation attempt {attempt_id} not found")

    transition = await db.execute(
        update(GenerationAttempt)
        .where(
            GenerationAttempt.id == attempt_id,
            GenerationAttempt.status == ATTEMPT_STATUS_PENDING,
        )
        .values(
            status=ATTEMPT_STATUS_FAILED,
            error_message=(error_message or "")[:2000] or None,
            completed_at=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    if transition.rowcount != 1:
        raise SettlementError(f"Generation attempt {attempt_id} is not pending")

    if attempt.is_free_attempt:
        refund = {"free_generations_remaining": UserCredit.free_generations_remaining + 1}
    else:
        refund = {"paid_credits": UserCredit.paid_credits + _to_money(attempt.cost)}
    await db.execute(
        update(UserCredit)
        .where(UserCredit.user_id == user_id)
        .values(**refund)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info("generation_reservation_released user=%s attempt=%s", user_id, attempt_id)
    return await get_balances(user_id, db)


async def add_paid_credits(user_id: str, db: AsyncSession, *, amount: Decimal) -> CreditBalances:
    credit = _to_money(amount)
    if credit <= ZERO:
        raise ValueError("amount must be greater than 0")
    await ensure_credit_account(user_id, db)
    await db.execute(
        update(UserCredit)
        .where(UserCredit.user_id == user_id)
        .values(paid_credits=UserCredit.paid_credits + credit)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    logger.info("paid_credits_added user=%s amount=%s", user_id, credit)
    return await get_balances(user_id, db)


async def get_credit_summary(user_id: str, db: AsyncSession) -> Dict[str, Any]:
    await ensure_credit_account(user_id, db)
    balances = await get_balances(user_id, db)
    decision = _decide(balances)
    result = await db.execute(
        select(GenerationAttempt)
        .where(GenerationAttempt.user_id == user_id)
        .order_by(GenerationAttempt.created_at.desc())
        .limit(20)
    )
    attempts = result.scalars().all()
    return {
        "free_generations_remaining": balances.free_generations_remaining,
        "paid_credits": float(balances.paid_credits),
        "total_generations": balances.total_generations,
        "next_generation_funding": decision.source.value,
        "costs": {
            "generation": float(unit_cost()),
            "free_generations_quota": max(int(settings.FREE_GENERATIONS_QUOTA), 0),
        },
        "recent_attempts": [
            {
                "id": attempt.id,
                "status": attempt.status,
                "selected_style": attempt.selected_style,
                "is_free_attempt": bool(attempt.is_free_attempt),
                "cost": float(_to_money(attempt.cost)),
                "created_at": attempt.created_at.isoformat() if attempt.created_at else None,
            }
            for attempt in attempts
        ],
    }

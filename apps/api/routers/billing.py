"""Billing and credits router."""

from __future__ import annotations

from decimal import Decimal
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from routers.auth_scope import AuthContext, get_auth_context
from routers.rate_limit import rate_limit
from services.credits import add_paid_credits, get_credit_summary
from services.generation import ensure_user

router = APIRouter()
logger = logging.getLogger(__name__)


class CheckoutRequest(BaseModel):
    amount: Decimal = Field(default=Decimal("10.00"), gt=0, le=1000)


class CreditTopUpRequest(BaseModel):
    amount: Decimal = Field(gt=0, le=1000)
    billing_reference: str = ""


@router.get("/credits")
async def credits_summary(
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await ensure_user(db, auth.user_id, auth.email)
    return await get_credit_summary(auth.user_id, db)


@router.post("/checkout")
async def create_checkout_session(
    request: CheckoutRequest,
    _rate_limit: None = Depends(rate_limit("billing_checkout", limit=20, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
):
    if not settings.BILLING_ENABLED:
        raise HTTPException(status_code=503, detail="Billing is disabled. Enable BILLING_ENABLED to use checkout.")

    if not settings.CHECKOUT_URL:
        raise HTTPException(status_code=503, detail="Checkout is not configured.")

    # Payment capture is not wired; the client is sent to a static checkout page.
    return {
        "checkout_url": settings.CHECKOUT_URL,
        "user_id": auth.user_id,
        "amount": float(request.amount),
        "status": "stub",
    }


@router.post("/topup")
async def manual_topup(
    request: CreditTopUpRequest,
    _rate_limit: None = Depends(rate_limit("billing_topup", limit=30, window_seconds=3600)),
    auth: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await ensure_user(db, auth.user_id, auth.email)
    balances = await add_paid_credits(auth.user_id, db, amount=request.amount)
    logger.info(
        "manual_topup user=%s amount=%s reference=%s",
        auth.user_id,
        request.amount,
        request.billing_reference or "manual",
    )
    return {
        "ok": True,
        "credits_added": float(request.amount),
        "paid_credits": float(balances.paid_credits),
        "free_generations_remaining": balances.free_generations_remaining,
    }

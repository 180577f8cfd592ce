"""UserCredit model holding free and prepaid generation balances."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class UserCredit(Base):
    """One credit record per user, provisioned on first generation."""

    __tablename__ = "user_credits"
    __table_args__ = (
        CheckConstraint("free_generations_remaining >= 0", name="ck_user_credits_free_non_negative"),
        CheckConstraint("paid_credits >= 0", name="ck_user_credits_paid_non_negative"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    free_generations_remaining = Column(Integer, nullable=False, default=0)
    paid_credits = Column(Numeric(10, 2), nullable=False, default=0)
    total_generations = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="credits")

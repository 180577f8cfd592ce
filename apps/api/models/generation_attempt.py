"""GenerationAttempt model tracking one coloring request."""

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


ATTEMPT_STATUS_PENDING = "pending"
ATTEMPT_STATUS_COMPLETED = "completed"
ATTEMPT_STATUS_FAILED = "failed"


class GenerationAttempt(Base):
    """Durable record of a coloring attempt, independent of its outcome."""

    __tablename__ = "generation_attempts"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default=ATTEMPT_STATUS_PENDING, index=True)  # pending, completed, failed
    is_free_attempt = Column(Boolean, nullable=False, default=False)
    cost = Column(Numeric(10, 2), nullable=False, default=0)
    selected_style = Column(String, nullable=False)
    prompt_used = Column(Text, nullable=False)
    generated_image_url = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="generation_attempts")

"""User model."""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from database import Base


class User(Base):
    """Local mirror of an identity-provider account."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    credits = relationship("UserCredit", back_populates="user", uselist=False, cascade="all, delete-orphan")
    generation_attempts = relationship("GenerationAttempt", back_populates="user", cascade="all, delete-orphan")

"""Models package."""

from .user import User
from .user_credit import UserCredit
from .generation_attempt import GenerationAttempt

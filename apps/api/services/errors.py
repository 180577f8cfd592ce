"""Error taxonomy for the coloring generation flow.

Each error knows the HTTP status it maps to and the JSON body the client
receives. The body always carries an ``error`` string; subclasses may add
extra keys (``needsPayment`` for exhausted credits).
"""

from typing import Any, Dict, Optional


class GenerationError(Exception):
    """Base class for failures surfaced to the generation caller."""

    status_code = 500
    default_message = "Generation request failed"

    def __init__(self, error: Optional[str] = None, **extra: Any) -> None:
        self.message = error or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class Unauthenticated(GenerationError):
    status_code = 401
    default_message = "User not authenticated"


class InsufficientCredits(GenerationError):
    status_code = 402
    default_message = "Insufficient credits"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(
            self.default_message,
            needsPayment=True,
            message=message or "You've used all your free generations. Purchase credits to continue.",
        )


class StorageError(GenerationError):
    status_code = 500
    default_message = "Failed to persist generation data"


class GenerationFailed(GenerationError):
    status_code = 500
    default_message = "Image generation failed"


class SettlementError(GenerationError):
    """Raised when a settlement or release targets an attempt that is no longer pending."""

    status_code = 409
    default_message = "Generation attempt already settled"

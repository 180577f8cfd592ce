"""Routers package."""

from . import (
    health,
    generate,
    billing,
)

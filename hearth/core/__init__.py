"""
Core module - fundamental types shared across the app.

This module contains:
- errors: Domain error taxonomy
- models: Domain documents (Family, Member, Role, Transaction, ...)
- utils: Shared utility functions

Import models from hearth.core.models directly; they depend on the
permission taxonomy in hearth.auth.
"""

from hearth.core.errors import (
    AuthError,
    ConflictError,
    ForbiddenError,
    HearthError,
    IntegrityError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from hearth.core.utils import generate_id, utc_now

__all__ = [
    "AuthError",
    "ConflictError",
    "ForbiddenError",
    "HearthError",
    "IntegrityError",
    "NotFoundError",
    "StoreUnavailableError",
    "ValidationError",
    "generate_id",
    "utc_now",
]

"""Expose ORM models at package level.

The `F401` noqa suppresses unused-import warnings for the explicit re-exports.
"""

from .base import Base  # noqa: F401
from .stored_secret import StoredSecret  # noqa: F401

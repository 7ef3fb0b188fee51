"""Design review pipeline: export a node, ask a vision model, publish the critique."""

from .controller import ReviewPipelineController
from .credentials import CredentialCache, InMemoryKeyValueStore, SqlKeyValueStore
from .sanitizer import clean
from .selection import validate_selection


__all__ = [
    "ReviewPipelineController",
    "CredentialCache",
    "InMemoryKeyValueStore",
    "SqlKeyValueStore",
    "clean",
    "validate_selection",
]

"""Session-level aggregate state."""

from .state import SessionState, merge
from .store import SessionStore

__all__ = ["SessionState", "SessionStore", "merge"]

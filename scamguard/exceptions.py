"""
ScamGuard Exceptions
====================

Errors surfaced to callers of the scoring engine and preference store.

    ScamGuardError
    ├── NotFoundError          unknown heuristic id (not retried)
    ├── PersistenceError       preference backend unavailable (fatal for the call)
    ├── ConfigValidationError  heuristic config options rejected by their schema
    └── AnalyzerFailure        one heuristic failed; internal, never escapes analyze()
"""

from typing import Any, Dict, List, Optional


class ScamGuardError(Exception):
    """Base class for all ScamGuard errors."""


class NotFoundError(ScamGuardError, KeyError):
    """Raised when a heuristic id does not exist in a user's preferences."""

    def __init__(self, heuristic_id: str, user_id: Optional[str] = None):
        self.heuristic_id = heuristic_id
        self.user_id = user_id
        super().__init__(f"Heuristic with ID {heuristic_id} not found")

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return self.args[0]


class PersistenceError(ScamGuardError):
    """Raised when the preference backend cannot load or save."""

    def __init__(self, message: str, user_id: Optional[str] = None):
        self.user_id = user_id
        super().__init__(message)


class ConfigValidationError(ScamGuardError, ValueError):
    """Raised when heuristic config options fail schema validation."""

    def __init__(self, heuristic_id: str, errors: List[Dict[str, Any]]):
        self.heuristic_id = heuristic_id
        self.errors = errors
        details = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ())) or '<root>'}: {e.get('msg', 'invalid')}"
            for e in errors
        )
        super().__init__(f"Invalid config options for heuristic {heuristic_id}: {details}")


class AnalyzerFailure(ScamGuardError):
    """A single heuristic invocation failed, timed out or was not registered."""

    def __init__(self, heuristic_id: str, reason: str, cause: Optional[BaseException] = None):
        self.heuristic_id = heuristic_id
        self.reason = reason
        self.cause = cause
        super().__init__(f"Heuristic {heuristic_id} failed: {reason}")

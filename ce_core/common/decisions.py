# ce_core/common/decisions.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


class ErrorCode:
    """
    Problem codes returned by the rule modules.
    Keep strings stable: they surface in API error envelopes and warnings.
    """
    INVALID_TRANSITION = "InvalidTransition"
    TERMINAL_STATE = "TerminalState"
    DUPLICATE_ENROLLMENT = "DuplicateEnrollment"
    VALIDATION_ERROR = "ValidationError"
    DERIVED_DATA_MISMATCH = "DerivedDataMismatch"
    NON_FATAL_SIDE_EFFECT_FAILURE = "NonFatalSideEffectFailure"
    INSUFFICIENT_STOCK = "InsufficientStock"
    NOT_READY = "NotReady"


@dataclass(frozen=True)
class Problem:
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": dict(self.details)}


@dataclass(frozen=True)
class Command:
    """
    A side effect the caller must execute (create a record, order a test...).
    Rules never execute commands themselves.
    """
    name: str
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Decision:
    """
    Outcome of a pure rule call.

    - accepted: `state` is the new state, `commands` the side effects to run,
      `warnings` non-blocking problems to surface with the result.
    - rejected: `error` is set; no state change and no commands.
    """
    state: Any = None
    commands: Tuple[Command, ...] = ()
    warnings: Tuple[Problem, ...] = ()
    error: Optional[Problem] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def accept(cls, state=None, *, commands=(), warnings=()) -> "Decision":
        return cls(state=state, commands=tuple(commands), warnings=tuple(warnings))

    @classmethod
    def reject(cls, code: str, message: str, **details) -> "Decision":
        return cls(error=Problem(code=code, message=message, details=details))

    def command(self, name: str) -> Optional[Command]:
        for cmd in self.commands:
            if cmd.name == name:
                return cmd
        return None

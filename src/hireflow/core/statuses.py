from __future__ import annotations

from dataclasses import dataclass, field

from hireflow.types import SessionStatus

TERMINAL_STATUSES: frozenset[str] = frozenset({"submitted", "failed", "expired", "rejected"})

_FORWARD: dict[str, frozenset[str]] = {
    "created": frozenset({"pending_login", "ready_to_fill"}),
    "pending_login": frozenset({"ready_to_fill"}),
    "ready_to_fill": frozenset({"form_filled"}),
    "form_filled": frozenset({"ready_for_submission", "approved"}),
    "ready_for_submission": frozenset({"approved"}),
    "approved": frozenset({"submitted", "failed"}),
}

# Reachable from any non-terminal status; rejected only before approval.
_SIDE_BRANCHES = frozenset({"failed", "expired"})
_REJECTABLE = frozenset({"created", "pending_login", "ready_to_fill", "form_filled", "ready_for_submission"})


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if target in _FORWARD.get(current, frozenset()):
        return True
    if target in _SIDE_BRANCHES:
        return True
    return target == "rejected" and current in _REJECTABLE


class InvalidTransition(ValueError):
    def __init__(self, current: str, target: str):
        super().__init__(f"cannot move session from '{current}' to '{target}'")
        self.current = current
        self.target = target


@dataclass(slots=True)
class StatusTracker:
    status: SessionStatus = "created"
    history: list[str] = field(default_factory=lambda: ["created"])

    def advance(self, target: SessionStatus) -> None:
        if not can_transition(self.status, target):
            raise InvalidTransition(self.status, target)
        self.status = target
        self.history.append(target)

    @property
    def terminal(self) -> bool:
        return is_terminal(self.status)

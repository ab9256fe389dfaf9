from typing import Dict, FrozenSet, Iterable

from .exceptions import InvalidTransitionError


class StateMachine:
    """
    Allowed status changes for one kind of record.

    `check(current, target)` returns False when nothing changes, True when
    the change is allowed, and raises InvalidTransitionError otherwise.
    """

    def __init__(self, name: str, transitions: Dict[str, Iterable[str]]):
        self.name = name
        self.transitions: Dict[str, FrozenSet[str]] = {
            str(state): frozenset(str(t) for t in targets)
            for state, targets in transitions.items()
        }

    def allowed_targets(self, current: str) -> FrozenSet[str]:
        return self.transitions.get(str(current), frozenset())

    def can_transition(self, current: str, target: str) -> bool:
        return str(target) in self.allowed_targets(current)

    def check(self, current: str, target: str) -> bool:
        if str(current) == str(target):
            return False
        if not self.can_transition(current, target):
            raise InvalidTransitionError(
                f"Cannot change {self.name} status from {current} to {target}"
            )
        return True

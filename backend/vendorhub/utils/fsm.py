from __future__ import annotations
"""Simple finite state machine utility for enforcing allowed status transitions.

Used by the vendor status lifecycle and the delegation lifecycle.
Usage:
    from vendorhub.utils.fsm import TransitionValidator
    DELEGATION_FSM = TransitionValidator({
        'ACTIVE': {'REVOKED'},
        'REVOKED': set(),
    }, error=Conflict)
    DELEGATION_FSM.assert_can_transition(current_status, target_status)

Raises ``error`` (InvalidArgument unless given) if the transition is not in the graph.
"""
from typing import Dict, Set, Type

from vendorhub.errors import DomainError, InvalidArgument

class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status', error: Type[DomainError] = InvalidArgument):
        self.graph = graph
        self.field_name = field_name
        self.error = error

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise self.error(f"Invalid {self.field_name} transition {current} -> {target}")
        return True

__all__ = ['TransitionValidator']

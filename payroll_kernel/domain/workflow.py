"""
Canonical workflow types (``payroll_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for lifecycle state machines.  Payroll periods, payroll
entries and salary adjustments all move through a ``Workflow`` so that the
allowed moves are declared once, as data, instead of being scattered
through ``if status == ...`` checks.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* Terminal states have no outgoing transitions.
* ``Workflow.next_state`` never returns a state for an undeclared
  (state, action) pair; it raises ``InvalidTransitionError`` instead.
"""

from __future__ import annotations

from dataclasses import dataclass

from payroll_kernel.exceptions import InvalidTransitionError


@dataclass(frozen=True)
class Guard:
    """A named condition that must hold before a transition fires.

    Descriptive only; the owning service evaluates it.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state "
                f"'{self.initial_state}' is not a declared state"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition '{t.action}' "
                    f"references an undeclared state"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state "
                    f"'{t.from_state}' has an outgoing transition"
                )

    def find_transition(self, current_state: str, action: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == current_state and t.action == action:
                return t
        return None

    def allowed_actions(self, current_state: str) -> tuple[str, ...]:
        return tuple(
            t.action for t in self.transitions if t.from_state == current_state
        )

    def next_state(self, current_state: str, action: str, entity_id: str = "") -> str:
        """Resolve the target state of ``action`` from ``current_state``.

        Raises:
            InvalidTransitionError: The action is not declared from the
                current state.
        """
        transition = self.find_transition(current_state, action)
        if transition is None:
            raise InvalidTransitionError(
                workflow=self.name,
                entity_id=entity_id,
                current_state=current_state,
                action=action,
            )
        return transition.to_state

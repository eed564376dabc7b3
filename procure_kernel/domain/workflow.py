"""
Canonical workflow types (``procure_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for document state machines.  Used by the contract and
purchase-order modules so that Guard, Transition, and Workflow are defined
once.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``editable_states`` and ``terminal_states`` are subsets of ``states``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires.

    Contract: frozen, descriptive only.
    Non-goals: does not evaluate the condition -- the workflow executor does.
    """
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition in a workflow.

    ``creates_debt=True`` marks the transitions at which a supplier debt
    may be recognized.
    """
    from_state: str
    to_state: str
    action: str
    guards: tuple[Guard, ...] = ()
    creates_debt: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a document lifecycle."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    editable_states: tuple[str, ...] = ()
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state {self.initial_state!r} not in states"
            )
        for t in self.transitions:
            if t.from_state not in self.states or t.to_state not in self.states:
                raise ValueError(
                    f"Workflow {self.name}: transition {t.action} references unknown state"
                )
        for s in self.editable_states + self.terminal_states:
            if s not in self.states:
                raise ValueError(f"Workflow {self.name}: unknown state {s!r}")

    def find_transition(self, from_state: str, action: str) -> Transition | None:
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def actions_from(self, state: str) -> tuple[str, ...]:
        return tuple(t.action for t in self.transitions if t.from_state == state)

    def is_editable(self, state: str) -> bool:
        return state in self.editable_states

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal_states

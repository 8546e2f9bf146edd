"""
zkrunner.state
==============

Immutable orchestrator state and the pure transition functions over it.

The presentation layer only ever reads the latest `OrchestratorState`
snapshot; every change goes through one of the reducers below, each
returning a new value. Guards (is a mutation pending? is the input valid?)
live in the orchestrator; reducers assume they already passed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from .errors import ErrorKind, RunnerError
from .types import BackendId, CacheKey, ProgramId

__all__ = [
    "PendingKind",
    "OrchestratorState",
    "initial_state",
    "begin",
    "succeed",
    "fail",
    "set_input",
    "select_backend",
    "select_program",
    "dismiss_error",
]


class PendingKind(str, Enum):
    NONE = "none"
    GENERATING = "generating"
    VERIFYING = "verifying"
    IMPORTING = "importing"


def _freeze(m: Mapping[BackendId, str]) -> Mapping[BackendId, str]:
    return MappingProxyType(dict(m))


@dataclass(frozen=True)
class OrchestratorState:
    selected_backend: BackendId
    selected_program: ProgramId
    input_text: Mapping[BackendId, str] = field(default_factory=lambda: _freeze({}))
    pending: PendingKind = PendingKind.NONE
    last_error: Optional[RunnerError] = None
    # set after a failed generate/verify: the cached entry stays, but is not shown
    display_suppressed: bool = False

    @property
    def key(self) -> CacheKey:
        return (self.selected_backend, self.selected_program)

    @property
    def is_idle(self) -> bool:
        return self.pending is PendingKind.NONE

    @property
    def current_input(self) -> str:
        return self.input_text.get(self.selected_backend, "")

    @property
    def error_kind(self) -> Optional[ErrorKind | str]:
        return self.last_error.kind if self.last_error is not None else None

    @property
    def error_message(self) -> Optional[str]:
        return self.last_error.msg if self.last_error is not None else None


def initial_state(backend: BackendId, program: ProgramId) -> OrchestratorState:
    return OrchestratorState(
        selected_backend=backend,
        selected_program=program,
        input_text=_freeze({b: "" for b in BackendId}),
    )


def begin(state: OrchestratorState, kind: PendingKind) -> OrchestratorState:
    """Idle → working. A new attempt clears the previous error."""
    return replace(state, pending=kind, last_error=None)


def succeed(state: OrchestratorState) -> OrchestratorState:
    return replace(state, pending=PendingKind.NONE, last_error=None, display_suppressed=False)


def fail(state: OrchestratorState, error: RunnerError, *, hide_result: bool = False) -> OrchestratorState:
    return replace(
        state,
        pending=PendingKind.NONE,
        last_error=error,
        display_suppressed=state.display_suppressed or hide_result,
    )


def set_input(state: OrchestratorState, text: str) -> OrchestratorState:
    merged = dict(state.input_text)
    merged[state.selected_backend] = text
    return replace(state, input_text=_freeze(merged))


def _reset_input(input_text: Mapping[BackendId, str], backend: BackendId) -> Mapping[BackendId, str]:
    merged = dict(input_text)
    merged[backend] = ""
    return _freeze(merged)


def select_backend(state: OrchestratorState, backend: BackendId, *, reset_input: bool) -> OrchestratorState:
    text = _reset_input(state.input_text, backend) if reset_input else state.input_text
    return replace(
        state,
        selected_backend=backend,
        input_text=text,
        last_error=None,
        display_suppressed=False,
    )


def select_program(state: OrchestratorState, program: ProgramId, *, reset_input: bool) -> OrchestratorState:
    text = _reset_input(state.input_text, state.selected_backend) if reset_input else state.input_text
    return replace(
        state,
        selected_program=program,
        input_text=text,
        last_error=None,
        display_suppressed=False,
    )


def dismiss_error(state: OrchestratorState) -> OrchestratorState:
    return replace(state, last_error=None)

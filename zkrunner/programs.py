"""
zkrunner.programs
=================

Program catalog: which (backend, program) pairs exist, whether they are
available, where their compiled artifact lives, and the validation predicate
every input must satisfy before a prover is ever invoked.

The predicate is a property of the *program*, not the backend; both the
orchestrator (on raw text) and the adapters (on parsed integers) run it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

from .errors import InvalidInput, UnsupportedProgram
from .types import BackendId, CacheKey, ProgramId

__all__ = [
    "FIBONACCI_MAX_INPUT",
    "ProgramSpec",
    "CATALOG",
    "get_spec",
    "is_available",
    "programs_for",
    "parse_input_text",
    "validate_inputs",
]

# Execution is capped at 2^20 steps; this is the largest term that fits.
FIBONACCI_MAX_INPUT = 116507


def _validate_fibonacci(values: Sequence[int]) -> None:
    if len(values) != 1:
        raise InvalidInput("Invalid input: fibonacci takes exactly one term", value=list(values))
    n = values[0]
    if isinstance(n, bool) or not isinstance(n, int) or n <= 0:
        raise InvalidInput(value=n)
    if n > FIBONACCI_MAX_INPUT:
        raise InvalidInput(
            f"Input Limit Exceeded: program execution capped at 2^20 steps, "
            f"please use an input inferior to {FIBONACCI_MAX_INPUT}",
            value=n,
            ctx={"max": FIBONACCI_MAX_INPUT},
        )


def _reject_all(values: Sequence[int]) -> None:
    raise InvalidInput("Program is not available yet", value=list(values))


_PREDICATES: Dict[ProgramId, Callable[[Sequence[int]], None]] = {
    ProgramId.FIBONACCI: _validate_fibonacci,
    ProgramId.HASHES: _reject_all,
}


@dataclass(frozen=True)
class ProgramSpec:
    """Declarative binding of a (backend, program) pair to its artifact."""

    backend: BackendId
    program: ProgramId
    label: str
    available: bool
    artifact: str = ""  # file under <artifacts_dir>/<backend>/
    entrypoint: str = ""  # program name passed to the native runner
    input_names: Tuple[str, ...] = ()  # circuit parameters; empty for parameterless circuits
    input_starts_empty: bool = False

    @property
    def key(self) -> CacheKey:
        return (self.backend, self.program)


CATALOG: Dict[CacheKey, ProgramSpec] = {
    spec.key: spec
    for spec in (
        ProgramSpec(
            BackendId.CAIRO_M,
            ProgramId.FIBONACCI,
            "Fibonacci",
            True,
            artifact="fibonacci_loop.json",
            entrypoint="fibonacci_loop",
            input_names=("n",),
            input_starts_empty=True,
        ),
        ProgramSpec(BackendId.CAIRO_M, ProgramId.HASHES, "Hashes", False),
        ProgramSpec(
            BackendId.NOIR_PROVEKIT,
            ProgramId.FIBONACCI,
            "Fibonacci",
            True,
            artifact="noir_fib.json",
            entrypoint="main",
            # the circuit is parameterless; the term is validated but sent as "{}"
            input_names=(),
            input_starts_empty=True,
        ),
        ProgramSpec(BackendId.NOIR_PROVEKIT, ProgramId.HASHES, "Hashes", False),
    )
}


def get_spec(backend: BackendId, program: ProgramId) -> ProgramSpec:
    try:
        return CATALOG[(backend, program)]
    except KeyError:
        raise UnsupportedProgram(program, backend=backend) from None


def is_available(backend: BackendId, program: ProgramId) -> bool:
    spec = CATALOG.get((backend, program))
    return bool(spec and spec.available)


def programs_for(backend: BackendId) -> List[ProgramSpec]:
    """All catalog entries for a backend, available or not (UI lists both)."""
    return [spec for (b, _), spec in CATALOG.items() if b is backend]


def validate_inputs(program: ProgramId, values: Sequence[int]) -> None:
    """Run the program predicate on already-parsed integer inputs."""
    _PREDICATES[program](values)


def parse_input_text(program: ProgramId, text: str) -> List[int]:
    """
    Parse the raw input text for `program` and run its predicate.

    Raises InvalidInput for empty, non-numeric, non-positive or out-of-range
    input.
    """
    raw = (text or "").strip()
    if not raw:
        raise InvalidInput(value=text)
    try:
        n = int(raw, 10)
    except ValueError:
        raise InvalidInput(value=text) from None
    values = [n]
    validate_inputs(program, values)
    return values

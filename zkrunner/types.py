"""
zkrunner.types
==============

Typed identifiers and result records using **msgspec**.

This module defines:
- `BackendId` / `ProgramId`: the enumerated proving systems and programs.
- `ProofResult`: a tagged union with one variant per backend. Backend
  specific metrics (steps vs. constraints, per-phase durations and
  frequencies) live only on their own variant.
- `VerifyResult`: backend-agnostic verification timing.
- `CachedOutcome`: the last proof (+ optional verification) for one
  (backend, program) pair.

Conventions
-----------
- Durations are seconds (float), frequencies Hz (float), sizes bytes (int).
- `proof` is the opaque serialized proof exactly as the native side returned
  it (text; backends that produce binary proofs hand over base64).
- Records are frozen; use `msgspec.structs.replace` or the helpers below to
  derive updated copies.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple, Union

import msgspec

from .errors import UnsupportedBackend, UnsupportedProgram

__all__ = [
    "BackendId",
    "ProgramId",
    "CacheKey",
    "CairoMProofResult",
    "NoirProofResult",
    "ProofResult",
    "VerifyResult",
    "CachedOutcome",
    "synthetic_result",
]


# -----------------------------------------------------------------------------
# Identifiers
# -----------------------------------------------------------------------------

class BackendId(str, Enum):
    """Proving systems reachable through an adapter."""
    CAIRO_M = "cairo-m"
    NOIR_PROVEKIT = "noir-provekit"

    @classmethod
    def parse(cls, value: Union[str, "BackendId"]) -> "BackendId":
        if isinstance(value, BackendId):
            return value
        key = str(value).strip().lower().replace("_", "-")
        for member in cls:
            if member.value == key:
                return member
        if key in ("cairo", "cairom"):
            return cls.CAIRO_M
        if key in ("noir", "provekit"):
            return cls.NOIR_PROVEKIT
        raise UnsupportedBackend(value)


class ProgramId(str, Enum):
    """Programs/circuits a backend may expose."""
    FIBONACCI = "fibonacci"
    HASHES = "hashes"

    @classmethod
    def parse(cls, value: Union[str, "ProgramId"]) -> "ProgramId":
        if isinstance(value, ProgramId):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        if key == "fib":
            return cls.FIBONACCI
        raise UnsupportedProgram(value)


CacheKey = Tuple[BackendId, ProgramId]


# -----------------------------------------------------------------------------
# Proof results (tagged union)
# -----------------------------------------------------------------------------

class CairoMProofResult(msgspec.Struct, frozen=True, tag="cairo-m", tag_field="backend"):
    """
    Execution + proof generation metrics reported by the Cairo M prover.

    Fields:
        overall_duration: execution and proving, seconds.
        proof_size: serialized proof size in bytes.
        proof: opaque proof text.
        return_values: program return values.
        num_steps: executed VM steps.
        execution_duration / proof_duration: per-phase seconds.
        *_frequency: steps per second for the matching phase (Hz).
    """
    overall_duration: float
    proof_size: int
    proof: str
    return_values: List[int] = msgspec.field(default_factory=list)
    num_steps: int = 0
    execution_duration: float = 0.0
    proof_duration: float = 0.0
    overall_frequency: float = 0.0
    execution_frequency: float = 0.0
    proof_frequency: float = 0.0

    @property
    def backend(self) -> BackendId:
        return BackendId.CAIRO_M

    @property
    def step_count(self) -> int:
        return self.num_steps


class NoirProofResult(msgspec.Struct, frozen=True, tag="noir-provekit", tag_field="backend"):
    """
    Witness + proof generation metrics reported by ProveKit for a Noir circuit.
    Frequencies are based on the circuit's constraint count.
    """
    overall_duration: float
    proof_size: int
    proof: str
    return_values: List[int] = msgspec.field(default_factory=list)
    constraint_count: int = 0
    witness_generation_duration: float = 0.0
    proof_generation_duration: float = 0.0
    overall_frequency: float = 0.0
    witness_generation_frequency: float = 0.0
    proof_generation_frequency: float = 0.0

    @property
    def backend(self) -> BackendId:
        return BackendId.NOIR_PROVEKIT

    @property
    def step_count(self) -> int:
        return self.constraint_count


ProofResult = Union[CairoMProofResult, NoirProofResult]


class VerifyResult(msgspec.Struct, frozen=True):
    verification_duration: float


class CachedOutcome(msgspec.Struct, frozen=True):
    """Last computed outcome for one (backend, program) pair."""
    proof: ProofResult
    verification: Optional[VerifyResult] = None

    def with_verification(self, verification: VerifyResult) -> "CachedOutcome":
        return msgspec.structs.replace(self, verification=verification)

    @property
    def backend(self) -> BackendId:
        return self.proof.backend


def synthetic_result(
    backend: BackendId,
    *,
    proof: str,
    proof_size: int,
    step_count: int,
    return_values: List[int],
) -> ProofResult:
    """
    Build the variant for `backend` from the totals an imported envelope
    carries. Timing and frequency fields stay zero; the envelope has none.
    """
    if backend is BackendId.CAIRO_M:
        return CairoMProofResult(
            overall_duration=0.0,
            proof_size=proof_size,
            proof=proof,
            return_values=list(return_values),
            num_steps=step_count,
        )
    if backend is BackendId.NOIR_PROVEKIT:
        return NoirProofResult(
            overall_duration=0.0,
            proof_size=proof_size,
            proof=proof,
            return_values=list(return_values),
            constraint_count=step_count,
        )
    raise UnsupportedBackend(backend)

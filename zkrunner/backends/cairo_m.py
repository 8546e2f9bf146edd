"""
Cairo M adapter.

Native contract
---------------
    run_and_generate_proof(program_json: str, program_name: str, inputs: list[int]) -> {
        "returnValues": [int, ...], "numSteps": int, "proofSize": int, "proof": str,
        "overallDuration": float, "executionDuration": float, "proofDuration": float,
        "overallFrequency": float, "executionFrequency": float, "proofFrequency": float,
    }
    verify_proof(proof: str) -> {"verificationDuration": float}

Inputs are u32 on the native side.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from ..errors import BackendError, InvalidInput
from ..programs import ProgramSpec
from ..types import BackendId, CairoMProofResult, ProgramId
from .base import ArtifactStore, ProofBackendAdapter, call_bridge, int_list, require_int, require_number

_U32_MAX = 2**32 - 1


class CairoMBridge(Protocol):
    def run_and_generate_proof(self, program_json: str, program_name: str, inputs: list[int]) -> Any: ...

    def verify_proof(self, proof: str) -> Any: ...


class CairoMAdapter(ProofBackendAdapter):
    backend = BackendId.CAIRO_M

    def __init__(self, bridge: CairoMBridge, artifacts: ArtifactStore):
        super().__init__(artifacts)
        self._bridge = bridge

    async def _generate_raw(self, spec: ProgramSpec, artifact: str, inputs: list[int]) -> Any:
        for v in inputs:
            if not 0 <= v <= _U32_MAX:
                raise InvalidInput("Invalid input: value does not fit in u32", value=v)
        return await call_bridge(self._bridge.run_and_generate_proof, artifact, spec.entrypoint, inputs)

    async def _verify_raw(self, proof: str, program: ProgramId) -> Any:
        return await call_bridge(self._bridge.verify_proof, proof)

    def _normalize(self, raw: Mapping[str, Any]) -> CairoMProofResult:
        b = self.backend
        proof = raw.get("proof")
        if not isinstance(proof, str):
            raise BackendError("native result missing 'proof'", backend=b)
        return CairoMProofResult(
            overall_duration=float(require_number(raw, "overallDuration", "overall_duration", backend=b)),
            proof_size=require_int(raw, "proofSize", "proof_size", backend=b),
            proof=proof,
            return_values=int_list(raw.get("returnValues", raw.get("returnValue"))),
            num_steps=require_int(raw, "numSteps", "num_steps", backend=b, default=0),
            execution_duration=float(require_number(raw, "executionDuration", backend=b, default=0.0)),
            proof_duration=float(require_number(raw, "proofDuration", backend=b, default=0.0)),
            overall_frequency=float(require_number(raw, "overallFrequency", backend=b, default=0.0)),
            execution_frequency=float(require_number(raw, "executionFrequency", backend=b, default=0.0)),
            proof_frequency=float(require_number(raw, "proofFrequency", backend=b, default=0.0)),
        )


__all__ = ["CairoMBridge", "CairoMAdapter"]

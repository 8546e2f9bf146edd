"""
Noir (ProveKit) adapter.

Native contract
---------------
    generate_proof(circuit_json: str, input_json: str) -> {
        "returnValue": str, "constraintCount": int, "proofSize": int,
        "proof": {"proofData": str} | str,
        "overallDuration": float, "witnessGenerationDuration": float,
        "proofGenerationDuration": float, "overallFrequency": float,
        "witnessGenerationFrequency": float, "proofGenerationFrequency": float,
    }
    verify_proof(circuit_json: str, proof: {"proofData": str}) -> {"verificationDuration": float}

Circuit inputs travel as a JSON object keyed by the circuit's parameter
names; field elements are sent as decimal strings. Parameterless circuits
(the bundled fibonacci one) receive "{}".
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Protocol, Sequence

from ..errors import BackendError, InvalidInput
from ..programs import ProgramSpec, get_spec
from ..types import BackendId, NoirProofResult, ProgramId
from .base import ArtifactStore, ProofBackendAdapter, call_bridge, int_list, require_int, require_number


class NoirBridge(Protocol):
    def generate_proof(self, circuit_json: str, input_json: str) -> Any: ...

    def verify_proof(self, circuit_json: str, proof: Mapping[str, str]) -> Any: ...


def input_json(spec: ProgramSpec, inputs: Sequence[int]) -> str:
    """
    Map positional inputs onto the circuit's parameter names. A circuit that
    declares no parameters gets an empty object whatever the (already
    validated) inputs were.
    """
    if not spec.input_names:
        return "{}"
    if len(inputs) != len(spec.input_names):
        raise InvalidInput(
            f"Invalid input: {spec.program.value} expects {len(spec.input_names)} value(s)",
            value=list(inputs),
        )
    return json.dumps({name: str(v) for name, v in zip(spec.input_names, inputs)}, sort_keys=True)


class NoirProveKitAdapter(ProofBackendAdapter):
    backend = BackendId.NOIR_PROVEKIT

    def __init__(self, bridge: NoirBridge, artifacts: ArtifactStore):
        super().__init__(artifacts)
        self._bridge = bridge

    async def _generate_raw(self, spec: ProgramSpec, artifact: str, inputs: list[int]) -> Any:
        return await call_bridge(self._bridge.generate_proof, artifact, input_json(spec, inputs))

    async def _verify_raw(self, proof: str, program: ProgramId) -> Any:
        # ProveKit needs the circuit again to rebuild the verifier key
        artifact = self._artifacts.load(get_spec(self.backend, program))
        return await call_bridge(self._bridge.verify_proof, artifact, {"proofData": proof})

    def _normalize(self, raw: Mapping[str, Any]) -> NoirProofResult:
        b = self.backend
        proof = raw.get("proof")
        if isinstance(proof, Mapping):
            proof = proof.get("proofData")
        if not isinstance(proof, str):
            raise BackendError("native result missing 'proof.proofData'", backend=b)
        return NoirProofResult(
            overall_duration=float(require_number(raw, "overallDuration", "overall_duration", backend=b)),
            proof_size=require_int(raw, "proofSize", "proof_size", backend=b),
            proof=proof,
            return_values=int_list(raw.get("returnValues", raw.get("returnValue"))),
            constraint_count=require_int(raw, "constraintCount", "constraint_count", backend=b, default=0),
            witness_generation_duration=float(
                require_number(raw, "witnessGenerationDuration", backend=b, default=0.0)
            ),
            proof_generation_duration=float(
                require_number(raw, "proofGenerationDuration", backend=b, default=0.0)
            ),
            overall_frequency=float(require_number(raw, "overallFrequency", backend=b, default=0.0)),
            witness_generation_frequency=float(
                require_number(raw, "witnessGenerationFrequency", backend=b, default=0.0)
            ),
            proof_generation_frequency=float(
                require_number(raw, "proofGenerationFrequency", backend=b, default=0.0)
            ),
        )


__all__ = ["NoirBridge", "NoirProveKitAdapter", "input_json"]

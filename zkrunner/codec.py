"""
zkrunner.codec
==============

Portable proof *envelope*: encode a cached outcome for export, serialize it to
JSON bytes, and turn untrusted bytes back into a typed envelope.

Wire format (``version`` "1.0.0")
---------------------------------
{
  "proof": "<string>",
  "metadata": {
    "program": "<string>",
    "input": [<int>, ...],
    "returnValues": [<int>, ...],
    "numSteps": <number>,
    "proofSize": <number>,
    "timestamp": "<ISO-8601>",
    "version": "1.0.0"
  }
}

Decoding is split in two so each failure has its own kind:
- `parse(data)`               bytes → untyped JSON value, or ParseError
- `validate_structure(value)` untyped value → ProofEnvelope, or
                              StructuralValidationError

`validate_structure` is the only way an untyped value becomes a
`ProofEnvelope`. It fails closed: the first missing or wrong-typed field
raises and nothing of the input is kept. Element types inside ``input`` and
``returnValues`` are not checked (forward compatibility).

``version`` is stored and passed through; no decoding branch consults it.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence, Union

import msgspec

from .errors import ParseError, StructuralValidationError, schema_guard
from .types import CachedOutcome, ProgramId

__all__ = [
    "FORMAT_VERSION",
    "MIME_TYPE",
    "UTI",
    "ProofMetadata",
    "ProofEnvelope",
    "ExportedProof",
    "encode",
    "serialize",
    "parse",
    "validate_structure",
    "decode",
    "export_file_name",
    "export",
    "write_export",
]

FORMAT_VERSION = "1.0.0"
MIME_TYPE = "application/json"
UTI = "public.json"

Number = Union[int, float]


# -----------------------------------------------------------------------------
# Records
# -----------------------------------------------------------------------------

_METADATA_WIRE_NAMES = {
    "return_values": "returnValues",
    "num_steps": "numSteps",
    "proof_size": "proofSize",
}


class ProofMetadata(msgspec.Struct, frozen=True, rename=_METADATA_WIRE_NAMES):
    program: str
    input: List[Any]
    return_values: List[Any]
    num_steps: Number
    proof_size: Number
    timestamp: str
    version: str


class ProofEnvelope(msgspec.Struct, frozen=True):
    proof: str
    metadata: ProofMetadata

    @property
    def program(self) -> str:
        return self.metadata.program


@dataclass(frozen=True)
class ExportedProof:
    """A serialized envelope ready to hand to a share sheet or write to disk."""

    file_name: str
    payload: bytes
    mime_type: str = MIME_TYPE
    uti: str = UTI


# -----------------------------------------------------------------------------
# Encode / serialize
# -----------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def encode(
    outcome: CachedOutcome,
    program: Union[ProgramId, str],
    inputs: Sequence[int],
    *,
    timestamp: Optional[str] = None,
) -> ProofEnvelope:
    """
    Build the envelope for `outcome`. Deterministic except for the timestamp,
    which may be pinned by the caller.
    """
    result = outcome.proof
    return ProofEnvelope(
        proof=result.proof,
        metadata=ProofMetadata(
            program=str(getattr(program, "value", program)),
            input=list(inputs),
            return_values=list(result.return_values),
            num_steps=int(result.step_count),
            proof_size=int(result.proof_size),
            timestamp=timestamp or _now_iso(),
            version=FORMAT_VERSION,
        ),
    )


def serialize(envelope: ProofEnvelope) -> bytes:
    """Pretty-printed (2-space) UTF-8 JSON; every documented field is present."""
    return msgspec.json.format(msgspec.json.encode(envelope), indent=2)


# -----------------------------------------------------------------------------
# Parse / validate
# -----------------------------------------------------------------------------

def parse(data: Union[bytes, bytearray, memoryview, str]) -> Any:
    """Decode JSON bytes into plain Python values (dict/list/str/...)."""
    try:
        return msgspec.json.decode(bytes(data) if not isinstance(data, str) else data)
    except msgspec.DecodeError as e:
        raise ParseError(f"The file is not valid JSON format. Error: {e}", cause=e) from e


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _is_nonempty_str(v: Any) -> bool:
    return isinstance(v, str) and v != ""


def _first_present(meta: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in meta:
            return meta[name]
    return None


def validate_structure(value: Any) -> ProofEnvelope:
    """
    Check, in order, every field of the envelope and return the typed record.

    Raises StructuralValidationError naming the first offending path.
    """
    schema_guard(isinstance(value, dict), msg="Envelope must be a JSON object", path="$", expected="object")
    proof = value.get("proof")
    schema_guard(isinstance(proof, str), msg="Envelope 'proof' must be a string", path="proof", expected="string")
    meta = value.get("metadata")
    schema_guard(isinstance(meta, dict), msg="Envelope 'metadata' must be an object", path="metadata", expected="object")

    program = meta.get("program")
    schema_guard(
        _is_nonempty_str(program),
        msg="'metadata.program' must be a non-empty string",
        path="metadata.program",
        expected="non-empty string",
    )
    inputs = meta.get("input")
    schema_guard(isinstance(inputs, list), msg="'metadata.input' must be an array", path="metadata.input", expected="array")
    returns = meta.get("returnValues")
    schema_guard(
        isinstance(returns, list),
        msg="'metadata.returnValues' must be an array",
        path="metadata.returnValues",
        expected="array",
    )
    steps = _first_present(meta, "numSteps", "stepCount")
    schema_guard(_is_number(steps), msg="'metadata.numSteps' must be a number", path="metadata.numSteps", expected="number")
    size = _first_present(meta, "proofSize", "proofSizeBytes")
    schema_guard(_is_number(size), msg="'metadata.proofSize' must be a number", path="metadata.proofSize", expected="number")
    ts = meta.get("timestamp")
    schema_guard(
        _is_nonempty_str(ts),
        msg="'metadata.timestamp' must be a non-empty string",
        path="metadata.timestamp",
        expected="non-empty string",
    )
    version = meta.get("version")
    schema_guard(
        _is_nonempty_str(version),
        msg="'metadata.version' must be a non-empty string",
        path="metadata.version",
        expected="non-empty string",
    )

    return ProofEnvelope(
        proof=proof,
        metadata=ProofMetadata(
            program=program,
            input=list(inputs),
            return_values=list(returns),
            num_steps=steps,
            proof_size=size,
            timestamp=ts,
            version=version,
        ),
    )


def decode(data: Union[bytes, bytearray, memoryview, str]) -> ProofEnvelope:
    """parse() then validate_structure()."""
    return validate_structure(parse(data))


# -----------------------------------------------------------------------------
# Export helpers
# -----------------------------------------------------------------------------

def export_file_name(
    program: Union[ProgramId, str],
    unix_millis: int,
    *,
    prefix: str = "zk_proof",
    extension: str = "zkproof.json",
) -> str:
    """`<prefix>_<program>_<unixMillis>.<extension>`"""
    name = str(getattr(program, "value", program))
    return f"{prefix}_{name}_{int(unix_millis)}.{extension.lstrip('.')}"


def export(
    envelope: ProofEnvelope,
    unix_millis: int,
    *,
    prefix: str = "zk_proof",
    extension: str = "zkproof.json",
) -> ExportedProof:
    return ExportedProof(
        file_name=export_file_name(envelope.program, unix_millis, prefix=prefix, extension=extension),
        payload=serialize(envelope),
    )


def write_export(exported: ExportedProof, directory: Union[str, Path]) -> Path:
    """Write atomically (temp file + rename) into `directory`; returns the final path."""
    d = Path(directory)
    d.mkdir(parents=True, exist_ok=True)
    dest = d / exported.file_name
    with tempfile.NamedTemporaryFile("wb", delete=False, dir=d, prefix=".export_") as tf:
        tf.write(exported.payload)
        tmp = Path(tf.name)
    try:
        os.replace(tmp, dest)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    return dest

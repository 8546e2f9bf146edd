from __future__ import annotations

"""
Shared machinery for backend adapters.

A backend is an opaque native service (FFI module, subprocess, remote RPC)
that exposes two calls: generate and verify. The native side hands back
JSON-ish mappings with camelCase keys; adapters normalize those into the
backend's `ProofResult` variant and wrap every rejection into BackendError.

Bridges may be sync or async. Sync callables run in a worker thread so the
orchestrator's event loop is never blocked by a prover.
"""

import asyncio
import inspect
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence, Union

from ..errors import BackendError, RunnerError, UnsupportedProgram, rethrow_as
from ..logging import get_logger
from ..programs import ProgramSpec, get_spec, validate_inputs
from ..types import BackendId, ProgramId, ProofResult, VerifyResult

Json = Dict[str, Any]

log = get_logger(__name__)


# --- Artifacts -----------------------------------------------------------------


class ArtifactStore(Protocol):
    def load(self, spec: ProgramSpec) -> str: ...


class DirectoryArtifactStore:
    """
    Reads compiled program JSON from ``<root>/<backend>/<artifact>`` and keeps
    the text in memory after the first read.
    """

    def __init__(self, root: Union[str, Path]):
        self._root = Path(root)
        self._cache: Dict[str, str] = {}

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, spec: ProgramSpec) -> Path:
        return self._root / spec.backend.value / spec.artifact

    def load(self, spec: ProgramSpec) -> str:
        p = self.path_for(spec)
        key = str(p)
        if key not in self._cache:
            try:
                self._cache[key] = p.read_text(encoding="utf-8")
            except OSError as e:
                raise BackendError(
                    f"program artifact not readable: {p}", backend=spec.backend, cause=e
                ) from e
        return self._cache[key]


class MemoryArtifactStore:
    """Artifacts keyed by (backend, program); used by tests and embedders."""

    def __init__(self, artifacts: Optional[Mapping[tuple, str]] = None):
        self._artifacts: Dict[tuple, str] = dict(artifacts or {})

    def add(self, backend: BackendId, program: ProgramId, text: str) -> None:
        self._artifacts[(backend, program)] = text

    def load(self, spec: ProgramSpec) -> str:
        try:
            return self._artifacts[spec.key]
        except KeyError:
            raise BackendError(
                f"no artifact for {spec.backend.value}/{spec.program.value}", backend=spec.backend
            ) from None


# --- Raw mapping helpers -------------------------------------------------------


def _pick(raw: Mapping[str, Any], *names: str) -> Any:
    for n in names:
        if n in raw and raw[n] is not None:
            return raw[n]
    return None


def require_number(raw: Mapping[str, Any], *names: str, backend: BackendId, default: Any = ...) -> float:
    v = _pick(raw, *names)
    if v is None:
        if default is not ...:
            return default
        raise BackendError(f"native result missing '{names[0]}'", backend=backend)
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise BackendError(f"native result field '{names[0]}' is not a number", backend=backend)
    return v


def require_int(raw: Mapping[str, Any], *names: str, backend: BackendId, default: Any = ...) -> int:
    v = require_number(raw, *names, backend=backend, default=default)
    return int(v)


def int_list(value: Any) -> list[int]:
    """Coerce native return values (list, scalar, or numeric string) to ints."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [int(x) for x in value]
    s = str(value).strip()
    if not s:
        return []
    return [int(s, 16) if s.lower().startswith("0x") else int(s)]


async def call_bridge(fn: Callable[..., Any], *args: Any) -> Any:
    """Invoke a native bridge callable exactly once, sync or async."""
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)
    result = await asyncio.to_thread(fn, *args)
    if inspect.isawaitable(result):
        return await result
    return result


# --- Adapter base --------------------------------------------------------------


class ProofBackendAdapter:
    """
    Uniform async contract over one backend.

    Subclasses implement `_generate_raw`, `_verify_raw` and `_normalize`.
    No retries: a failed native call surfaces immediately.
    """

    backend: BackendId

    def __init__(self, artifacts: ArtifactStore):
        self._artifacts = artifacts

    def supports(self, program: ProgramId) -> bool:
        try:
            return get_spec(self.backend, program).available
        except UnsupportedProgram:
            return False

    async def generate(self, program: ProgramId, inputs: Sequence[int]) -> ProofResult:
        if not self.supports(program):
            raise UnsupportedProgram(program, backend=self.backend)
        spec = get_spec(self.backend, program)
        validate_inputs(program, list(inputs))
        artifact = self._artifacts.load(spec)

        log.info("generate_started", backend=self.backend.value, program=program.value, inputs=list(inputs))
        try:
            raw = await self._generate_raw(spec, artifact, list(inputs))
        except RunnerError:
            raise
        except Exception as e:  # noqa: BLE001 - native rejections carry their message
            raise BackendError(f"Failed to generate proof: {e}", backend=self.backend, cause=e) from e
        if not isinstance(raw, Mapping):
            raise BackendError("native generate returned a non-object result", backend=self.backend)
        with rethrow_as(BackendError, detail="native generate returned malformed fields", backend=self.backend):
            result = self._normalize(raw)
        log.info(
            "generate_finished",
            backend=self.backend.value,
            program=program.value,
            proof_size=result.proof_size,
            overall_duration=result.overall_duration,
        )
        return result

    async def verify(self, proof: str, *, program: ProgramId = ProgramId.FIBONACCI) -> VerifyResult:
        if not isinstance(proof, str) or not proof:
            raise BackendError("Failed to verify proof: empty or malformed proof", backend=self.backend)
        log.info("verify_started", backend=self.backend.value, program=program.value)
        try:
            raw = await self._verify_raw(proof, program)
        except RunnerError:
            raise
        except Exception as e:  # noqa: BLE001
            raise BackendError(f"Failed to verify proof: {e}", backend=self.backend, cause=e) from e
        if not isinstance(raw, Mapping):
            raise BackendError("native verify returned a non-object result", backend=self.backend)
        result = VerifyResult(
            verification_duration=float(
                require_number(raw, "verificationDuration", "verification_duration", backend=self.backend)
            )
        )
        log.info(
            "verify_finished",
            backend=self.backend.value,
            program=program.value,
            verification_duration=result.verification_duration,
        )
        return result

    # -- subclass hooks --

    async def _generate_raw(self, spec: ProgramSpec, artifact: str, inputs: list[int]) -> Any:
        raise NotImplementedError

    async def _verify_raw(self, proof: str, program: ProgramId) -> Any:
        raise NotImplementedError

    def _normalize(self, raw: Mapping[str, Any]) -> ProofResult:
        raise NotImplementedError


__all__ = [
    "Json",
    "ArtifactStore",
    "DirectoryArtifactStore",
    "MemoryArtifactStore",
    "ProofBackendAdapter",
    "call_bridge",
    "require_number",
    "require_int",
    "int_list",
]

"""
zkrunner.tests helpers

Lightweight fakes and builders shared by zkrunner/* tests. Nothing here
touches a real prover.

Exports:
- FakeCairoBridge / FakeNoirBridge: record calls, return canned results,
  optionally fail or block on an asyncio.Event.
- cairo_raw(**overrides) / noir_raw(**overrides): canned native results.
- make_settings(tmp_path, **overrides) -> Settings
- memory_artifacts() -> MemoryArtifactStore with both fibonacci circuits
- make_orchestrator(tmp_path, ...) -> (orchestrator, cairo_bridge, noir_bridge)
- envelope_dict(**metadata_overrides) -> a valid wire envelope (dict)
- write_json(path, obj) -> Path
- configure_test_logging()

Environment toggles:
- ZKRUNNER_TEST_LOG=1 → route structlog through stdlib logging at DEBUG
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from zkrunner.backends import (AdapterRegistry, CairoMAdapter, MemoryArtifactStore,
                               NoirProveKitAdapter)
from zkrunner.config import Settings
from zkrunner.dispatch import DirectoryContentResolver, FileImportDispatcher
from zkrunner.orchestrator import ComputationOrchestrator
from zkrunner.types import BackendId, ProgramId

FIB_CAIRO_ARTIFACT = json.dumps({"name": "fibonacci_loop", "bytecode": [1, 2, 3]})
FIB_NOIR_ARTIFACT = json.dumps({"noir_version": "1.0.0", "abi": {"parameters": [], "return_type": {"kind": "field"}}})


def cairo_raw(**overrides: Any) -> Dict[str, Any]:
    raw: Dict[str, Any] = {
        "returnValues": [55],
        "numSteps": 1200,
        "overallDuration": 0.5,
        "executionDuration": 0.1,
        "proofDuration": 0.4,
        "overallFrequency": 2400.0,
        "executionFrequency": 12000.0,
        "proofFrequency": 3000.0,
        "proofSize": 128,
        "proof": "cairo-proof-bytes",
    }
    raw.update(overrides)
    return raw


def noir_raw(**overrides: Any) -> Dict[str, Any]:
    raw: Dict[str, Any] = {
        "returnValue": "55",
        "constraintCount": 300,
        "overallDuration": 0.25,
        "witnessGenerationDuration": 0.05,
        "proofGenerationDuration": 0.2,
        "overallFrequency": 1200.0,
        "witnessGenerationFrequency": 6000.0,
        "proofGenerationFrequency": 1500.0,
        "proofSize": 2048,
        "proof": {"proofData": "noir-proof-bytes"},
    }
    raw.update(overrides)
    return raw


class _GatedBridge:
    def __init__(self) -> None:
        self.calls: List[Tuple[str, tuple]] = []
        self.fail_with: Optional[BaseException] = None
        self.verify_fail_with: Optional[BaseException] = None
        self.gate: Optional[asyncio.Event] = None
        self.entered: Optional[asyncio.Event] = None

    async def _enter(self, name: str, args: tuple) -> None:
        self.calls.append((name, args))
        if self.entered is not None:
            self.entered.set()
        if self.gate is not None:
            await self.gate.wait()

    def hold(self) -> Tuple[asyncio.Event, asyncio.Event]:
        """Make the next calls block until the returned gate is set."""
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()
        return self.gate, self.entered

    def count(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)


class FakeCairoBridge(_GatedBridge):
    def __init__(self, result: Optional[Mapping[str, Any]] = None, verification: float = 0.01):
        super().__init__()
        self.result = dict(result or cairo_raw())
        self.verification = verification

    async def run_and_generate_proof(self, program_json: str, program_name: str, inputs: list[int]) -> Any:
        await self._enter("generate", (program_json, program_name, list(inputs)))
        if self.fail_with is not None:
            raise self.fail_with
        return dict(self.result)

    async def verify_proof(self, proof: str) -> Any:
        await self._enter("verify", (proof,))
        if self.verify_fail_with is not None:
            raise self.verify_fail_with
        return {"verificationDuration": self.verification}


class FakeNoirBridge(_GatedBridge):
    def __init__(self, result: Optional[Mapping[str, Any]] = None, verification: float = 0.02):
        super().__init__()
        self.result = dict(result or noir_raw())
        self.verification = verification

    async def generate_proof(self, circuit_json: str, input_json: str) -> Any:
        await self._enter("generate", (circuit_json, input_json))
        if self.fail_with is not None:
            raise self.fail_with
        return dict(self.result)

    async def verify_proof(self, circuit_json: str, proof: Mapping[str, str]) -> Any:
        await self._enter("verify", (circuit_json, dict(proof)))
        if self.verify_fail_with is not None:
            raise self.verify_fail_with
        return {"verificationDuration": self.verification}


def memory_artifacts() -> MemoryArtifactStore:
    store = MemoryArtifactStore()
    store.add(BackendId.CAIRO_M, ProgramId.FIBONACCI, FIB_CAIRO_ARTIFACT)
    store.add(BackendId.NOIR_PROVEKIT, ProgramId.FIBONACCI, FIB_NOIR_ARTIFACT)
    return store


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "scratch_dir": tmp_path / "scratch",
        "export_dir": tmp_path / "exports",
        "artifacts_dir": tmp_path / "artifacts",
    }
    values.update(overrides)
    return Settings(**values)


def make_orchestrator(
    tmp_path: Path,
    *,
    cairo: Optional[FakeCairoBridge] = None,
    noir: Optional[FakeNoirBridge] = None,
    content_root: Optional[Path] = None,
    backend: BackendId = BackendId.CAIRO_M,
    program: ProgramId = ProgramId.FIBONACCI,
) -> Tuple[ComputationOrchestrator, FakeCairoBridge, FakeNoirBridge]:
    settings = make_settings(tmp_path)
    cairo = cairo or FakeCairoBridge()
    noir = noir or FakeNoirBridge()
    store = memory_artifacts()
    registry = AdapterRegistry([CairoMAdapter(cairo, store), NoirProveKitAdapter(noir, store)])
    dispatcher = FileImportDispatcher(
        scratch_dir=settings.scratch_dir,
        content_resolver=DirectoryContentResolver(content_root or (tmp_path / "provider")),
        app_scheme=settings.app_scheme,
        temp_file_prefix=settings.temp_file_prefix,
    )
    orch = ComputationOrchestrator(registry, dispatcher, settings=settings, backend=backend, program=program)
    return orch, cairo, noir


def envelope_dict(**metadata_overrides: Any) -> Dict[str, Any]:
    meta: Dict[str, Any] = {
        "program": "fibonacci",
        "input": [10],
        "returnValues": [55],
        "numSteps": 1200,
        "proofSize": 128,
        "timestamp": "2026-01-02T03:04:05.678Z",
        "version": "1.0.0",
    }
    meta.update(metadata_overrides)
    return {"proof": "imported-proof", "metadata": meta}


def write_json(path: Path, obj: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(obj, indent=2), encoding="utf-8")
    return path


def configure_test_logging() -> None:
    if str(os.getenv("ZKRUNNER_TEST_LOG", "")).strip().lower() in {"1", "true", "yes", "on"}:
        from zkrunner.logging import setup_logging

        setup_logging(level="DEBUG", log_format="console")


__all__ = [
    "FIB_CAIRO_ARTIFACT",
    "FIB_NOIR_ARTIFACT",
    "FakeCairoBridge",
    "FakeNoirBridge",
    "cairo_raw",
    "noir_raw",
    "memory_artifacts",
    "make_settings",
    "make_orchestrator",
    "envelope_dict",
    "write_json",
    "configure_test_logging",
]

"""
zkrunner
========

Drive interchangeable zero-knowledge proving backends from one client:
select a backend and a program, supply input, generate and verify proofs,
and move proofs between devices as portable JSON envelopes.

Layout
------
- `zkrunner.backends`      async adapters over the native provers (+ registry)
- `zkrunner.codec`         proof envelope encode / serialize / validate
- `zkrunner.dispatch`      inbound URI → bytes (file://, content://, app links)
- `zkrunner.cache`         last outcome per (backend, program)
- `zkrunner.state`         immutable orchestrator state + pure reducers
- `zkrunner.orchestrator`  the mutation state machine tying it together

Quick start
-----------
>>> from zkrunner import build_orchestrator
>>> orch = build_orchestrator(cairo_bridge=my_cairo, noir_bridge=my_noir)
>>> orch.set_input("10")
>>> await orch.request_generate()
True
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from .backends import (AdapterRegistry, ArtifactStore, CairoMAdapter, CairoMBridge,
                       DirectoryArtifactStore, NoirBridge, NoirProveKitAdapter)
from .cache import ResultCache
from .config import Settings, get_settings
from .dispatch import ContentResolver, FileImportDispatcher
from .errors import ErrorKind, RunnerError
from .orchestrator import ComputationOrchestrator
from .state import OrchestratorState, PendingKind
from .types import BackendId, CachedOutcome, ProgramId, ProofResult, VerifyResult

__version__ = "0.1.0"


def build_orchestrator(
    *,
    cairo_bridge: Optional[CairoMBridge] = None,
    noir_bridge: Optional[NoirBridge] = None,
    artifacts: Optional[ArtifactStore] = None,
    content_resolver: Optional[ContentResolver] = None,
    settings: Optional[Settings] = None,
    scratch_dir: Optional[Union[str, Path]] = None,
) -> ComputationOrchestrator:
    """
    Wire adapters, dispatcher and cache from settings. Backends without a
    bridge are simply not registered (generating on them fails with
    UnsupportedBackend).
    """
    settings = settings or get_settings()
    store = artifacts or DirectoryArtifactStore(settings.artifacts_dir)
    registry = AdapterRegistry()
    if cairo_bridge is not None:
        registry.register(CairoMAdapter(cairo_bridge, store))
    if noir_bridge is not None:
        registry.register(NoirProveKitAdapter(noir_bridge, store))
    dispatcher = FileImportDispatcher(
        scratch_dir=scratch_dir or settings.scratch_dir,
        content_resolver=content_resolver,
        app_scheme=settings.app_scheme,
        temp_file_prefix=settings.temp_file_prefix,
    )
    return ComputationOrchestrator(registry, dispatcher, settings=settings)


__all__ = [
    "__version__",
    "build_orchestrator",
    "AdapterRegistry",
    "BackendId",
    "ProgramId",
    "ProofResult",
    "VerifyResult",
    "CachedOutcome",
    "ResultCache",
    "ComputationOrchestrator",
    "OrchestratorState",
    "PendingKind",
    "FileImportDispatcher",
    "ErrorKind",
    "RunnerError",
    "Settings",
    "get_settings",
]

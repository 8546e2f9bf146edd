"""
zkrunner.backends
=================

Uniform async adapters over heterogeneous proving backends, plus a tiny
registry keyed by `BackendId`.

- `CairoMAdapter`        → Cairo M zkVM (step counts, execution/proof phases)
- `NoirProveKitAdapter`  → Noir circuits proven with ProveKit (constraint counts)

Each adapter must implement:

    async def generate(program: ProgramId, inputs: Sequence[int]) -> ProofResult
    async def verify(proof: str, *, program: ProgramId = ...) -> VerifyResult

and raise InvalidInput / UnsupportedProgram / BackendError on failure.

Usage
-----
>>> registry = AdapterRegistry()
>>> registry.register(CairoMAdapter(bridge, artifacts))
>>> await registry.get(BackendId.CAIRO_M).generate(ProgramId.FIBONACCI, [10])
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..errors import UnsupportedBackend
from ..types import BackendId
from .base import (ArtifactStore, DirectoryArtifactStore, MemoryArtifactStore,
                   ProofBackendAdapter)
from .cairo_m import CairoMAdapter, CairoMBridge
from .noir_provekit import NoirBridge, NoirProveKitAdapter


class AdapterRegistry:
    """Maps BackendId → adapter instance. One adapter per backend."""

    def __init__(self, adapters: Optional[Iterable[ProofBackendAdapter]] = None):
        self._adapters: Dict[BackendId, ProofBackendAdapter] = {}
        for a in adapters or ():
            self.register(a)

    def register(self, adapter: ProofBackendAdapter, *, overwrite: bool = False) -> None:
        b = adapter.backend
        if b in self._adapters and not overwrite and self._adapters[b] is not adapter:
            raise ValueError(f"adapter for '{b.value}' already registered")
        self._adapters[b] = adapter

    def get(self, backend: BackendId) -> ProofBackendAdapter:
        try:
            return self._adapters[backend]
        except KeyError:
            raise UnsupportedBackend(backend) from None

    def has(self, backend: BackendId) -> bool:
        return backend in self._adapters

    def list_backends(self) -> List[BackendId]:
        return [b for b in BackendId if b in self._adapters]


__all__ = [
    "AdapterRegistry",
    "ArtifactStore",
    "DirectoryArtifactStore",
    "MemoryArtifactStore",
    "ProofBackendAdapter",
    "CairoMAdapter",
    "CairoMBridge",
    "NoirProveKitAdapter",
    "NoirBridge",
]

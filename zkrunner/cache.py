"""
zkrunner.cache
==============

Keyed store of the last known outcome per (backend, program).

- Entries are created on successful generation (or import), updated on
  successful verification, and only removed by explicit `remove` / `clear`.
- No eviction: the key space is the (small, finite) program catalog.
- Owned by the orchestrator; nothing else should mutate it.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional

from .logging import get_logger
from .types import BackendId, CacheKey, CachedOutcome, ProgramId, VerifyResult

log = get_logger(__name__)

__all__ = ["ResultCache"]


class ResultCache:
    def __init__(self) -> None:
        self._entries: Dict[CacheKey, CachedOutcome] = {}

    def get(self, backend: BackendId, program: ProgramId) -> Optional[CachedOutcome]:
        return self._entries.get((backend, program))

    def put(self, backend: BackendId, program: ProgramId, outcome: CachedOutcome) -> None:
        self._entries[(backend, program)] = outcome

    def update_verification(self, backend: BackendId, program: ProgramId, verification: VerifyResult) -> None:
        """
        Merge `verification` into the existing entry. With no entry this is a
        no-op: callers must never verify what was not generated first.
        """
        current = self._entries.get((backend, program))
        if current is None:
            log.warning("verification_without_proof", backend=backend.value, program=program.value)
            return
        self._entries[(backend, program)] = current.with_verification(verification)

    def remove(self, backend: BackendId, program: ProgramId) -> Optional[CachedOutcome]:
        return self._entries.pop((backend, program), None)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> List[CacheKey]:
        return list(self._entries.keys())

    def snapshot(self) -> Dict[CacheKey, CachedOutcome]:
        """Shallow copy; outcomes are frozen so sharing them is safe."""
        return dict(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CacheKey]:
        return iter(list(self._entries))

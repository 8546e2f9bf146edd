"""
zkrunner.orchestrator
=====================

The computation-orchestration state machine consumed by the presentation layer.

States are the value of `pending` crossed with whether an outcome is cached
for the current (backend, program) key:

    Idle ──request_generate──▶ Generating ──ok──▶ Idle (cache.put)
                                           └─err─▶ Idle (last_error)
    Idle ──request_verify────▶ Verifying  ──ok──▶ Idle (cache.update_verification)
                                           └─err─▶ Idle (last_error)
    Idle ──request_import────▶ Importing  ──ok──▶ Idle (program switched, cache.put)
                                           └─err─▶ Idle (last_error, nothing adopted)

Rules
-----
- At most one mutation is in flight. Intents arriving while `pending` is not
  NONE are rejected at the guard (return False, state untouched), never
  queued and never cancelling the running call.
- Every transition into a working state has exactly one transition back to
  Idle; the `_working` context manager enforces it even on unexpected errors.
- Failures never touch cache entries. A failed generate/verify hides the
  current key's outcome from `current_outcome` until the next success or
  selection change; other keys are unaffected. Verify and export only act
  on the displayed outcome.
- Listener exceptions are logged, never propagated into a transition.
- Switching backend/program leaves the cache alone.

Intents return True when the action completed and False when it was rejected
or failed (see `state.last_error`).
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Callable, List, Optional, Union

from . import codec
from . import state as st
from .backends import AdapterRegistry
from .cache import ResultCache
from .config import Settings, get_settings
from .dispatch import FileImportDispatcher
from .errors import ErrorKind, NoPriorResult, RunnerError, UnsupportedProgram
from .logging import get_logger
from .programs import get_spec, is_available, parse_input_text
from .state import OrchestratorState, PendingKind
from .types import BackendId, CacheKey, CachedOutcome, ProgramId, synthetic_result

log = get_logger(__name__)

Listener = Callable[[OrchestratorState], None]

__all__ = ["ComputationOrchestrator", "Listener"]


class ComputationOrchestrator:
    """Single logical actor owning `OrchestratorState` and the `ResultCache`."""

    def __init__(
        self,
        adapters: AdapterRegistry,
        dispatcher: FileImportDispatcher,
        *,
        settings: Optional[Settings] = None,
        cache: Optional[ResultCache] = None,
        backend: Optional[BackendId] = None,
        program: Optional[ProgramId] = None,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        self._settings = settings or get_settings()
        self._adapters = adapters
        self._dispatcher = dispatcher
        self._cache = cache if cache is not None else ResultCache()
        self._clock_ms = clock_ms
        self._listeners: List[Listener] = []
        # inputs of the proof each key's outcome was generated from; export needs them
        self._inputs: dict[CacheKey, List[int]] = {}
        self._state = st.initial_state(
            backend or self._settings.default_backend,
            program or self._settings.default_program,
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def current_key(self) -> CacheKey:
        return self._state.key

    @property
    def current_outcome(self) -> Optional[CachedOutcome]:
        """What the presentation layer should display for the current key."""
        if self._state.display_suppressed:
            return None
        return self._cache.get(*self._state.key)

    @property
    def program_available(self) -> bool:
        return is_available(*self._state.key)

    @property
    def can_generate(self) -> bool:
        return self._state.is_idle and self.program_available and self._adapters.has(self._state.selected_backend)

    @property
    def can_verify(self) -> bool:
        return self._state.is_idle and self.current_outcome is not None

    @property
    def can_export(self) -> bool:
        return self.current_outcome is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(self, new_state: OrchestratorState) -> None:
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:  # noqa: BLE001 - a broken subscriber must not wedge the state machine
                log.exception("listener_failed", listener=repr(listener), pending=new_state.pending.value)

    def _reject_busy(self, intent: str) -> bool:
        log.warning("intent_rejected_busy", intent=intent, pending=self._state.pending.value)
        return False

    @asynccontextmanager
    async def _working(self, kind: PendingKind, *, hide_on_error: bool) -> AsyncIterator[None]:
        """
        Enter `kind`, and return to Idle exactly once: via `st.succeed` inside the
        block, or here with last_error on any exception.
        """
        try:
            self._commit(st.begin(self._state, kind))
            log.info("mutation_started", kind=kind.value, backend=self._state.selected_backend.value,
                     program=self._state.selected_program.value)
            yield
        except RunnerError as e:
            log.warning("mutation_failed", kind=kind.value, error_kind=str(e.kind), error=e.msg)
            self._commit(st.fail(self._state, e, hide_result=hide_on_error))
        except Exception as e:  # noqa: BLE001 - the boundary stores every error as last_error
            log.exception("mutation_crashed", kind=kind.value)
            err = RunnerError.wrap(ErrorKind.UNKNOWN, f"Unexpected error: {e}", cause=e)
            self._commit(st.fail(self._state, err, hide_result=hide_on_error))
        else:
            if self._state.pending is not PendingKind.NONE:
                self._commit(st.succeed(self._state))
            log.info("mutation_finished", kind=kind.value)
        finally:
            # task cancellation (BaseException) must not leave `pending` stuck
            if self._state.pending is kind:
                self._commit(st.fail(self._state, RunnerError.wrap(ErrorKind.UNKNOWN, "Operation abandoned")))

    def _fail_now(self, error: RunnerError) -> bool:
        """Record a guard failure without entering a working state."""
        log.info("intent_guard_failed", error_kind=str(error.kind), error=error.msg)
        self._commit(st.fail(self._state, error))
        return False

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    def set_input(self, text: str) -> bool:
        if not self._state.is_idle:
            return self._reject_busy("set_input")
        self._commit(st.set_input(self._state, text))
        return True

    async def request_generate(self) -> bool:
        if not self._state.is_idle:
            return self._reject_busy("generate")
        backend, program = self._state.key
        if not is_available(backend, program):
            return self._fail_now(UnsupportedProgram(program, backend=backend))
        try:
            inputs = parse_input_text(program, self._state.current_input)
            adapter = self._adapters.get(backend)
        except RunnerError as e:
            return self._fail_now(e)

        ok = False
        async with self._working(PendingKind.GENERATING, hide_on_error=True):
            result = await adapter.generate(program, inputs)
            self._cache.put(backend, program, CachedOutcome(proof=result))
            self._inputs[(backend, program)] = list(inputs)
            self._commit(st.succeed(self._state))
            ok = True
        return ok

    async def request_verify(self) -> bool:
        if not self._state.is_idle:
            return self._reject_busy("verify")
        backend, program = self._state.key
        # a result hidden by a failed attempt is not verifiable until shown again
        outcome = self.current_outcome
        if outcome is None:
            return self._fail_now(NoPriorResult())
        try:
            adapter = self._adapters.get(backend)
        except RunnerError as e:
            return self._fail_now(e)

        ok = False
        async with self._working(PendingKind.VERIFYING, hide_on_error=True):
            verification = await adapter.verify(outcome.proof.proof, program=program)
            self._cache.update_verification(backend, program, verification)
            self._commit(st.succeed(self._state))
            ok = True
        return ok

    async def request_import(self, uri: str) -> bool:
        """Resolve `uri`, validate it as an envelope and adopt it."""
        if not self._state.is_idle:
            return self._reject_busy("import")
        ok = False
        async with self._working(PendingKind.IMPORTING, hide_on_error=False):
            data = await self._dispatcher.resolve(uri)
            if data is None:
                # reserved application link: nothing to adopt
                self._commit(st.succeed(self._state))
            else:
                self._adopt(codec.decode(data))
                ok = True
        return ok

    async def import_bytes(self, data: bytes) -> bool:
        """Adopt an envelope already in memory (e.g. a document picker payload)."""
        if not self._state.is_idle:
            return self._reject_busy("import")
        ok = False
        async with self._working(PendingKind.IMPORTING, hide_on_error=False):
            self._adopt(codec.decode(data))
            ok = True
        return ok

    def _adopt(self, envelope: codec.ProofEnvelope) -> None:
        """Write the imported envelope for (current backend, envelope program)."""
        program = ProgramId.parse(envelope.metadata.program)
        backend = self._state.selected_backend
        meta = envelope.metadata
        result = synthetic_result(
            backend,
            proof=envelope.proof,
            proof_size=int(meta.proof_size),
            step_count=int(meta.num_steps),
            return_values=list(meta.return_values),
        )
        self._cache.put(backend, program, CachedOutcome(proof=result))
        self._inputs[(backend, program)] = list(meta.input)
        # selecting the program also resets that key's input text
        self._commit(st.succeed(st.select_program(self._state, program, reset_input=True)))
        log.info("proof_imported", backend=backend.value, program=program.value,
                 proof_size=result.proof_size, version=meta.version)

    def switch_backend(self, backend: Union[BackendId, str]) -> bool:
        if not self._state.is_idle:
            return self._reject_busy("switch_backend")
        try:
            b = BackendId.parse(backend)
        except RunnerError as e:
            return self._fail_now(e)
        reset = self._starts_empty(b, self._state.selected_program)
        self._commit(st.select_backend(self._state, b, reset_input=reset))
        return True

    def switch_program(self, program: Union[ProgramId, str]) -> bool:
        if not self._state.is_idle:
            return self._reject_busy("switch_program")
        try:
            p = ProgramId.parse(program)
        except RunnerError as e:
            return self._fail_now(e)
        reset = self._starts_empty(self._state.selected_backend, p)
        self._commit(st.select_program(self._state, p, reset_input=reset))
        return True

    @staticmethod
    def _starts_empty(backend: BackendId, program: ProgramId) -> bool:
        try:
            return get_spec(backend, program).input_starts_empty
        except UnsupportedProgram:
            return False

    def dismiss_error(self) -> None:
        self._commit(st.dismiss_error(self._state))

    def clear_results(self, *, all_keys: bool = False) -> bool:
        """Explicit user eviction: the current key, or everything."""
        if not self._state.is_idle:
            return self._reject_busy("clear_results")
        if all_keys:
            self._cache.clear()
            self._inputs.clear()
        else:
            self._cache.remove(*self._state.key)
            self._inputs.pop(self._state.key, None)
        self._commit(st.dismiss_error(self._state))
        return True

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_current(self, *, unix_millis: Optional[int] = None) -> Optional[codec.ExportedProof]:
        """
        Serialize the displayed outcome for the current key as a portable file.
        Returns None (and sets last_error) when there is nothing to export.
        """
        if not self._state.is_idle:
            self._reject_busy("export")
            return None
        outcome = self.current_outcome
        if outcome is None:
            self._fail_now(NoPriorResult("No proof available to export"))
            return None
        key = self._state.key
        envelope = codec.encode(outcome, key[1], self._inputs.get(key, []))
        exported = codec.export(
            envelope,
            unix_millis if unix_millis is not None else self._clock_ms(),
            prefix=self._settings.export_prefix,
            extension=self._settings.export_extension,
        )
        log.info("proof_exported", file_name=exported.file_name, size=len(exported.payload))
        return exported

    def export_to_file(self, directory: Optional[Union[str, Path]] = None) -> Optional[Path]:
        exported = self.export_current()
        if exported is None:
            return None
        return codec.write_export(exported, directory or self._settings.export_dir)

"""
Typed exceptions for zkrunner.

Design goals
- Structured: machine-readable kind + human message + contextual fields.
- Caught at the orchestrator boundary and stored as ``last_error``; none of
  these are fatal to the process.
- Stable across processes: to_dict()/from_dict() round-trip.

Taxonomy
  - InvalidInput               input text/values fail the program predicate
  - UnsupportedProgram         backend does not implement the program
  - UnsupportedBackend         unknown backend id
  - NoPriorResult              verify/export requested with nothing cached
  - SourceUnreadable           inbound file cannot be read
  - UnsupportedSource          inbound URI scheme is not handled
  - ParseError                 bytes are not valid JSON
  - StructuralValidationError  valid JSON, wrong shape
  - BackendError               native call rejected
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ErrorKind(str, Enum):
    """Canonical error kinds surfaced to the presentation layer."""

    UNKNOWN = "UNKNOWN"
    INVALID_INPUT = "INVALID_INPUT"
    UNSUPPORTED_PROGRAM = "UNSUPPORTED_PROGRAM"
    UNSUPPORTED_BACKEND = "UNSUPPORTED_BACKEND"
    NO_PRIOR_RESULT = "NO_PRIOR_RESULT"
    SOURCE_UNREADABLE = "SOURCE_UNREADABLE"
    UNSUPPORTED_SOURCE = "UNSUPPORTED_SOURCE"
    PARSE_ERROR = "PARSE_ERROR"
    STRUCTURE = "STRUCTURAL_VALIDATION"
    BACKEND = "BACKEND_ERROR"


@dataclass
class RunnerError(Exception):
    """
    Base structured error for zkrunner.

    Fields:
      kind:  stable machine code (ErrorKind | str)
      msg:   human-readable summary
      ctx:   small dict of contextual fields (backend, program, uri, ...)
      cause: optional underlying exception (not serialized)
    """

    kind: ErrorKind | str = ErrorKind.UNKNOWN
    msg: str = "runner error"
    ctx: Dict[str, Any] = field(default_factory=dict)
    cause: Optional[BaseException] = None

    def __post_init__(self) -> None:
        if not isinstance(self.ctx, dict):
            self.ctx = {"_ctx_type_error": str(type(self.ctx)), "repr": repr(self.ctx)}

    def __str__(self) -> str:
        parts = [f"[{self.kind}] {self.msg}"]
        if self.ctx:
            parts.append(f"ctx={self.ctx}")
        if self.cause:
            parts.append(f"cause={self.cause!r}")
        return " ".join(parts)

    # dataclass eq would compare causes by identity; errors are compared by content
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RunnerError):
            return NotImplemented
        return (str(self.kind), self.msg, self.ctx) == (str(other.kind), other.msg, other.ctx)

    __hash__ = Exception.__hash__

    def with_context(self, **extra: Any) -> "RunnerError":
        """Return a shallow copy with merged context."""
        merged = dict(self.ctx)
        merged.update(extra)
        return RunnerError(kind=self.kind, msg=self.msg, ctx=merged, cause=self.cause)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": str(self.kind.value if isinstance(self.kind, ErrorKind) else self.kind),
            "msg": self.msg,
            "ctx": self.ctx,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "RunnerError":
        kind_raw = d.get("kind", ErrorKind.UNKNOWN)
        try:
            kind: ErrorKind | str = ErrorKind(kind_raw)
        except ValueError:
            kind = str(kind_raw)
        return cls(kind=kind, msg=str(d.get("msg", "runner error")), ctx=dict(d.get("ctx", {})))

    @classmethod
    def wrap(
        cls,
        kind: ErrorKind | str,
        msg: str,
        *,
        ctx: Optional[Mapping[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> "RunnerError":
        return cls(kind=kind, msg=msg, ctx=dict(ctx or {}), cause=cause)


def _merge(base: Dict[str, Any], ctx: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if ctx:
        base.update(ctx)
    return base


class InvalidInput(RunnerError):
    """Input text or values fail the program's validation predicate."""

    def __init__(
        self,
        msg: str = "Invalid input: Please enter a positive number",
        *,
        value: Any = None,
        ctx: Optional[Mapping[str, Any]] = None,
    ) -> None:
        base: Dict[str, Any] = {}
        if value is not None:
            base["value"] = value
        super().__init__(kind=ErrorKind.INVALID_INPUT, msg=msg, ctx=_merge(base, ctx))


class UnsupportedProgram(RunnerError):
    def __init__(self, program: Any, *, backend: Any = None, ctx: Optional[Mapping[str, Any]] = None) -> None:
        base: Dict[str, Any] = {"program": str(getattr(program, "value", program))}
        if backend is not None:
            base["backend"] = str(getattr(backend, "value", backend))
        super().__init__(kind=ErrorKind.UNSUPPORTED_PROGRAM, msg="Unsupported program type", ctx=_merge(base, ctx))


class UnsupportedBackend(RunnerError):
    def __init__(self, backend: Any, *, ctx: Optional[Mapping[str, Any]] = None) -> None:
        base: Dict[str, Any] = {"backend": str(getattr(backend, "value", backend))}
        super().__init__(
            kind=ErrorKind.UNSUPPORTED_BACKEND,
            msg=f"Unsupported system: {base['backend']}",
            ctx=_merge(base, ctx),
        )


class NoPriorResult(RunnerError):
    def __init__(
        self,
        msg: str = "No computation result available for verification",
        *,
        ctx: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(kind=ErrorKind.NO_PRIOR_RESULT, msg=msg, ctx=dict(ctx or {}))


class SourceUnreadable(RunnerError):
    def __init__(
        self,
        msg: str = "Cannot access the selected file",
        *,
        uri: Optional[str] = None,
        ctx: Optional[Mapping[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        base: Dict[str, Any] = {}
        if uri is not None:
            base["uri"] = uri
        super().__init__(kind=ErrorKind.SOURCE_UNREADABLE, msg=msg, ctx=_merge(base, ctx), cause=cause)


class UnsupportedSource(RunnerError):
    def __init__(self, uri: str, *, ctx: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(
            kind=ErrorKind.UNSUPPORTED_SOURCE,
            msg="Only local files can be imported",
            ctx=_merge({"uri": uri}, ctx),
        )


class ParseError(RunnerError):
    def __init__(
        self,
        msg: str = "The file is not valid JSON format",
        *,
        ctx: Optional[Mapping[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(kind=ErrorKind.PARSE_ERROR, msg=msg, ctx=dict(ctx or {}), cause=cause)


class StructuralValidationError(RunnerError):
    """Valid JSON whose shape is not a proof envelope."""

    def __init__(
        self,
        msg: str = "The file does not contain valid proof data",
        *,
        path: Optional[str] = None,
        expected: Optional[str] = None,
        ctx: Optional[Mapping[str, Any]] = None,
    ) -> None:
        base: Dict[str, Any] = {}
        if path is not None:
            base["path"] = path
        if expected is not None:
            base["expected"] = expected
        super().__init__(kind=ErrorKind.STRUCTURE, msg=msg, ctx=_merge(base, ctx))

    @property
    def path(self) -> Optional[str]:
        return self.ctx.get("path")


class BackendError(RunnerError):
    """The native proving/verification call rejected, or returned garbage."""

    def __init__(
        self,
        detail: str,
        *,
        backend: Any = None,
        ctx: Optional[Mapping[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        base: Dict[str, Any] = {"detail": detail}
        if backend is not None:
            base["backend"] = str(getattr(backend, "value", backend))
        super().__init__(kind=ErrorKind.BACKEND, msg=detail, ctx=_merge(base, ctx), cause=cause)

    @property
    def detail(self) -> str:
        return str(self.ctx.get("detail", self.msg))


# Handy guard helpers ---------------------------------------------------------


def schema_guard(ok: bool, *, msg: str, path: str, expected: Optional[str] = None) -> None:
    """
    Raise StructuralValidationError if ok is False. Keeps the ordered envelope
    checks in zkrunner.codec one line each.
    """
    if not ok:
        raise StructuralValidationError(msg=msg, path=path, expected=expected)


def rethrow_as(factory, **kwargs: Any):
    """
    Context-manager converting arbitrary exceptions into a typed RunnerError
    built by ``factory(cause=exc, **kwargs)``. RunnerErrors pass through as-is.

      with rethrow_as(BackendError, detail="prover crashed", backend=b):
          ... code that may raise ...
    """

    class _Ctx:
        def __enter__(self) -> None:
            return None

        def __exit__(self, exc_type, exc, tb) -> bool:
            if exc is None or isinstance(exc, RunnerError):
                return False
            if not isinstance(exc, Exception):
                return False
            raise factory(cause=exc, **kwargs) from exc

    return _Ctx()


__all__ = [
    "ErrorKind",
    "RunnerError",
    "InvalidInput",
    "UnsupportedProgram",
    "UnsupportedBackend",
    "NoPriorResult",
    "SourceUnreadable",
    "UnsupportedSource",
    "ParseError",
    "StructuralValidationError",
    "BackendError",
    "schema_guard",
    "rethrow_as",
]

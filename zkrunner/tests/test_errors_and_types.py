import msgspec
import pytest

from zkrunner.errors import (BackendError, ErrorKind, InvalidInput, NoPriorResult, RunnerError,
                             StructuralValidationError, UnsupportedProgram, rethrow_as, schema_guard)
from zkrunner.types import (BackendId, CachedOutcome, CairoMProofResult, NoirProofResult, ProofResult,
                            VerifyResult, synthetic_result)


def test_error_dict_round_trip():
    e = UnsupportedProgram("hashes", backend=BackendId.NOIR_PROVEKIT)
    d = e.to_dict()
    assert d == {
        "kind": "UNSUPPORTED_PROGRAM",
        "msg": "Unsupported program type",
        "ctx": {"program": "hashes", "backend": "noir-provekit"},
    }
    back = RunnerError.from_dict(d)
    assert back.kind is ErrorKind.UNSUPPORTED_PROGRAM
    assert back == e


def test_from_dict_keeps_unknown_kind_as_string():
    e = RunnerError.from_dict({"kind": "SOMETHING_NEW", "msg": "x"})
    assert e.kind == "SOMETHING_NEW"


def test_str_and_context():
    e = InvalidInput(value=-1).with_context(field="n")
    assert e.ctx == {"value": -1, "field": "n"}
    assert "INVALID_INPUT" in str(e)
    assert "ctx=" in str(e)


def test_subclass_fields():
    assert NoPriorResult().kind is ErrorKind.NO_PRIOR_RESULT
    be = BackendError("prover exploded", backend=BackendId.CAIRO_M)
    assert be.detail == "prover exploded"
    assert be.ctx["backend"] == "cairo-m"
    se = StructuralValidationError(path="metadata.version", expected="string")
    assert se.path == "metadata.version"


def test_schema_guard():
    schema_guard(True, msg="fine", path="$")
    with pytest.raises(StructuralValidationError) as ei:
        schema_guard(False, msg="bad", path="proof", expected="string")
    assert ei.value.ctx == {"path": "proof", "expected": "string"}


def test_rethrow_as_converts_plain_exceptions():
    with pytest.raises(BackendError) as ei:
        with rethrow_as(BackendError, detail="malformed", backend="cairo-m"):
            raise KeyError("proofSize")
    assert isinstance(ei.value.cause, KeyError)
    assert ei.value.detail == "malformed"


def test_rethrow_as_passes_runner_errors_through():
    with pytest.raises(InvalidInput):
        with rethrow_as(BackendError, detail="x"):
            raise InvalidInput()


def _cairo(**kw) -> CairoMProofResult:
    return CairoMProofResult(overall_duration=1.0, proof_size=10, proof="p", **kw)


def test_tagged_union_round_trip():
    r = _cairo(num_steps=5)
    raw = msgspec.json.encode(r)
    assert msgspec.json.decode(raw)["backend"] == "cairo-m"
    back = msgspec.json.decode(raw, type=ProofResult)
    assert isinstance(back, CairoMProofResult)
    assert back == r

    n = NoirProofResult(overall_duration=1.0, proof_size=10, proof="p", constraint_count=9)
    assert isinstance(msgspec.json.decode(msgspec.json.encode(n), type=ProofResult), NoirProofResult)


def test_step_count_per_variant():
    assert _cairo(num_steps=7).step_count == 7
    assert NoirProofResult(overall_duration=0, proof_size=0, proof="p", constraint_count=3).step_count == 3


def test_cached_outcome_with_verification_is_a_copy():
    o = CachedOutcome(proof=_cairo())
    v = o.with_verification(VerifyResult(verification_duration=0.2))
    assert o.verification is None
    assert v.verification == VerifyResult(verification_duration=0.2)
    assert v.proof is o.proof
    assert v.backend is BackendId.CAIRO_M


@pytest.mark.parametrize("backend, cls", [(BackendId.CAIRO_M, CairoMProofResult), (BackendId.NOIR_PROVEKIT, NoirProofResult)])
def test_synthetic_result_zeroes_timing(backend, cls):
    r = synthetic_result(backend, proof="x", proof_size=64, step_count=99, return_values=[1])
    assert isinstance(r, cls)
    assert r.step_count == 99
    assert r.proof_size == 64
    assert r.overall_duration == 0.0
    assert r.overall_frequency == 0.0

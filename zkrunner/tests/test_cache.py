from zkrunner.cache import ResultCache
from zkrunner.types import BackendId, CachedOutcome, CairoMProofResult, NoirProofResult, ProgramId, VerifyResult

A = (BackendId.CAIRO_M, ProgramId.FIBONACCI)
B = (BackendId.NOIR_PROVEKIT, ProgramId.FIBONACCI)


def _outcome(size: int = 128) -> CachedOutcome:
    return CachedOutcome(proof=CairoMProofResult(overall_duration=0.1, proof_size=size, proof="p"))


def test_put_get_is_per_key():
    c = ResultCache()
    o = _outcome()
    c.put(*A, o)
    assert c.get(*A) is o
    assert c.get(*B) is None
    assert A in c and B not in c
    assert len(c) == 1
    assert c.keys() == [A]


def test_put_replaces_previous_outcome():
    c = ResultCache()
    c.put(*A, _outcome(1))
    c.put(*A, _outcome(2))
    assert c.get(*A).proof.proof_size == 2
    assert len(c) == 1


def test_update_verification_merges():
    c = ResultCache()
    c.put(*A, _outcome())
    c.update_verification(*A, VerifyResult(verification_duration=0.3))
    got = c.get(*A)
    assert got.verification.verification_duration == 0.3
    assert got.proof.proof_size == 128


def test_update_verification_without_entry_is_noop():
    c = ResultCache()
    c.update_verification(*A, VerifyResult(verification_duration=0.3))
    assert c.get(*A) is None
    assert len(c) == 0


def test_remove_and_clear_are_explicit():
    c = ResultCache()
    c.put(*A, _outcome())
    noir = CachedOutcome(proof=NoirProofResult(overall_duration=0.1, proof_size=5, proof="n"))
    c.put(*B, noir)
    assert c.remove(*A) is not None
    assert c.remove(*A) is None
    assert list(c) == [B]
    snap = c.snapshot()
    c.clear()
    assert len(c) == 0
    assert snap == {B: noir}

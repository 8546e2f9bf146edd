import pytest

from zkrunner.errors import ErrorKind, InvalidInput, UnsupportedBackend, UnsupportedProgram
from zkrunner.programs import (FIBONACCI_MAX_INPUT, get_spec, is_available, parse_input_text,
                               programs_for, validate_inputs)
from zkrunner.types import BackendId, ProgramId


@pytest.mark.parametrize("text, expected", [("10", [10]), ("  7\n", [7]), ("116507", [FIBONACCI_MAX_INPUT]), ("1", [1])])
def test_parse_accepts_positive_in_range(text, expected):
    assert parse_input_text(ProgramId.FIBONACCI, text) == expected


@pytest.mark.parametrize("text", ["", "   ", "0", "-3", "abc", "1.5", "10a", "0x10"])
def test_parse_rejects_non_positive_or_non_numeric(text):
    with pytest.raises(InvalidInput) as ei:
        parse_input_text(ProgramId.FIBONACCI, text)
    assert ei.value.kind is ErrorKind.INVALID_INPUT
    assert "positive number" in ei.value.msg


def test_parse_rejects_over_limit_with_reason():
    with pytest.raises(InvalidInput) as ei:
        parse_input_text(ProgramId.FIBONACCI, str(FIBONACCI_MAX_INPUT + 1))
    assert "Input Limit Exceeded" in ei.value.msg
    assert ei.value.ctx["max"] == FIBONACCI_MAX_INPUT


@pytest.mark.parametrize("values", [[], [1, 2], [True], [0], ["5"]])
def test_fibonacci_predicate_on_values(values):
    with pytest.raises(InvalidInput):
        validate_inputs(ProgramId.FIBONACCI, values)


def test_hashes_rejects_everything():
    with pytest.raises(InvalidInput):
        validate_inputs(ProgramId.HASHES, [1])


def test_catalog_availability():
    for b in BackendId:
        assert is_available(b, ProgramId.FIBONACCI)
        assert not is_available(b, ProgramId.HASHES)
        assert {s.program for s in programs_for(b)} == {ProgramId.FIBONACCI, ProgramId.HASHES}
    spec = get_spec(BackendId.CAIRO_M, ProgramId.FIBONACCI)
    assert spec.artifact == "fibonacci_loop.json"
    assert spec.entrypoint == "fibonacci_loop"
    assert spec.input_starts_empty
    assert spec.key == (BackendId.CAIRO_M, ProgramId.FIBONACCI)


@pytest.mark.parametrize("raw, expected", [("fibonacci", ProgramId.FIBONACCI), ("FIB", ProgramId.FIBONACCI), (" hashes ", ProgramId.HASHES)])
def test_program_parse(raw, expected):
    assert ProgramId.parse(raw) is expected


def test_program_parse_unknown():
    with pytest.raises(UnsupportedProgram) as ei:
        ProgramId.parse("sha256")
    assert ei.value.ctx["program"] == "sha256"


@pytest.mark.parametrize(
    "raw, expected",
    [("cairo-m", BackendId.CAIRO_M), ("cairo_m", BackendId.CAIRO_M), ("Cairo", BackendId.CAIRO_M), ("noir", BackendId.NOIR_PROVEKIT)],
)
def test_backend_parse(raw, expected):
    assert BackendId.parse(raw) is expected


def test_backend_parse_unknown():
    with pytest.raises(UnsupportedBackend):
        BackendId.parse("risc0")

"""
Human-readable metric strings for result displays.

One decimal place when the scaled value is >= 10, otherwise two.
"""

from __future__ import annotations

__all__ = ["format_time", "format_frequency", "format_steps", "format_size"]


def _fixed(value: float) -> str:
    return f"{value:.1f}" if value >= 10 else f"{value:.2f}"


def format_time(seconds: float) -> str:
    """hr / min / s / ms / μs / ns"""
    if seconds >= 3600:
        return f"{_fixed(seconds / 3600)} hr"
    if seconds >= 60:
        return f"{_fixed(seconds / 60)} min"
    if seconds >= 1:
        return f"{_fixed(seconds)} s"
    if seconds >= 1e-3:
        return f"{_fixed(seconds * 1e3)} ms"
    if seconds >= 1e-6:
        return f"{_fixed(seconds * 1e6)} μs"
    return f"{_fixed(seconds * 1e9)} ns"


def format_frequency(hz: float) -> str:
    """GHz / MHz / kHz / Hz"""
    if hz >= 1e9:
        return f"{_fixed(hz / 1e9)} GHz"
    if hz >= 1e6:
        return f"{_fixed(hz / 1e6)} MHz"
    if hz >= 1e3:
        return f"{_fixed(hz / 1e3)} kHz"
    return f"{_fixed(hz)} Hz"


def format_steps(n: int) -> str:
    return f"{int(n):,}"


def format_size(n_bytes: int) -> str:
    n = float(n_bytes)
    for unit in ("B", "KB", "MB"):
        if n < 1024:
            return f"{int(n)} {unit}" if unit == "B" else f"{_fixed(n)} {unit}"
        n /= 1024
    return f"{_fixed(n)} GB"

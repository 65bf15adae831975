import errno
import os

import pytest

from qfs.output_formatter import (
    format_all_calls,
    format_call,
    format_resolved,
    format_symbol,
    write_formatted_calls_to_file,
)
from qfs.resolver import ResolvedSymbol, Symbol
from qfs.symbolizer import SymbolizedCall, Unresolved, symbolize_calls


def test_format_symbol():
    assert format_symbol(Symbol("do_fork")) == "do_fork"
    assert format_symbol(Symbol("floppy_interrupt", "floppy")) == "floppy_interrupt[floppy]"


def test_zero_offset_has_no_suffix():
    res = ResolvedSymbol(address=0x1000, base=0x1000, symbol=Symbol("f"))
    assert format_resolved(res) == "f"


def test_offset_lowercase_hex_without_leading_zeros():
    res = ResolvedSymbol(address=0x10AB, base=0x1000, symbol=Symbol("f", "m"))
    assert format_resolved(res) == "f[m]+0xab"


def test_unresolved_renders_raw_address():
    assert format_resolved(Unresolved(0xDEAD)) == "0xdead"


def test_end_to_end_examples(small_table, make_call):
    out = symbolize_calls(small_table, [make_call(1, 150, 250)])
    assert format_call(out[0]) == "1 alpha+0x32 <- beta+0x32"

    from qfs.resolver import SymbolTable

    only_alpha = SymbolTable([(100, Symbol("alpha"))])
    out = symbolize_calls(only_alpha, [make_call(0, 100, 100)])
    assert format_all_calls(out) == ["0 alpha <- alpha"]


def test_write_to_file(tmp_path):
    sym = ResolvedSymbol(address=5, base=5, symbol=Symbol("x"))
    calls = [SymbolizedCall(0, sym, sym), SymbolizedCall(1, sym, Unresolved(1))]
    p = tmp_path / "out.txt"
    write_formatted_calls_to_file(calls, p)
    assert p.read_text() == "0 x <- x\n1 x <- 0x1\n"


class _FailingFile:
    """File wrapper whose second write() fails like a full disk."""

    def __init__(self, f):
        self._f = f
        self.writes = 0

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self._f.close()
        return False

    def write(self, data):
        self.writes += 1
        if self.writes > 1:
            raise OSError(errno.ENOSPC, "No space left on device")
        return self._f.write(data)


def test_failed_write_keeps_existing_file(tmp_path, monkeypatch):
    real_fdopen = os.fdopen
    monkeypatch.setattr(os, "fdopen", lambda *a, **kw: _FailingFile(real_fdopen(*a, **kw)))

    sym = ResolvedSymbol(address=5, base=5, symbol=Symbol("x"))
    calls = [SymbolizedCall(i, sym, sym) for i in range(3)]
    p = tmp_path / "out.txt"
    p.write_text("previous run\n")

    with pytest.raises(OSError):
        write_formatted_calls_to_file(calls, p)

    assert p.read_text() == "previous run\n"
    assert sorted(tmp_path.iterdir()) == [p]


def test_write_replaces_existing_file(tmp_path):
    sym = ResolvedSymbol(address=5, base=5, symbol=Symbol("x"))
    p = tmp_path / "out.txt"
    p.write_text("stale\n")
    write_formatted_calls_to_file([SymbolizedCall(7, sym, sym)], p)
    assert p.read_text() == "7 x <- x\n"
    assert sorted(tmp_path.iterdir()) == [p]

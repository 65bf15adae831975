#!/usr/bin/env python3
"""
parser.py

Symbol table and ftrace log parser for QFS.

Responsibilities:
  - Parse kallsyms-style symbol listings into a SymbolTable:
        "ffffffff81012340 T do_fork"
        "ffffffffa0003f30 t floppy_interrupt\t[floppy]"
  - Parse function-trace records into CallRecord objects:
        "2 ffffffff81012340 ffffffff81099000"
    (cpu, callee address, call-site address; anything after the third
    field is ignored, pstore appends rendered symbols there).
  - Load both from files, wrapping OS errors as IOFailure.

Notes:
  - Parsing is strict. The first line that does not match the grammar
    raises, and nothing is returned for that file.
  - The symbol type letter is checked but not kept.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Tuple

from qfs.errors import (
    InvalidAddress,
    InvalidNumericField,
    IOFailure,
    MalformedSymbolLine,
    MalformedTraceLine,
)
from qfs.resolver import U64_MAX, Symbol, SymbolTable


LOG = logging.getLogger("parser")

U32_MAX = (1 << 32) - 1


# ---------------------------------------------------------------------------
# Regexes
# ---------------------------------------------------------------------------

# Symbol line:
#   "<addr> <type> <name>" with an optional "[module]" tag.
# The address is captured loosely so that non-hex content is reported as
# InvalidAddress rather than as a grammar mismatch.
SYMBOL_LINE_RE = re.compile(
    r"""
    ^\s*
    (?P<addr>\S+)               # address (hex)
    \s+
    (?P<type>[A-Za-z])          # symbol type letter
    \s+
    (?P<name>[^\s\[\]]+)        # symbol name
    (?:\s+\[(?P<module>[^\s\[\]]+)\])?   # optional module
    \s*$
    """,
    re.VERBOSE,
)

# Trace line:
#   "<cpu> <to> <from> [anything]"
TRACE_LINE_RE = re.compile(
    r"""
    ^\s*
    (?P<cpu>\S+)                # CPU index (decimal)
    \s+
    (?P<to>\S+)                 # callee address (hex)
    \s+
    (?P<from>\S+)               # call-site address (hex)
    (?:\s.*)?$
    """,
    re.VERBOSE,
)

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_DEC_RE = re.compile(r"^[0-9]+$")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CallRecord:
    """
    Single traced function call.

    Fields:
        cpu:       CPU index the call was recorded on.
        to_addr:   Callee address.
        from_addr: Call-site address.
        line_no:   1-based line in the trace file (diagnostics only).
    """
    cpu: int
    to_addr: int
    from_addr: int
    line_no: int = 0


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _parse_hex(field: str) -> int:
    """
    Parse plain hex digits into an unsigned 64-bit value.

    int(x, 16) alone would also take "0x", signs and underscores, which
    never appear in kallsyms or trace output.
    """
    if not _HEX_RE.match(field):
        raise ValueError(field)
    value = int(field, 16)
    if value > U64_MAX:
        raise ValueError(field)
    return value


def parse_symbol_line(line: str, line_no: int = 0) -> Tuple[int, Symbol]:
    """
    Parse one symbol table line.

    Returns:
        (address, Symbol)

    Raises:
        MalformedSymbolLine: line does not match the grammar.
        InvalidAddress:      address field is not a u64 hex value.
    """
    text = line.rstrip("\r\n")
    m = SYMBOL_LINE_RE.match(text)
    if not m:
        raise MalformedSymbolLine(line_no, text)

    addr_str = m.group("addr")
    try:
        addr = _parse_hex(addr_str)
    except ValueError:
        raise InvalidAddress(line_no, text, addr_str) from None

    return addr, Symbol(name=m.group("name"), module=m.group("module"))


def parse_trace_line(line: str, line_no: int = 0) -> CallRecord:
    """
    Parse one trace line.

    Raises:
        MalformedTraceLine:  fewer than three fields.
        InvalidNumericField: CPU not decimal, or an address not hex.
    """
    text = line.rstrip("\r\n")
    m = TRACE_LINE_RE.match(text)
    if not m:
        raise MalformedTraceLine(line_no, text)

    cpu_str = m.group("cpu")
    if not _DEC_RE.match(cpu_str) or int(cpu_str) > U32_MAX:
        raise InvalidNumericField(line_no, text, cpu_str, "CPU")

    addrs: List[int] = []
    for field in (m.group("to"), m.group("from")):
        try:
            addrs.append(_parse_hex(field))
        except ValueError:
            raise InvalidNumericField(line_no, text, field, "address") from None

    return CallRecord(
        cpu=int(cpu_str),
        to_addr=addrs[0],
        from_addr=addrs[1],
        line_no=line_no,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_symbol_lines(lines: Iterable[str]) -> SymbolTable:
    """
    Build a SymbolTable from symbol table lines.

    The table is only returned once every line parsed; the first bad line
    raises and no partial table escapes.
    """
    entries = [
        parse_symbol_line(line, line_no)
        for line_no, line in enumerate(lines, start=1)
    ]
    return SymbolTable(entries)


def parse_trace_lines(lines: Iterable[str]) -> List[CallRecord]:
    """
    Parse trace lines into CallRecords, preserving input order.
    """
    return [
        parse_trace_line(line, line_no)
        for line_no, line in enumerate(lines, start=1)
    ]


def _is_elf(path: Path) -> bool:
    """Return True if file at path looks like an ELF (checks magic bytes)."""
    try:
        with path.open("rb") as f:
            magic = f.read(4)
    except OSError as e:
        raise IOFailure(str(path), e.strerror or str(e)) from e
    return magic == b"\x7fELF"


def load_symbol_table(path: Path) -> SymbolTable:
    """
    Load a symbol table from a kallsyms-style listing or an ELF image.
    """
    LOG.info("Reading symbol table from %s", path)

    if _is_elf(path):
        from qfs.elf_symbols import load_elf_symbols

        table = load_elf_symbols(path)
    else:
        try:
            with path.open("r", encoding="utf-8", errors="replace") as f:
                table = parse_symbol_lines(f)
        except OSError as e:
            raise IOFailure(str(path), e.strerror or str(e)) from e

    LOG.info("Loaded %d symbols from %s", len(table), path)
    return table


def load_trace(path: Path) -> List[CallRecord]:
    """
    Load all call records from a trace file.
    """
    LOG.info("Reading ftrace from %s", path)
    try:
        with path.open("r", encoding="utf-8", errors="replace") as f:
            calls = parse_trace_lines(f)
    except OSError as e:
        raise IOFailure(str(path), e.strerror or str(e)) from e

    LOG.info("Parsed %d call records from %s", len(calls), path)
    return calls


__all__ = [
    "CallRecord",
    "parse_symbol_line",
    "parse_trace_line",
    "parse_symbol_lines",
    "parse_trace_lines",
    "load_symbol_table",
    "load_trace",
]

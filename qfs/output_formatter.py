#!/usr/bin/env python3
"""
output_formatter.py

Formatting utilities for QFS.

Line format, one per trace record:

    <cpu> <to-symbol>[+0x<offset>] <- <from-symbol>[+0x<offset>]

Rules:
  - A symbol with a module is rendered "name[module]".
  - "+0x<offset>" is appended only for a non-zero offset, in lowercase hex
    without leading zeros.
  - An unresolved endpoint (lenient mode only) is rendered as its raw
    address, "0x<hex>".
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterable, List

from qfs.resolver import Symbol
from qfs.symbolizer import Resolution, SymbolizedCall, Unresolved


def format_symbol(sym: Symbol) -> str:
    if sym.module:
        return f"{sym.name}[{sym.module}]"
    return sym.name


def format_resolved(res: Resolution) -> str:
    """
    Render one endpoint: "name[module]+0xOFF", "name" or "0xADDR".
    """
    if isinstance(res, Unresolved):
        return f"0x{res.address:x}"
    if res.offset > 0:
        return f"{format_symbol(res.symbol)}+0x{res.offset:x}"
    return format_symbol(res.symbol)


def format_call(call: SymbolizedCall) -> str:
    return f"{call.cpu} {format_resolved(call.to)} <- {format_resolved(call.from_)}"


def format_all_calls(calls: Iterable[SymbolizedCall]) -> List[str]:
    """
    Format a collection of SymbolizedCall objects into one list of lines.
    """
    return [format_call(c) for c in calls]


def write_formatted_calls_to_file(
    calls: Iterable[SymbolizedCall],
    path: Path,
    encoding: str = "utf-8",
) -> None:
    """
    Format calls and write them to a file, one line per call.

    Lines go to a temporary file next to path that replaces path only once
    fully written; on error path is left untouched.
    """
    lines = format_all_calls(calls)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            for line in lines:
                f.write(line + "\n")
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


__all__ = [
    "format_symbol",
    "format_resolved",
    "format_call",
    "format_all_calls",
    "write_formatted_calls_to_file",
]

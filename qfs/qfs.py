#!/usr/bin/env python3
"""
qfs.py

Main entry point for the Quick Ftrace Symbolizer (QFS).

Responsibilities:
  - Load the kernel symbol table (kallsyms listing or ELF image) via parser.py
  - Load the function-trace records via parser.py
  - Symbolize every record via symbolizer.py
  - Print (or write) one line per record via output_formatter.py
  - Provide CLI interface

Usage examples:

  # kallsyms dump + pstore ftrace log, result on stdout
  qfs ./kallsyms ./ftrace-ramoops-0

  # symbols straight from vmlinux, 4 worker threads, result to a file
  qfs --workers 4 --output ./trace.txt ./vmlinux ./ftrace-ramoops-0

  # statistics only
  qfs --summary ./kallsyms ./ftrace-ramoops-0
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from qfs.errors import IOFailure, QfsError
from qfs.output_formatter import (
    format_all_calls,
    write_formatted_calls_to_file,
)
from qfs.parser import CallRecord, load_symbol_table, load_trace
from qfs.resolver import SymbolTable
from qfs.symbolizer import symbolize_calls


LOG = logging.getLogger("qfs")


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------

def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="qfs",
        description="Quick Ftrace Symbolizer (QFS) - resolve function-trace addresses to kernel symbols.",
    )
    p.add_argument(
        "symbols",
        metavar="SYMBOL_TABLE",
        help="Kernel symbol table: /proc/kallsyms dump or an ELF image such as vmlinux.",
    )
    p.add_argument(
        "trace",
        metavar="TRACE",
        help="Function trace file with '<cpu> <to-hex> <from-hex>' lines.",
    )
    p.add_argument(
        "--output",
        help="Write symbolized lines to this file instead of stdout.",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=1,
        help=(
            "Number of worker threads for address resolution (default: 1). "
            "Lookups are pure Python, so threads keep output order but do not "
            "speed the run up."
        ),
    )
    p.add_argument(
        "--keep-unresolved",
        action="store_true",
        help=(
            "Print the raw address for addresses below the lowest symbol "
            "instead of aborting the run."
        ),
    )
    p.add_argument(
        "--summary",
        action="store_true",
        help="Print symbol table / trace statistics only (no symbolization).",
    )
    p.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    return p


def print_summary(table: SymbolTable, calls: List[CallRecord]) -> None:
    print(f"symbols\t{len(table)}")
    if len(table):
        print(f"range\t0x{table.lowest:x}-0x{table.highest:x}")
    modules = table.modules()
    for module in sorted(modules, key=lambda m: (m is not None, m or "")):
        label = "[vmlinux]" if module is None else f"[{module}]"
        print(f"module\t{label}\t{modules[module]}")
    print(f"records\t{len(calls)}")
    cpus = sorted({c.cpu for c in calls})
    print(f"cpus\t{','.join(str(c) for c in cpus)}")


def run_symbolization(
    symbols_path: Path,
    trace_path: Path,
    workers: int,
    strict: bool,
    output: Optional[str],
    summary: bool = False,
) -> None:
    table = load_symbol_table(symbols_path)
    calls = load_trace(trace_path)

    if summary:
        print_summary(table, calls)
        return

    if not calls:
        LOG.warning("No call records found in %s", trace_path)

    # Everything is resolved before the first line goes out, so a failing
    # run never leaves partial output behind.
    sym_calls = symbolize_calls(table, calls, strict=strict, workers=workers)

    if output:
        out_path = Path(output)
        LOG.info("Writing symbolized calls to: %s", out_path)
        try:
            write_formatted_calls_to_file(sym_calls, out_path)
        except OSError as e:
            raise IOFailure(str(out_path), e.strerror or str(e)) from e
        return

    lines = format_all_calls(sym_calls)
    if lines:
        print("\n".join(lines))


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> None:
    args = build_argparser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    if args.workers < 1:
        LOG.error("--workers must be at least 1, got %d", args.workers)
        raise SystemExit(1)

    try:
        run_symbolization(
            symbols_path=Path(args.symbols),
            trace_path=Path(args.trace),
            workers=args.workers,
            strict=not args.keep_unresolved,
            output=args.output,
            summary=args.summary,
        )
    except QfsError as e:
        LOG.error("%s", e)
        raise SystemExit(1)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
symbolizer.py

Symbolization workflow for QFS.

Responsibilities:
  - Take parsed CallRecord objects and a built SymbolTable.
  - Resolve both endpoints (callee and call site) of every record.
  - Keep output order identical to trace order.
  - Optional thread-level parallelism across contiguous chunks of records.
    Chunks are stitched back together by index, so results never reorder.
    Lookups hold the GIL, so the pool does not make resolution faster.

Unresolved policy:
  - strict (default): the first address below the lowest symbol raises
    UnresolvedAddress and the whole run aborts.
  - lenient: an Unresolved placeholder is kept in place of the symbol,
    rendered as the raw address by the output formatter.

This module does NOT parse files or print anything.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union

from qfs.errors import UnresolvedAddress
from qfs.parser import CallRecord
from qfs.resolver import ResolvedSymbol, SymbolTable, resolve


LOG = logging.getLogger("symbolizer")

# Inputs at or below this many records are resolved without a pool.
MIN_CHUNK = 1024


@dataclass(frozen=True)
class Unresolved:
    """
    Placeholder for an address with no symbol at or below it.
    """
    address: int


Resolution = Union[ResolvedSymbol, Unresolved]


@dataclass(frozen=True)
class SymbolizedCall:
    """
    Correlated output unit for one CallRecord.
    """
    cpu: int
    to: Resolution
    from_: Resolution
    line_no: int = 0


def _resolve_endpoint(
    table: SymbolTable,
    address: int,
    line_no: int,
    strict: bool,
) -> Resolution:
    res = resolve(table, address)
    if res is not None:
        return res
    if strict:
        raise UnresolvedAddress(address, line_no)
    LOG.warning("No symbol for 0x%x (trace line %d); keeping raw address", address, line_no)
    return Unresolved(address)


def symbolize_call(
    table: SymbolTable,
    call: CallRecord,
    strict: bool = True,
) -> SymbolizedCall:
    """
    Resolve both endpoints of a single CallRecord.
    """
    return SymbolizedCall(
        cpu=call.cpu,
        to=_resolve_endpoint(table, call.to_addr, call.line_no, strict),
        from_=_resolve_endpoint(table, call.from_addr, call.line_no, strict),
        line_no=call.line_no,
    )


def iter_symbolized(
    table: SymbolTable,
    calls: Iterable[CallRecord],
    strict: bool = True,
) -> Iterator[SymbolizedCall]:
    """
    Streaming, sequential form of the pipeline.
    """
    for call in calls:
        yield symbolize_call(table, call, strict)


def _symbolize_chunk(
    table: SymbolTable,
    calls: Sequence[CallRecord],
    strict: bool,
) -> List[SymbolizedCall]:
    return [symbolize_call(table, call, strict) for call in calls]


def symbolize_calls(
    table: SymbolTable,
    calls: Sequence[CallRecord],
    strict: bool = True,
    workers: int = 1,
) -> List[SymbolizedCall]:
    """
    Symbolize all CallRecords, returning results in input order.

    With workers > 1 the records are cut into contiguous chunks that are
    resolved on a thread pool; the table is read-only so no locking is
    needed. In strict mode the error raised is the one for the earliest
    failing record, as in a sequential run.
    """
    max_workers = max(1, workers)
    if max_workers == 1 or len(calls) <= MIN_CHUNK:
        return list(iter_symbolized(table, calls, strict))

    chunk_size = max(MIN_CHUNK, -(-len(calls) // max_workers))
    chunks = [calls[i:i + chunk_size] for i in range(0, len(calls), chunk_size)]
    LOG.debug(
        "Symbolizing %d records in %d chunks with %d workers",
        len(calls),
        len(chunks),
        max_workers,
    )

    results: List[Optional[List[SymbolizedCall]]] = [None] * len(chunks)
    errors: Dict[int, UnresolvedAddress] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as ex:
        fut_map = {
            ex.submit(_symbolize_chunk, table, chunk, strict): c_idx
            for c_idx, chunk in enumerate(chunks)
        }
        for fut in as_completed(fut_map):
            c_idx = fut_map[fut]
            try:
                results[c_idx] = fut.result()
            except UnresolvedAddress as e:
                errors[c_idx] = e

    if errors:
        raise errors[min(errors)]

    out: List[SymbolizedCall] = []
    for chunk_result in results:
        out.extend(chunk_result)  # type: ignore[arg-type]
    return out


__all__ = [
    "Unresolved",
    "Resolution",
    "SymbolizedCall",
    "symbolize_call",
    "iter_symbolized",
    "symbolize_calls",
]

#!/usr/bin/env python3
"""
resolver.py

Ordered symbol table and nearest-floor address resolution.

The table is built once from (address, Symbol) pairs and never mutated.
Lookups use bisect over a sorted address list, so each resolve() costs
O(log n) comparisons no matter how large the kernel symbol table is.
Because nothing is written after construction, resolve() can be called
from several threads without locking.
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


LOG = logging.getLogger("resolver")

U64_MAX = (1 << 64) - 1


@dataclass(frozen=True)
class Symbol:
    """
    Symbol identity as listed in the symbol table.

    Fields:
        name:   Symbol name, e.g. "do_fork".
        module: Owning module from a "[module]" tag, or None for vmlinux.
    """
    name: str
    module: Optional[str] = None


@dataclass(frozen=True)
class ResolvedSymbol:
    """
    Result of a floor lookup.

    Fields:
        address: The queried address.
        base:    Address of the matched table entry (its key).
        symbol:  The matched Symbol.

    No table key lies in (base, address].
    """
    address: int
    base: int
    symbol: Symbol

    @property
    def offset(self) -> int:
        return self.address - self.base


class SymbolTable:
    """
    Immutable ordered mapping of load address -> Symbol.

    When the same address appears more than once in the input, the last
    one wins.
    """

    def __init__(self, entries: Iterable[Tuple[int, Symbol]] = ()) -> None:
        by_addr: Dict[int, Symbol] = {}
        for addr, sym in entries:
            if addr in by_addr:
                LOG.debug(
                    "Duplicate address 0x%x: %s replaces %s",
                    addr,
                    sym.name,
                    by_addr[addr].name,
                )
            by_addr[addr] = sym

        self._addrs: List[int] = sorted(by_addr)
        self._syms: List[Symbol] = [by_addr[a] for a in self._addrs]

    def __len__(self) -> int:
        return len(self._addrs)

    def __contains__(self, addr: object) -> bool:
        if not isinstance(addr, int):
            return False
        i = bisect_right(self._addrs, addr)
        return i > 0 and self._addrs[i - 1] == addr

    def __getitem__(self, addr: int) -> Symbol:
        i = bisect_right(self._addrs, addr)
        if i == 0 or self._addrs[i - 1] != addr:
            raise KeyError(addr)
        return self._syms[i - 1]

    def __iter__(self) -> Iterator[Tuple[int, Symbol]]:
        return iter(zip(self._addrs, self._syms))

    def __repr__(self) -> str:
        return f"SymbolTable({len(self)} symbols)"

    @property
    def lowest(self) -> Optional[int]:
        return self._addrs[0] if self._addrs else None

    @property
    def highest(self) -> Optional[int]:
        return self._addrs[-1] if self._addrs else None

    def modules(self) -> Dict[Optional[str], int]:
        """Symbol count per module (None = built into the kernel image)."""
        counts: Dict[Optional[str], int] = {}
        for sym in self._syms:
            counts[sym.module] = counts.get(sym.module, 0) + 1
        return counts

    def floor(self, address: int) -> Optional[Tuple[int, Symbol]]:
        """
        Return (key, symbol) for the greatest key <= address, or None
        when address is below every key.
        """
        i = bisect_right(self._addrs, address)
        if not i:
            return None
        return self._addrs[i - 1], self._syms[i - 1]


def resolve(table: SymbolTable, address: int) -> Optional[ResolvedSymbol]:
    """
    Find the symbol enclosing address.

    Returns:
        ResolvedSymbol with the byte offset from the symbol start, or None
        if address lies below the lowest symbol. Callers decide whether a
        miss is fatal.
    """
    hit = table.floor(address)
    if hit is None:
        return None
    base, sym = hit
    return ResolvedSymbol(address=address, base=base, symbol=sym)


__all__ = [
    "U64_MAX",
    "Symbol",
    "ResolvedSymbol",
    "SymbolTable",
    "resolve",
]

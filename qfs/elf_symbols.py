#!/usr/bin/env python3
"""
elf_symbols.py

Build a SymbolTable straight from an ELF image (typically vmlinux) using
pyelftools, for when no kallsyms dump is at hand.

Only symbols that name a location are kept: undefined symbols,
section/file markers, local labels and mapping symbols are skipped.
Module tags are never set here since an ELF image is a single module.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Tuple

from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile

from qfs.errors import IOFailure
from qfs.resolver import Symbol, SymbolTable


LOG = logging.getLogger("elf_symbols")

_SKIP_TYPES = ("STT_SECTION", "STT_FILE")

# Compiler-local labels and ARM mapping symbols ($x, $d, $a, $t); kallsyms
# never lists them.
_SKIP_PREFIXES = (".L", "$")


def symbols_from_section(symbols: Iterable) -> List[Tuple[int, Symbol]]:
    """
    Convert pyelftools symbol objects into (address, Symbol) pairs.
    """
    out: List[Tuple[int, Symbol]] = []
    for sym in symbols:
        if not sym.name:
            continue
        if sym.name.startswith(_SKIP_PREFIXES):
            continue
        if sym["st_shndx"] == "SHN_UNDEF":
            continue
        if sym["st_info"]["type"] in _SKIP_TYPES:
            continue
        out.append((sym["st_value"], Symbol(name=sym.name)))
    return out


def load_elf_symbols(path: Path) -> SymbolTable:
    """
    Read .symtab (or .dynsym when stripped) from an ELF file.

    Raises:
        IOFailure: file unreadable, not a valid ELF, or without symbols.
    """
    try:
        with path.open("rb") as f:
            elf = ELFFile(f)
            section = elf.get_section_by_name(".symtab")
            if section is None:
                LOG.warning("%s has no .symtab; falling back to .dynsym", path)
                section = elf.get_section_by_name(".dynsym")
            if section is None:
                raise IOFailure(str(path), "no symbol table section in ELF")
            entries = symbols_from_section(section.iter_symbols())
    except OSError as e:
        raise IOFailure(str(path), e.strerror or str(e)) from e
    except ELFError as e:
        raise IOFailure(str(path), f"invalid ELF: {e}") from e

    LOG.debug("Collected %d symbols from %s in %s", len(entries), section.name, path)
    return SymbolTable(entries)


__all__ = [
    "symbols_from_section",
    "load_elf_symbols",
]

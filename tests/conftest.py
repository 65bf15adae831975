from pathlib import Path

import pytest

from qfs.parser import CallRecord
from qfs.resolver import Symbol, SymbolTable


KALLSYMS = """\
ffffffff81000000 T _text
ffffffff81012340 T do_fork
ffffffff81012400 t copy_process
ffffffff81099000 T sys_clone
ffffffffa0003f30 t floppy_interrupt\t[floppy]
ffffffffa0007bfe t cleanup_module\t[floppy]
"""

TRACE = """\
2 ffffffff81012340 ffffffff81099000
0 ffffffff81012410 ffffffff81012344
1 ffffffffa0003f40 ffffffff81000000
"""


@pytest.fixture
def kallsyms_file(tmp_path: Path) -> Path:
    p = tmp_path / "kallsyms"
    p.write_text(KALLSYMS)
    return p


@pytest.fixture
def trace_file(tmp_path: Path) -> Path:
    p = tmp_path / "ftrace"
    p.write_text(TRACE)
    return p


@pytest.fixture
def small_table() -> SymbolTable:
    return SymbolTable([(100, Symbol("alpha")), (200, Symbol("beta"))])


@pytest.fixture
def make_call():
    def _make(cpu, to_addr, from_addr, line_no=1):
        return CallRecord(cpu=cpu, to_addr=to_addr, from_addr=from_addr, line_no=line_no)
    return _make

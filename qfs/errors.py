#!/usr/bin/env python3
"""
errors.py

Exception types for QFS.

Every error is terminal for the run: library code raises, and only the
CLI (qfs.py) catches QfsError to log it and exit non-zero.
"""

from __future__ import annotations

from typing import Optional


class QfsError(Exception):
    """
    Base class for all QFS errors.

    Fields:
        stage:   Pipeline stage that failed ("symbol table", "trace", ...).
        line_no: 1-based input line number, if the error is tied to a line.
        line:    Offending input line (without trailing newline), if any.
    """

    stage = "qfs"

    def __init__(
        self,
        message: str,
        line_no: Optional[int] = None,
        line: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line_no = line_no
        self.line = line

    def __str__(self) -> str:
        s = f"{self.stage}: {self.message}"
        if self.line_no is not None:
            s += f" (line {self.line_no})"
        if self.line is not None:
            s += f": {self.line!r}"
        return s


# ---------------------------------------------------------------------------
# Parsing errors
# ---------------------------------------------------------------------------

class MalformedSymbolLine(QfsError):
    stage = "symbol table"

    def __init__(self, line_no: int, line: str) -> None:
        super().__init__("symbol line not matched", line_no, line)


class InvalidAddress(QfsError):
    stage = "symbol table"

    def __init__(self, line_no: int, line: str, field: str) -> None:
        super().__init__(f"failed to parse address {field!r}", line_no, line)
        self.field = field


class MalformedTraceLine(QfsError):
    stage = "trace"

    def __init__(self, line_no: int, line: str) -> None:
        super().__init__("trace line not matched", line_no, line)


class InvalidNumericField(QfsError):
    stage = "trace"

    def __init__(self, line_no: int, line: str, field: str, kind: str) -> None:
        super().__init__(f"failed to parse {kind} {field!r}", line_no, line)
        self.field = field
        self.kind = kind


# ---------------------------------------------------------------------------
# I/O and lookup errors
# ---------------------------------------------------------------------------

class IOFailure(QfsError):
    stage = "io"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"cannot read {path}: {reason}")
        self.path = path
        self.reason = reason


class UnresolvedAddress(QfsError):
    stage = "resolve"

    def __init__(self, address: int, line_no: Optional[int] = None) -> None:
        super().__init__(f"no symbol at or below 0x{address:x}", line_no)
        self.address = address


__all__ = [
    "QfsError",
    "MalformedSymbolLine",
    "InvalidAddress",
    "MalformedTraceLine",
    "InvalidNumericField",
    "IOFailure",
    "UnresolvedAddress",
]

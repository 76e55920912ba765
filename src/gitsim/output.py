"""Collector for display lines produced by a handler."""

from __future__ import annotations

from .models import LineKind, OutputLine


class Output:
    """Ordered list of output lines, one method per line kind."""

    def __init__(self) -> None:
        self.lines: list[OutputLine] = []

    def emit(self, kind: LineKind, text: str) -> None:
        self.lines.append(OutputLine(kind=kind, text=text))

    def input(self, text: str) -> None:
        self.emit("input", text)

    def out(self, text: str) -> None:
        self.emit("output", text)

    def error(self, text: str) -> None:
        self.emit("error", text)

    def success(self, text: str) -> None:
        self.emit("success", text)

    def warning(self, text: str) -> None:
        self.emit("warning", text)

    def system(self, text: str) -> None:
        self.emit("system", text)

    def __len__(self) -> int:
        return len(self.lines)

"""Abstract base class for sandboxed code execution."""

from __future__ import annotations

from abc import ABC, abstractmethod

from roomsync.models.delivery import ExecutionResult


class CodeExecutor(ABC):
    """Runs a snapshot of the shared code document.

    The coordinator calls this outside the room lock and appends the result
    as a ``code_output`` event; execution itself is not part of the ordered
    stream.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def execute(self, language: str, source: str) -> ExecutionResult:
        """Run *source* and return its output."""
        ...

"""Mock code executor for testing."""

from __future__ import annotations

import asyncio

from roomsync.executor.base import CodeExecutor
from roomsync.models.delivery import ExecutionResult


class MockCodeExecutor(CodeExecutor):
    """Round-robin canned outputs, with an optional artificial delay."""

    def __init__(
        self,
        outputs: list[str] | None = None,
        *,
        delay: float = 0.0,
        exit_status: int = 0,
        error: Exception | None = None,
    ) -> None:
        self.outputs = outputs or ["Code executed successfully!"]
        self.calls: list[tuple[str, str]] = []
        self._delay = delay
        self._exit_status = exit_status
        self._error = error
        self._index = 0

    async def execute(self, language: str, source: str) -> ExecutionResult:
        self.calls.append((language, source))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        stdout = self.outputs[self._index % len(self.outputs)]
        self._index += 1
        return ExecutionResult(stdout=stdout, exit_status=self._exit_status)

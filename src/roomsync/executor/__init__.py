"""Code execution collaborators."""

from roomsync.executor.base import CodeExecutor
from roomsync.executor.mock import MockCodeExecutor

__all__ = ["CodeExecutor", "MockCodeExecutor"]

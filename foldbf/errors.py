from __future__ import annotations

from typing import Optional


class FoldBFError(Exception):
    """Base class for every error raised by foldbf."""


class InvalidCommand(FoldBFError, ValueError):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"Invalid command: {symbol!r}")
        self.symbol = symbol


class MalformedProgramError(FoldBFError):
    """Raised when a program's loop structure cannot be executed."""

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        super().__init__(message)
        self.index = index


class UnexpectedLoopEnd(MalformedProgramError):
    def __init__(self, index: int) -> None:
        super().__init__(f"Unexpected end of loop at instruction {index}", index)


class MissingLoopEnd(MalformedProgramError):
    def __init__(self, index: int) -> None:
        super().__init__(f"Missing end of loop for loop started at instruction {index}", index)


class MismatchedJumpTarget(MalformedProgramError):
    def __init__(self, index: int, target: Optional[int]) -> None:
        super().__init__(
            f"Loop boundary at instruction {index} points to invalid target {target}", index
        )
        self.target = target


class ExecutionIOError(FoldBFError):
    """Raised when the input or output stream fails during execution."""


class InputExhausted(ExecutionIOError):
    def __init__(self) -> None:
        super().__init__("Failed to read input: input stream is exhausted")


class StepLimitExceeded(FoldBFError, RuntimeError):
    """Raised when execution exceeds the configured step budget."""


__all__ = [
    "FoldBFError",
    "InvalidCommand",
    "MalformedProgramError",
    "UnexpectedLoopEnd",
    "MissingLoopEnd",
    "MismatchedJumpTarget",
    "ExecutionIOError",
    "InputExhausted",
    "StepLimitExceeded",
]

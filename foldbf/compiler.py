from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Union

from .commands import Command, decode_source, parse_commands
from .instructions import optimize_commands
from .program import OptimizedProgram, Program

logger = logging.getLogger(__name__)

AnyProgram = Union[Program, OptimizedProgram]


def unoptimized_compiler(commands: Iterable[Command]) -> Program:
    return Program(list(commands))


def optimized_compiler(commands: Iterable[Command]) -> OptimizedProgram:
    return OptimizedProgram(optimize_commands(commands))


def compile_source(source: str, optimize: bool = False) -> AnyProgram:
    commands = parse_commands(source)
    logger.debug("decoded %d commands (optimize=%s)", len(commands), optimize)
    if optimize:
        return optimized_compiler(commands)
    return unoptimized_compiler(commands)


def read_source(path: Union[str, Path]) -> str:
    source_path = Path(path)
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {path}")
    return decode_source(source_path.read_bytes())


__all__ = [
    "AnyProgram",
    "compile_source",
    "optimized_compiler",
    "read_source",
    "unoptimized_compiler",
]

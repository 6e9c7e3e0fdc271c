from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from .commands import Command
from .errors import UnexpectedLoopEnd

logger = logging.getLogger(__name__)

POINTER_COUNT_MAX = sys.maxsize
VALUE_COUNT_MAX = 255


# === Instruction variants ===


@dataclass(frozen=True)
class AddPointer:
    count: int

    def __post_init__(self) -> None:
        _check_count(self.count, POINTER_COUNT_MAX)

    @property
    def mnemonic(self) -> str:
        return f"AddPointer({self.count})"


@dataclass(frozen=True)
class SubtractPointer:
    count: int

    def __post_init__(self) -> None:
        _check_count(self.count, POINTER_COUNT_MAX)

    @property
    def mnemonic(self) -> str:
        return f"SubtractPointer({self.count})"


@dataclass(frozen=True)
class AddValue:
    count: int

    def __post_init__(self) -> None:
        _check_count(self.count, VALUE_COUNT_MAX)

    @property
    def mnemonic(self) -> str:
        return f"AddValue({self.count})"


@dataclass(frozen=True)
class SubtractValue:
    count: int

    def __post_init__(self) -> None:
        _check_count(self.count, VALUE_COUNT_MAX)

    @property
    def mnemonic(self) -> str:
        return f"SubtractValue({self.count})"


@dataclass(frozen=True)
class Output:
    @property
    def mnemonic(self) -> str:
        return "Output"


@dataclass(frozen=True)
class Input:
    @property
    def mnemonic(self) -> str:
        return "Input"


@dataclass(frozen=True)
class LoopStart:
    # None until the matching LoopEnd has been seen
    end: Optional[int] = None

    @property
    def mnemonic(self) -> str:
        return f"LoopStart->{self.end if self.end is not None else '?'}"


@dataclass(frozen=True)
class LoopEnd:
    start: int

    @property
    def mnemonic(self) -> str:
        return f"LoopEnd->{self.start}"


Instruction = Union[
    AddPointer,
    SubtractPointer,
    AddValue,
    SubtractValue,
    Output,
    Input,
    LoopStart,
    LoopEnd,
]

Counted = Union[AddPointer, SubtractPointer, AddValue, SubtractValue]


def _check_count(count: int, maximum: int) -> None:
    if not 1 <= count <= maximum:
        raise ValueError(f"count must be between 1 and {maximum}, got {count}")


# === Optimizer ===

# command -> (kind it extends, kind it cancels, maximum count)
_FOLDS = {
    Command.INCREMENT_POINTER: (AddPointer, SubtractPointer, POINTER_COUNT_MAX),
    Command.DECREMENT_POINTER: (SubtractPointer, AddPointer, POINTER_COUNT_MAX),
    Command.INCREMENT_VALUE: (AddValue, SubtractValue, VALUE_COUNT_MAX),
    Command.DECREMENT_VALUE: (SubtractValue, AddValue, VALUE_COUNT_MAX),
}


class Optimizer:
    """Folds primitive commands into counted instructions with resolved loop targets.

    Runs of pointer moves and runs of value changes collapse into a single
    counted instruction; opposite directions cancel each other out. Loop starts
    are emitted as placeholders and back-patched once their matching end is
    reached, so execution never has to rescan for loop boundaries.
    """

    def optimize(self, commands: Iterable[Command]) -> List[Instruction]:
        self.output: List[Instruction] = []
        self.pending: Optional[Counted] = None
        self.open_loops: List[int] = []

        for command in commands:
            fold = _FOLDS.get(command)
            if fold is not None:
                self._fold(*fold)
            elif command is Command.OUTPUT:
                self._emit(Output())
            elif command is Command.INPUT:
                self._emit(Input())
            elif command is Command.LOOP_START:
                self._open_loop()
            elif command is Command.LOOP_END:
                self._close_loop()

        self._flush()
        logger.debug(
            "optimized program into %d instructions (%d unresolved loops)",
            len(self.output),
            len(self.open_loops),
        )
        return self.output

    def _fold(self, same: type, opposite: type, maximum: int) -> None:
        pending = self.pending
        if pending is None and self.output and isinstance(self.output[-1], (same, opposite)):
            # A run cancelled to nothing rejoins the run emitted before it
            pending = self.output.pop()
        if isinstance(pending, same):
            if pending.count < maximum:
                self.pending = same(pending.count + 1)
            else:
                self.output.append(pending)
                self.pending = same(1)
        elif isinstance(pending, opposite):
            self.pending = opposite(pending.count - 1) if pending.count > 1 else None
        else:
            self._flush()
            self.pending = same(1)

    def _flush(self) -> None:
        if self.pending is not None:
            self.output.append(self.pending)
            self.pending = None

    def _emit(self, instruction: Instruction) -> None:
        self._flush()
        self.output.append(instruction)

    def _open_loop(self) -> None:
        self._flush()
        self.open_loops.append(len(self.output))
        self.output.append(LoopStart())

    def _close_loop(self) -> None:
        self._flush()
        end = len(self.output)
        if not self.open_loops:
            raise UnexpectedLoopEnd(end)
        start = self.open_loops.pop()
        placeholder = self.output[start]
        if not isinstance(placeholder, LoopStart) or placeholder.end is not None:
            raise UnexpectedLoopEnd(end)
        self.output[start] = LoopStart(end=end)
        self.output.append(LoopEnd(start=start))


def optimize_commands(commands: Iterable[Command]) -> List[Instruction]:
    return Optimizer().optimize(commands)


# === Helpers ===

_EXPANSIONS = {
    AddPointer: Command.INCREMENT_POINTER,
    SubtractPointer: Command.DECREMENT_POINTER,
    AddValue: Command.INCREMENT_VALUE,
    SubtractValue: Command.DECREMENT_VALUE,
}


def expand_instructions(instructions: Iterable[Instruction]) -> List[Command]:
    """Decode optimized instructions back into the primitive commands they stand for."""
    commands: List[Command] = []
    for instruction in instructions:
        command = _EXPANSIONS.get(type(instruction))
        if command is not None:
            commands.extend([command] * instruction.count)
        elif isinstance(instruction, Output):
            commands.append(Command.OUTPUT)
        elif isinstance(instruction, Input):
            commands.append(Command.INPUT)
        elif isinstance(instruction, LoopStart):
            commands.append(Command.LOOP_START)
        elif isinstance(instruction, LoopEnd):
            commands.append(Command.LOOP_END)
    return commands


def disassemble(instructions: Iterable[Instruction]) -> str:
    lines = [f"{index:04d} {instruction.mnemonic}" for index, instruction in enumerate(instructions)]
    return "\n".join(lines)


__all__ = [
    "AddPointer",
    "SubtractPointer",
    "AddValue",
    "SubtractValue",
    "Output",
    "Input",
    "LoopStart",
    "LoopEnd",
    "Instruction",
    "Optimizer",
    "POINTER_COUNT_MAX",
    "VALUE_COUNT_MAX",
    "disassemble",
    "expand_instructions",
    "optimize_commands",
]

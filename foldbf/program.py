from __future__ import annotations

import io
import sys
from dataclasses import dataclass
from typing import BinaryIO, Callable, Generic, Iterable, Iterator, List, Optional, Sequence, TypeVar

from .commands import Command
from .errors import (
    ExecutionIOError,
    InputExhausted,
    MismatchedJumpTarget,
    MissingLoopEnd,
    StepLimitExceeded,
    UnexpectedLoopEnd,
)
from .instructions import (
    AddPointer,
    AddValue,
    Input,
    Instruction,
    LoopEnd,
    LoopStart,
    Output,
    SubtractPointer,
    SubtractValue,
)
from .tape import Tape

T = TypeVar("T")


@dataclass
class ExecutionState:
    step: int
    pc: int
    instruction: Optional[str]
    pointer: int
    tape_start: int
    tape: List[int]
    output: bytes
    code_length: int


def check_loop_balance(
    instructions: Sequence[T],
    is_start: Callable[[T], bool],
    is_end: Callable[[T], bool],
) -> None:
    """Reject programs whose loops do not open and close in pairs."""
    open_loops: List[int] = []
    for index, instruction in enumerate(instructions):
        if is_start(instruction):
            open_loops.append(index)
        elif is_end(instruction):
            if not open_loops:
                raise UnexpectedLoopEnd(index)
            open_loops.pop()
    if open_loops:
        raise MissingLoopEnd(open_loops[-1])


class BaseProgram(Generic[T]):
    """Instruction sequence plus the tape it runs against.

    The instruction sequence is validated once at construction and never
    changes afterwards. The tape is reset to a single zero cell at the start of
    every execution, so a program can be executed any number of times.
    """

    mnemonic_separator = " "

    def __init__(self, instructions: Iterable[T]) -> None:
        self.instructions = tuple(instructions)
        self.tape = Tape()
        self.steps_executed = 0
        self._check()

    def __len__(self) -> int:
        return len(self.instructions)

    def _check(self) -> None:
        raise NotImplementedError

    def _execute_instruction(self, pc: int, reader: BinaryIO, writer: BinaryIO) -> int:
        raise NotImplementedError

    def listing(self) -> List[str]:
        return [instruction.mnemonic for instruction in self.instructions]

    def execute(
        self,
        input_stream: Optional[BinaryIO] = None,
        output_stream: Optional[BinaryIO] = None,
        max_steps: Optional[int] = None,
    ) -> int:
        """Run the program to completion and return the number of executed instructions."""
        reader = input_stream if input_stream is not None else sys.stdin.buffer
        writer = output_stream if output_stream is not None else sys.stdout.buffer
        self.tape.reset()
        code_length = len(self.instructions)
        execute_instruction = self._execute_instruction
        pc = 0
        steps = 0

        try:
            while pc < code_length:
                if max_steps is not None and steps >= max_steps:
                    raise StepLimitExceeded("Program exceeded allowed step count")
                pc = execute_instruction(pc, reader, writer)
                steps += 1
        finally:
            self.steps_executed = steps

        try:
            writer.flush()
        except OSError as exc:
            raise ExecutionIOError(f"Failed to flush output: {exc}") from exc
        return steps

    def run(self, input_data: bytes = b"", max_steps: Optional[int] = None) -> bytes:
        output = io.BytesIO()
        self.execute(io.BytesIO(bytes(input_data)), output, max_steps=max_steps)
        return output.getvalue()

    def step(
        self,
        input_data: bytes = b"",
        max_steps: Optional[int] = None,
        tape_window: int = 10,
    ) -> Iterator[ExecutionState]:
        self.tape.reset()
        reader = io.BytesIO(bytes(input_data))
        writer = io.BytesIO()
        code_length = len(self.instructions)
        pc = 0
        steps = 0
        self.steps_executed = 0

        while pc < code_length:
            if max_steps is not None and steps >= max_steps:
                raise StepLimitExceeded("Program exceeded allowed step count")

            mnemonic = self.instructions[pc].mnemonic
            pc = self._execute_instruction(pc, reader, writer)
            steps += 1
            self.steps_executed = steps
            yield self._snapshot(pc, mnemonic, steps, writer, tape_window)

        # Final snapshot marks completion
        yield self._snapshot(pc, None, steps, writer, tape_window)

    def _snapshot(
        self,
        pc: int,
        mnemonic: Optional[str],
        step: int,
        writer: io.BytesIO,
        tape_window: int,
    ) -> ExecutionState:
        start, values = self.tape.window(tape_window)
        return ExecutionState(
            step=step,
            pc=pc,
            instruction=mnemonic,
            pointer=self.tape.pointer,
            tape_start=start,
            tape=values,
            output=writer.getvalue(),
            code_length=len(self.instructions),
        )

    def _input(self, reader: BinaryIO) -> None:
        try:
            data = reader.read(1)
        except OSError as exc:
            raise ExecutionIOError(f"Failed to read input: {exc}") from exc
        if not data:
            raise InputExhausted()
        self.tape.write(data[0])

    def _output(self, writer: BinaryIO) -> None:
        data = bytes((self.tape.read(),))
        try:
            # Zero or None means nothing was written yet
            while not writer.write(data):
                continue
        except OSError as exc:
            raise ExecutionIOError(f"Failed to print data: {exc}") from exc


class Program(BaseProgram[Command]):
    """Unoptimized program; loop jumps rescan the command sequence."""

    mnemonic_separator = ""

    def _check(self) -> None:
        check_loop_balance(
            self.instructions,
            lambda command: command is Command.LOOP_START,
            lambda command: command is Command.LOOP_END,
        )

    def _execute_instruction(self, pc: int, reader: BinaryIO, writer: BinaryIO) -> int:
        command = self.instructions[pc]
        tape = self.tape
        if command is Command.INCREMENT_POINTER:
            tape.move_right(1)
        elif command is Command.DECREMENT_POINTER:
            tape.move_left(1)
        elif command is Command.INCREMENT_VALUE:
            tape.add(1)
        elif command is Command.DECREMENT_VALUE:
            tape.subtract(1)
        elif command is Command.OUTPUT:
            self._output(writer)
        elif command is Command.INPUT:
            self._input(reader)
        elif command is Command.LOOP_START:
            if tape.read() == 0:
                pc = self._find_loop_end(pc)
        elif command is Command.LOOP_END:
            if tape.read() != 0:
                pc = self._find_loop_start(pc)
        return pc + 1

    def _find_loop_end(self, pc: int) -> int:
        depth = 1
        for index in range(pc + 1, len(self.instructions)):
            command = self.instructions[index]
            if command is Command.LOOP_START:
                depth += 1
            elif command is Command.LOOP_END:
                depth -= 1
                if depth == 0:
                    return index
        raise MissingLoopEnd(pc)

    def _find_loop_start(self, pc: int) -> int:
        depth = 1
        for index in range(pc - 1, -1, -1):
            command = self.instructions[index]
            if command is Command.LOOP_END:
                depth += 1
            elif command is Command.LOOP_START:
                depth -= 1
                if depth == 0:
                    return index
        raise UnexpectedLoopEnd(pc)


class OptimizedProgram(BaseProgram[Instruction]):
    """Folded program; loop jumps use the targets resolved by the optimizer."""

    def _check(self) -> None:
        check_loop_balance(
            self.instructions,
            lambda instruction: isinstance(instruction, LoopStart),
            lambda instruction: isinstance(instruction, LoopEnd),
        )
        instructions = self.instructions
        for index, instruction in enumerate(instructions):
            if isinstance(instruction, LoopStart):
                end = instruction.end
                if (
                    end is None
                    or not 0 <= end < len(instructions)
                    or not isinstance(instructions[end], LoopEnd)
                    or instructions[end].start != index
                ):
                    raise MismatchedJumpTarget(index, end)
            elif isinstance(instruction, LoopEnd):
                start = instruction.start
                if (
                    not 0 <= start < len(instructions)
                    or not isinstance(instructions[start], LoopStart)
                    or instructions[start].end != index
                ):
                    raise MismatchedJumpTarget(index, start)

    def _execute_instruction(self, pc: int, reader: BinaryIO, writer: BinaryIO) -> int:
        instruction = self.instructions[pc]
        kind = type(instruction)
        tape = self.tape
        if kind is AddPointer:
            tape.move_right(instruction.count)
        elif kind is SubtractPointer:
            tape.move_left(instruction.count)
        elif kind is AddValue:
            tape.add(instruction.count)
        elif kind is SubtractValue:
            tape.subtract(instruction.count)
        elif kind is Output:
            self._output(writer)
        elif kind is Input:
            self._input(reader)
        elif kind is LoopStart:
            if tape.read() == 0:
                pc = instruction.end
        elif kind is LoopEnd:
            if tape.read() != 0:
                pc = instruction.start
        return pc + 1


__all__ = [
    "BaseProgram",
    "ExecutionState",
    "OptimizedProgram",
    "Program",
    "check_loop_balance",
]

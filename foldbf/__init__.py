from .commands import Command, decode, parse_commands
from .compiler import compile_source, optimized_compiler, unoptimized_compiler
from .errors import (
    ExecutionIOError,
    FoldBFError,
    InputExhausted,
    InvalidCommand,
    MalformedProgramError,
    MismatchedJumpTarget,
    MissingLoopEnd,
    StepLimitExceeded,
    UnexpectedLoopEnd,
)
from .instructions import (
    AddPointer,
    AddValue,
    Input,
    LoopEnd,
    LoopStart,
    Output,
    SubtractPointer,
    SubtractValue,
    expand_instructions,
    optimize_commands,
)
from .program import ExecutionState, OptimizedProgram, Program
from .tape import Tape
from .visualizer import VisualizerSession

__all__ = [
    "AddPointer",
    "AddValue",
    "Command",
    "ExecutionIOError",
    "ExecutionState",
    "FoldBFError",
    "Input",
    "InputExhausted",
    "InvalidCommand",
    "LoopEnd",
    "LoopStart",
    "MalformedProgramError",
    "MismatchedJumpTarget",
    "MissingLoopEnd",
    "OptimizedProgram",
    "Output",
    "Program",
    "StepLimitExceeded",
    "SubtractPointer",
    "SubtractValue",
    "Tape",
    "UnexpectedLoopEnd",
    "VisualizerSession",
    "compile_source",
    "decode",
    "expand_instructions",
    "optimize_commands",
    "optimized_compiler",
    "parse_commands",
    "unoptimized_compiler",
]

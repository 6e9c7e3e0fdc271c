from __future__ import annotations

import argparse
import io
import logging
import sys
from typing import BinaryIO, Optional

from .commands import render_commands
from .compiler import compile_source, read_source
from .errors import ExecutionIOError, MalformedProgramError, StepLimitExceeded
from .instructions import disassemble
from .program import OptimizedProgram


def _write_listing(stream: BinaryIO, text: str) -> None:
    if text and not text.endswith("\n"):
        text += "\n"
    stream.write(text.encode("utf-8"))
    stream.flush()


def main(
    argv: Optional[list[str]] = None,
    *,
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[BinaryIO] = None,
) -> int:
    parser = argparse.ArgumentParser(description="foldbf interpreter")
    parser.add_argument("source", help="Path to the program source file")
    parser.add_argument(
        "-O",
        "--optimize",
        action="store_true",
        help="Fold repeated commands and precompute loop jumps before running",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print the compiled instruction listing instead of running the program",
    )
    parser.add_argument(
        "--input",
        help="Input bytes for the program (default: read from stdin)",
        default=None,
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=None,
        help="Abort after this many executed instructions (default: unlimited)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    output_stream = stdout if stdout is not None else sys.stdout.buffer

    try:
        source_text = read_source(args.source)
    except OSError as exc:
        print(f"Cannot read source: {exc}", file=sys.stderr)
        return 1

    try:
        program = compile_source(source_text, optimize=args.optimize)
    except MalformedProgramError as exc:
        print(f"Malformed program: {exc}", file=sys.stderr)
        return 1

    if args.dump:
        if isinstance(program, OptimizedProgram):
            listing = disassemble(program.instructions)
        else:
            listing = render_commands(program.instructions)
        _write_listing(output_stream, listing)
        return 0

    if args.input is not None:
        input_stream: BinaryIO = io.BytesIO(args.input.encode("utf-8"))
    else:
        input_stream = stdin if stdin is not None else sys.stdin.buffer

    try:
        program.execute(input_stream, output_stream, max_steps=args.max_steps)
    except ExecutionIOError as exc:
        print(f"I/O error: {exc}", file=sys.stderr)
        return 1
    except StepLimitExceeded as exc:
        print(str(exc), file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import argparse
import shlex
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .compiler import AnyProgram, compile_source, read_source
from .errors import ExecutionIOError, MalformedProgramError, StepLimitExceeded
from .program import ExecutionState


def _to_input_bytes(data: str) -> bytes:
    return data.encode("utf-8")


@dataclass
class VisualizerSession:
    program: AnyProgram
    input_template: bytes = b""
    tape_window: int = 10
    max_steps: Optional[int] = None
    history_limit: int = 200
    source: Optional[str] = None

    def __post_init__(self) -> None:
        self.breakpoints: set[int] = set()
        self.history: List[ExecutionState] = []
        self.hit_breakpoint: Optional[int] = None
        self.listing = self.program.listing()
        self.restart()

    def restart(self) -> None:
        self.step_iter = self.program.step(
            self.input_template,
            max_steps=self.max_steps,
            tape_window=self.tape_window,
        )
        self.finished = False
        self.last_state = self._initial_state()
        self._record_state(self.last_state)

    def _initial_state(self) -> ExecutionState:
        # The program's tape is only reset once the generator starts
        return ExecutionState(
            step=0,
            pc=0,
            instruction=None,
            pointer=0,
            tape_start=0,
            tape=[0],
            output=b"",
            code_length=len(self.program),
        )

    def _record_state(self, state: ExecutionState) -> None:
        self.history.append(state)
        if len(self.history) > self.history_limit:
            del self.history[0]
        self.last_state = state

    def step_forward(self, count: int = 1) -> Sequence[ExecutionState]:
        states: List[ExecutionState] = []
        if count <= 0:
            return states
        self.hit_breakpoint = None
        for _ in range(count):
            if self.finished:
                break
            try:
                state = next(self.step_iter)
            except StopIteration:
                self.finished = True
                break
            except (StepLimitExceeded, ExecutionIOError):
                self.finished = True
                raise
            self._record_state(state)
            states.append(state)
            if state.instruction is None:
                self.finished = True
                break
            if state.pc in self.breakpoints:
                self.hit_breakpoint = state.pc
                break
        return states

    def run_until_break(self, limit: Optional[int] = None) -> Sequence[ExecutionState]:
        states: List[ExecutionState] = []
        while limit is None or len(states) < limit:
            step_states = self.step_forward(1)
            if not step_states:
                break
            states.extend(step_states)
            if self.hit_breakpoint is not None:
                break
        return states

    def current_state(self) -> ExecutionState:
        return self.last_state

    def add_breakpoint(self, pc: int) -> None:
        self.breakpoints.add(pc)

    def remove_breakpoint(self, pc: int) -> bool:
        if pc in self.breakpoints:
            self.breakpoints.remove(pc)
            return True
        return False

    def clear_breakpoints(self) -> None:
        self.breakpoints.clear()

    def list_breakpoints(self) -> List[int]:
        return sorted(self.breakpoints)

    def is_finished(self) -> bool:
        return self.finished


def format_state(state: ExecutionState, listing: Sequence[str], separator: str = "") -> str:
    lines: List[str] = []
    shown = state.instruction if state.instruction is not None else "(init)"
    lines.append(
        f"step={state.step} pc={state.pc}/{state.code_length} instruction={shown!r} pointer={state.pointer}"
    )
    if state.output:
        lines.append(f"output={state.output!r}")
    cells: List[str] = []
    for offset, value in enumerate(state.tape):
        index = state.tape_start + offset
        cell = f"{index}:{value:03}"
        cells.append(f"[{cell}]" if index == state.pointer else f" {cell} ")
    lines.append("tape=" + " ".join(cells))
    lines.append("code=" + _format_code_window(listing, state.pc, separator=separator))
    return "\n".join(lines)


def _format_code_window(listing: Sequence[str], pc: int, window: int = 16, separator: str = "") -> str:
    if not listing:
        return "(empty)"
    start = max(0, pc - window)
    end = min(len(listing), pc + window + 1)
    pieces = [f"[{listing[i]}]" if i == pc else listing[i] for i in range(start, end)]
    if pc >= len(listing):
        pieces.append("[END]")
    return separator.join(pieces)


def run_repl(session: VisualizerSession) -> None:
    print("foldbf visualizer (type 'help' for commands)")
    _print_state(session.current_state(), session)
    while True:
        try:
            line = input("(viz) ").strip()
        except EOFError:
            print()
            break
        if not line:
            continue
        parts = shlex.split(line)
        command = parts[0].lower()
        args = parts[1:]
        try:
            if command in {"n", "next"}:
                count = max(1, int(args[0])) if args else 1
                states = session.step_forward(count)
                if states:
                    _print_state(states[-1], session)
                elif session.is_finished():
                    print("プログラムは終了しています。")
            elif command in {"r", "run"}:
                limit = int(args[0]) if args else None
                states = session.run_until_break(limit)
                if states:
                    _print_state(states[-1], session)
                    if session.hit_breakpoint is not None:
                        print(f"ブレークポイント {session.hit_breakpoint} で停止しました。")
                        session.hit_breakpoint = None
                elif session.is_finished():
                    print("プログラムは終了しました。")
            elif command == "state":
                _print_state(session.current_state(), session)
            elif command == "history":
                count = int(args[0]) if args else 10
                for state in session.history[-count:]:
                    _print_state(state, session)
            elif command == "break":
                if not args:
                    print("PC を指定してください。")
                    continue
                session.add_breakpoint(int(args[0]))
                print(f"ブレークポイント {args[0]} を追加しました。")
            elif command == "breaks":
                points = session.list_breakpoints()
                print("ブレークポイント: " + (", ".join(map(str, points)) if points else "(なし)"))
            elif command == "clear":
                if not args:
                    session.clear_breakpoints()
                    print("すべてのブレークポイントを削除しました。")
                elif session.remove_breakpoint(int(args[0])):
                    print(f"ブレークポイント {args[0]} を削除しました。")
                else:
                    print(f"ブレークポイント {args[0]} はありません。")
            elif command == "restart":
                session.restart()
                _print_state(session.current_state(), session)
            elif command in {"quit", "exit"}:
                break
            elif command == "help":
                _print_help()
            else:
                print("不明なコマンドです。'help' を参照してください。")
        except ValueError:
            print("数値が正しくありません。", file=sys.stderr)
        except StepLimitExceeded:
            print("ステップ上限に達しました。", file=sys.stderr)
        except ExecutionIOError as exc:
            print(f"入出力エラー: {exc}", file=sys.stderr)


def _print_state(state: ExecutionState, session: VisualizerSession) -> None:
    print("-" * 40)
    print(format_state(state, session.listing, separator=session.program.mnemonic_separator))


def _print_help() -> None:
    print(
        "コマンド一覧:\n"
        "  next [N]    : N 命令だけ実行 (既定 1)\n"
        "  run [N]     : ブレークポイントか N 命令まで実行\n"
        "  state       : 現在の状態\n"
        "  history [N] : 直近 N 件の状態\n"
        "  break PC    : ブレークポイントを追加\n"
        "  breaks      : ブレークポイント一覧\n"
        "  clear [PC]  : ブレークポイントを削除 (省略で全削除)\n"
        "  restart     : 最初からやり直す\n"
        "  quit/exit   : 終了\n"
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="foldbf step visualizer")
    parser.add_argument("source", help="Path to the program source file")
    parser.add_argument("--input", default="", help="プログラムへの入力文字列")
    parser.add_argument("-O", "--optimize", action="store_true", help="最適化した命令列をステップ実行する")
    parser.add_argument(
        "--max-steps",
        type=int,
        default=5_000_000,
        help="ステップ上限 (デフォルト: 5,000,000)",
    )
    parser.add_argument("--tape-window", type=int, default=10, help="テープ表示の幅")
    parser.add_argument("--history-limit", type=int, default=200, help="履歴に保持するステップ数")
    args = parser.parse_args(argv)

    try:
        source_text = read_source(args.source)
    except OSError as exc:
        print(f"ファイルを開けません: {exc}", file=sys.stderr)
        return 1

    try:
        program = compile_source(source_text, optimize=args.optimize)
    except MalformedProgramError as exc:
        print(f"プログラムが不正です: {exc}", file=sys.stderr)
        return 1

    session = VisualizerSession(
        program,
        input_template=_to_input_bytes(args.input),
        tape_window=args.tape_window,
        max_steps=args.max_steps,
        history_limit=args.history_limit,
        source=source_text,
    )
    run_repl(session)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

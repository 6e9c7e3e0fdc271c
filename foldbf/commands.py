from __future__ import annotations

from enum import Enum
from typing import Iterable, List

from .errors import InvalidCommand


class Command(str, Enum):
    INCREMENT_POINTER = ">"
    DECREMENT_POINTER = "<"
    INCREMENT_VALUE = "+"
    DECREMENT_VALUE = "-"
    OUTPUT = "."
    INPUT = ","
    LOOP_START = "["
    LOOP_END = "]"

    @property
    def mnemonic(self) -> str:
        return self.value


_SYMBOLS = {command.value: command for command in Command}


def decode(symbol: str) -> Command:
    try:
        return _SYMBOLS[symbol]
    except KeyError as exc:
        raise InvalidCommand(symbol) from exc


def parse_commands(text: Iterable[str]) -> List[Command]:
    """Decode every recognised symbol in ``text``; anything else is a comment."""
    commands: List[Command] = []
    for symbol in text:
        try:
            commands.append(decode(symbol))
        except InvalidCommand:
            continue
    return commands


def decode_source(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def render_commands(commands: Iterable[Command]) -> str:
    return "".join(command.value for command in commands)


__all__ = [
    "Command",
    "decode",
    "decode_source",
    "parse_commands",
    "render_commands",
]

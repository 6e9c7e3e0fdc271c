from __future__ import annotations

from typing import List, Tuple

CELL_MODULUS = 256


class Tape:
    """Zero-initialised byte tape that grows on demand in both directions.

    Only the cells the pointer has visited are materialised (``cells``), but
    the backing ``bytearray`` keeps spare zeroed room on both sides and doubles
    whenever it runs out, so moving across the tape costs amortised O(1) per
    cell. Cells outside the materialised range are never written, which keeps
    the spare room zeroed.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._buffer = bytearray(1)
        self._origin = 0  # buffer index of materialised cell 0
        self._length = 1
        self._head = 0  # buffer index of the active cell

    @property
    def pointer(self) -> int:
        return self._head - self._origin

    @property
    def cells(self) -> bytes:
        return bytes(self._buffer[self._origin : self._origin + self._length])

    def __len__(self) -> int:
        return self._length

    def read(self) -> int:
        return self._buffer[self._head]

    def write(self, value: int) -> None:
        self._buffer[self._head] = value % CELL_MODULUS

    def add(self, amount: int) -> None:
        self._buffer[self._head] = (self._buffer[self._head] + amount) % CELL_MODULUS

    def subtract(self, amount: int) -> None:
        self._buffer[self._head] = (self._buffer[self._head] - amount) % CELL_MODULUS

    def move_right(self, distance: int) -> None:
        head = self._head + distance
        if head >= len(self._buffer):
            self._buffer.extend(bytes(max(head + 1 - len(self._buffer), len(self._buffer))))
        end = self._origin + self._length
        if head >= end:
            self._length += head + 1 - end
        self._head = head

    def move_left(self, distance: int) -> None:
        head = self._head - distance
        if head < 0:
            margin = max(-head, len(self._buffer))
            self._buffer[0:0] = bytes(margin)
            self._origin += margin
            head += margin
        if head < self._origin:
            self._length += self._origin - head
            self._origin = head
        self._head = head

    def window(self, radius: int) -> Tuple[int, List[int]]:
        pointer = self.pointer
        start = max(0, pointer - radius)
        end = min(self._length, pointer + radius + 1)
        base = self._origin
        return start, list(self._buffer[base + start : base + end])


__all__ = ["CELL_MODULUS", "Tape"]

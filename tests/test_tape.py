import unittest

from foldbf import Tape


class TapeTests(unittest.TestCase):
    def test_starts_as_single_zero_cell(self) -> None:
        tape = Tape()
        self.assertEqual(tape.cells, b"\x00")
        self.assertEqual(tape.pointer, 0)
        self.assertEqual(len(tape), 1)

    def test_right_growth_is_lazy_and_zero_seeded(self) -> None:
        tape = Tape()
        tape.move_right(5)
        self.assertEqual(tape.read(), 0)
        self.assertEqual(tape.pointer, 5)
        self.assertEqual(tape.cells, bytes(6))

    def test_left_growth_corrects_pointer(self) -> None:
        tape = Tape()
        tape.add(7)
        tape.move_left(3)
        self.assertEqual(tape.pointer, 0)
        self.assertEqual(tape.cells, bytes([0, 0, 0, 7]))
        tape.move_right(3)
        self.assertEqual(tape.read(), 7)

    def test_growth_in_both_directions(self) -> None:
        tape = Tape()
        tape.move_right(2)
        tape.add(1)
        tape.move_left(5)
        tape.add(2)
        self.assertEqual(tape.cells, bytes([2, 0, 0, 0, 0, 1]))
        self.assertEqual(tape.pointer, 0)

    def test_moving_inside_materialised_range_does_not_grow(self) -> None:
        tape = Tape()
        tape.move_right(3)
        tape.move_left(2)
        tape.move_right(1)
        self.assertEqual(len(tape), 4)
        self.assertEqual(tape.pointer, 2)

    def test_many_single_steps(self) -> None:
        tape = Tape()
        for _ in range(10000):
            tape.move_right(1)
        for _ in range(20000):
            tape.move_left(1)
        self.assertEqual(len(tape), 20001)
        self.assertEqual(tape.pointer, 0)
        self.assertEqual(tape.cells, bytes(20001))

    def test_arithmetic_wraps(self) -> None:
        tape = Tape()
        tape.subtract(1)
        self.assertEqual(tape.read(), 255)
        tape.add(1)
        self.assertEqual(tape.read(), 0)
        tape.add(255)
        tape.add(3)
        self.assertEqual(tape.read(), 2)

    def test_write_masks_to_byte(self) -> None:
        tape = Tape()
        tape.write(300)
        self.assertEqual(tape.read(), 44)

    def test_window(self) -> None:
        tape = Tape()
        tape.move_right(5)
        tape.add(9)
        start, values = tape.window(2)
        self.assertEqual(start, 3)
        self.assertEqual(values, [0, 0, 9])

    def test_reset(self) -> None:
        tape = Tape()
        tape.move_left(4)
        tape.add(1)
        tape.reset()
        self.assertEqual(tape.cells, b"\x00")
        self.assertEqual(tape.pointer, 0)


if __name__ == "__main__":
    unittest.main()

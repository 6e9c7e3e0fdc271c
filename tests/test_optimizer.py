import unittest

from foldbf import (
    AddPointer,
    AddValue,
    Command,
    Input,
    LoopEnd,
    LoopStart,
    Output,
    SubtractPointer,
    SubtractValue,
    UnexpectedLoopEnd,
    expand_instructions,
    optimize_commands,
    parse_commands,
)
from foldbf.instructions import POINTER_COUNT_MAX, Optimizer, disassemble


def optimize(source: str):
    return optimize_commands(parse_commands(source))


class FoldingTests(unittest.TestCase):
    def test_no_duplicates(self) -> None:
        program = [
            Command.LOOP_START,
            Command.INCREMENT_POINTER,
            Command.INCREMENT_VALUE,
            Command.DECREMENT_POINTER,
            Command.DECREMENT_VALUE,
            Command.LOOP_END,
        ]
        self.assertEqual(
            optimize_commands(program),
            [
                LoopStart(end=5),
                AddPointer(1),
                AddValue(1),
                SubtractPointer(1),
                SubtractValue(1),
                LoopEnd(start=0),
            ],
        )

    def test_runs_fold_into_counts(self) -> None:
        self.assertEqual(
            optimize("[>>++<<--]"),
            [
                LoopStart(end=5),
                AddPointer(2),
                AddValue(2),
                SubtractPointer(2),
                SubtractValue(2),
                LoopEnd(start=0),
            ],
        )

    def test_cancelling_body_leaves_empty_loop(self) -> None:
        self.assertEqual(optimize("[><+-]"), [LoopStart(end=1), LoopEnd(start=0)])

    def test_opposite_direction_decrements_pending_count(self) -> None:
        self.assertEqual(optimize("+++--"), [AddValue(1)])
        self.assertEqual(optimize(">>><"), [AddPointer(2)])
        self.assertEqual(optimize("<<>>>"), [AddPointer(1)])

    def test_fully_cancelled_run_disappears(self) -> None:
        self.assertEqual(optimize("++--"), [])
        self.assertEqual(optimize("+-."), [Output()])

    def test_io_is_never_folded(self) -> None:
        self.assertEqual(
            optimize("+..,+"),
            [AddValue(1), Output(), Output(), Input(), AddValue(1)],
        )

    def test_pointer_and_value_runs_do_not_merge(self) -> None:
        self.assertEqual(optimize(">+<"), [AddPointer(1), AddValue(1), SubtractPointer(1)])

    def test_value_count_saturates_instead_of_wrapping(self) -> None:
        self.assertEqual(optimize("+" * 256), [AddValue(255), AddValue(1)])
        self.assertEqual(optimize("-" * 600), [SubtractValue(255), SubtractValue(255), SubtractValue(90)])

    def test_empty_program(self) -> None:
        self.assertEqual(optimize_commands([]), [])

    def test_comments_are_ignored(self) -> None:
        self.assertEqual(optimize("add two: ++ done"), [AddValue(2)])


class LoopResolutionTests(unittest.TestCase):
    def test_nested_loops(self) -> None:
        self.assertEqual(
            optimize("[[]]"),
            [LoopStart(end=3), LoopStart(end=2), LoopEnd(start=1), LoopEnd(start=0)],
        )

    def test_sequential_loops(self) -> None:
        self.assertEqual(
            optimize("[-]>[-]"),
            [
                LoopStart(end=2),
                SubtractValue(1),
                LoopEnd(start=0),
                AddPointer(1),
                LoopStart(end=6),
                SubtractValue(1),
                LoopEnd(start=4),
            ],
        )

    def test_jump_targets_are_bijective(self) -> None:
        instructions = optimize("+[>[->+<]<[-]+[>]]>.")
        for index, instruction in enumerate(instructions):
            if isinstance(instruction, LoopStart):
                self.assertEqual(instructions[instruction.end], LoopEnd(start=index))
            elif isinstance(instruction, LoopEnd):
                self.assertEqual(instructions[instruction.start], LoopStart(end=index))

    def test_unmatched_loop_end_aborts(self) -> None:
        with self.assertRaises(UnexpectedLoopEnd):
            optimize("+]")
        with self.assertRaises(UnexpectedLoopEnd):
            optimize("[]]")

    def test_unmatched_loop_start_stays_unresolved(self) -> None:
        self.assertEqual(optimize("[+"), [LoopStart(), AddValue(1)])


class FoldingIdempotenceTests(unittest.TestCase):
    def test_reoptimizing_expanded_program_is_stable(self) -> None:
        sources = [
            "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]>>.>---.+++++++..+++.",
            "+" * 300 + ">" * 5 + "<" * 2 + "[-]" + "-" * 510,
            ",[.,]",
        ]
        for source in sources:
            with self.subTest(source=source[:20]):
                first = optimize(source)
                second = optimize_commands(expand_instructions(first))
                self.assertEqual(first, second)

    def test_cancelled_run_rejoins_previous_run(self) -> None:
        self.assertEqual(optimize("+><+"), [AddValue(2)])
        self.assertEqual(optimize(">+-<<"), [SubtractPointer(1)])
        self.assertEqual(optimize("+" * 256 + "--"), [AddValue(254)])
        self.assertEqual(optimize("+.><+"), [AddValue(1), Output(), AddValue(1)])
        self.assertEqual(optimize("[><+-]"), [LoopStart(end=1), LoopEnd(start=0)])

    def test_reoptimizing_after_cancellation_is_stable(self) -> None:
        for source in ["+><+", ">+-<<", "[->+<+-]", "+" * 256 + "--", ">>+-<+-<<<"]:
            with self.subTest(source=source[:20]):
                first = optimize(source)
                self.assertEqual(optimize_commands(expand_instructions(first)), first)

    def test_expand_restores_net_commands(self) -> None:
        expanded = expand_instructions(optimize("[>>+<-<]"))
        self.assertEqual("".join(command.value for command in expanded), "[>>+<-<]")


class InstructionTests(unittest.TestCase):
    def test_counts_are_range_checked(self) -> None:
        with self.assertRaises(ValueError):
            AddValue(256)
        with self.assertRaises(ValueError):
            SubtractValue(0)
        with self.assertRaises(ValueError):
            AddPointer(POINTER_COUNT_MAX + 1)

    def test_disassemble(self) -> None:
        listing = disassemble(optimize("+[>.]"))
        self.assertEqual(
            listing.splitlines(),
            ["0000 AddValue(1)", "0001 LoopStart->4", "0002 AddPointer(1)", "0003 Output", "0004 LoopEnd->1"],
        )

    def test_optimizer_instance_is_reusable(self) -> None:
        optimizer = Optimizer()
        self.assertEqual(optimizer.optimize(parse_commands("++")), [AddValue(2)])
        self.assertEqual(optimizer.optimize(parse_commands("[")), [LoopStart()])


if __name__ == "__main__":
    unittest.main()

import unittest

from foldbf import ExecutionState, StepLimitExceeded, VisualizerSession, compile_source
from foldbf.errors import InputExhausted
from foldbf.visualizer import _format_code_window, _to_input_bytes, format_state


def make_session(source: str, optimize: bool = False, **kwargs) -> VisualizerSession:
    return VisualizerSession(compile_source(source, optimize=optimize), **kwargs)


class VisualizerSessionTests(unittest.TestCase):
    def test_basic_stepping(self) -> None:
        session = make_session("+++.", tape_window=2, max_steps=100)
        initial = session.current_state()
        self.assertIsNone(initial.instruction)
        self.assertEqual(initial.tape, [0])
        states = session.step_forward(2)
        self.assertEqual(len(states), 2)
        self.assertEqual(states[-1].step, 2)
        self.assertEqual(states[-1].tape, [2])
        self.assertFalse(session.is_finished())

    def test_optimized_program_steps_per_instruction(self) -> None:
        session = make_session("+++.", optimize=True)
        self.assertEqual(session.listing, ["AddValue(3)", "Output"])
        states = session.step_forward(5)
        self.assertEqual([state.instruction for state in states], ["AddValue(3)", "Output", None])
        self.assertEqual(states[-1].output, b"\x03")
        self.assertTrue(session.is_finished())

    def test_breakpoint(self) -> None:
        session = make_session("+++.", tape_window=2, max_steps=100)
        session.add_breakpoint(2)
        session.run_until_break()
        self.assertEqual(session.hit_breakpoint, 2)
        self.assertEqual(session.current_state().pc, 2)

    def test_restart(self) -> None:
        session = make_session("+.", max_steps=100)
        session.step_forward(3)
        self.assertTrue(session.is_finished())
        session.restart()
        self.assertFalse(session.is_finished())
        self.assertEqual(session.current_state().step, 0)
        states = session.step_forward(3)
        self.assertEqual(states[-1].output, b"\x01")

    def test_step_forward_zero_count_keeps_state(self) -> None:
        session = make_session("++", history_limit=5)
        initial_state = session.current_state()
        self.assertEqual(session.step_forward(0), [])
        self.assertIs(session.current_state(), initial_state)
        self.assertFalse(session.is_finished())

    def test_step_forward_stops_on_breakpoint(self) -> None:
        session = make_session("+++.>", max_steps=100)
        session.add_breakpoint(2)
        states = session.step_forward(10)
        self.assertEqual(session.hit_breakpoint, 2)
        self.assertEqual(states[-1].pc, 2)
        self.assertFalse(session.is_finished())

    def test_run_until_break_limit(self) -> None:
        session = make_session("+++++.", max_steps=100)
        session.add_breakpoint(5)
        states = session.run_until_break(limit=2)
        self.assertEqual(len(states), 2)
        self.assertIsNone(session.hit_breakpoint)
        self.assertEqual(session.current_state(), states[-1])

    def test_run_until_break_propagates_step_limit(self) -> None:
        session = make_session("+[]", max_steps=2)
        with self.assertRaises(StepLimitExceeded):
            session.run_until_break()
        self.assertTrue(session.is_finished())

    def test_exhausted_input_propagates(self) -> None:
        session = make_session(",.,", input_template=b"x")
        with self.assertRaises(InputExhausted):
            session.run_until_break()

    def test_history_limit_discards_old_entries(self) -> None:
        session = make_session("+++++.", history_limit=3, max_steps=100)
        session.step_forward(5)
        self.assertEqual(len(session.history), 3)
        self.assertGreater(session.history[0].step, 0)
        self.assertEqual(session.history[-1], session.current_state())

    def test_breakpoint_management_helpers(self) -> None:
        session = make_session("+++.")
        session.add_breakpoint(3)
        session.add_breakpoint(1)
        self.assertEqual(session.list_breakpoints(), [1, 3])
        self.assertTrue(session.remove_breakpoint(1))
        self.assertFalse(session.remove_breakpoint(99))
        session.clear_breakpoints()
        self.assertEqual(session.list_breakpoints(), [])


class VisualizerUtilityTests(unittest.TestCase):
    def test_to_input_bytes(self) -> None:
        self.assertEqual(_to_input_bytes("Az0"), b"Az0")

    def test_format_code_window_marks_end(self) -> None:
        self.assertEqual(_format_code_window(["+"], 5), "+[END]")
        self.assertEqual(_format_code_window([], 0), "(empty)")

    def test_format_code_window_with_separator(self) -> None:
        window = _format_code_window(["AddValue(2)", "Output"], 1, separator=" ")
        self.assertEqual(window, "AddValue(2) [Output]")

    def test_format_state_renders_core_sections(self) -> None:
        state = ExecutionState(
            step=3,
            pc=1,
            instruction="+",
            pointer=1,
            tape_start=0,
            tape=[1, 2, 3],
            output=b"A",
            code_length=3,
        )
        rendered = format_state(state, ["+", "+", "."])
        self.assertIn("step=3 pc=1/3 instruction='+' pointer=1", rendered)
        self.assertIn("output=b'A'", rendered)
        self.assertIn("[1:002]", rendered)
        self.assertIn("code=+[+].", rendered)


if __name__ == "__main__":
    unittest.main()

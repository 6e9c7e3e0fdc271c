from __future__ import annotations

from typing import List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Response, status
from pydantic import BaseModel, Field

from foldbf.compiler import AnyProgram, compile_source
from foldbf.errors import ExecutionIOError, MalformedProgramError, StepLimitExceeded
from foldbf.program import ExecutionState
from foldbf.visualizer import VisualizerSession

from .session import SessionRecord, SessionStore


def _state_to_dict(state: ExecutionState) -> dict:
    return {
        "step": state.step,
        "pc": state.pc,
        "instruction": state.instruction,
        "pointer": state.pointer,
        "tape_start": state.tape_start,
        "tape": list(state.tape),
        "output": list(state.output),
        "code_length": state.code_length,
    }


def _compile(code: str, optimize: bool) -> AnyProgram:
    try:
        return compile_source(code, optimize=optimize)
    except MalformedProgramError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


def _calculate_total_steps(program: AnyProgram, input_template: bytes, cap: int = 10000) -> Tuple[int, bool]:
    total = 0
    try:
        for state in program.step(input_template, max_steps=cap):
            total = max(total, state.step)
    except StepLimitExceeded:
        return cap, True
    except ExecutionIOError:
        return total, False
    return total, False


class SessionConfiguration(BaseModel):
    code: str = ""
    input: str = ""
    optimize: bool = False
    tape_window: int = Field(default=10, ge=0)
    max_steps: Optional[int] = Field(default=None, ge=1)
    history_limit: int = Field(default=200, ge=1)


class SessionState(BaseModel):
    step: int
    pc: int
    instruction: Optional[str]
    pointer: int
    tape_start: int
    tape: List[int]
    output: List[int]
    code_length: int


class SessionPayload(BaseModel):
    session_id: str
    optimized: bool
    listing: List[str]
    state: SessionState
    history: List[SessionState]
    finished: bool
    history_size: int
    breakpoints: List[int]
    hit_breakpoint: Optional[int]
    total_steps: int
    total_steps_capped: bool


class StepRequest(BaseModel):
    count: int = Field(default=1, ge=1)


class StepResponse(SessionPayload):
    states: List[SessionState]


class RunRequest(BaseModel):
    limit: Optional[int] = Field(default=None, ge=1)
    ignore_breakpoints: bool = False


class BreakpointRequest(BaseModel):
    pc: int = Field(ge=0)


class ExecuteRequest(BaseModel):
    code: str
    input: str = ""
    optimize: bool = True
    max_steps: Optional[int] = Field(default=1_000_000, ge=1)


class ExecuteResponse(BaseModel):
    output: List[int]
    text: str
    tape: List[int]
    pointer: int
    steps: int


class OptimizeRequest(BaseModel):
    code: str


class OptimizeResponse(BaseModel):
    instructions: List[str]
    count: int


def create_app(store: Optional[SessionStore] = None) -> FastAPI:
    session_store = store or SessionStore()
    app = FastAPI(title="foldbf API", version="0.1.0")

    def _get_record(session_id: str) -> SessionRecord:
        try:
            return session_store.get(session_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    def _serialize_states(states: List[ExecutionState]) -> List[SessionState]:
        return [SessionState(**_state_to_dict(state)) for state in states]

    def _payload_fields(record: SessionRecord) -> dict:
        session: VisualizerSession = record.session
        return {
            "session_id": record.session_id,
            "optimized": record.optimized,
            "listing": session.listing,
            "state": SessionState(**_state_to_dict(session.current_state())),
            "history": _serialize_states(session.history),
            "finished": session.is_finished(),
            "history_size": len(session.history),
            "breakpoints": session.list_breakpoints(),
            "hit_breakpoint": session.hit_breakpoint,
            "total_steps": record.total_steps,
            "total_steps_capped": record.total_steps_capped,
        }

    @app.post("/api/session", response_model=SessionPayload, status_code=status.HTTP_201_CREATED)
    def create_session(payload: SessionConfiguration) -> SessionPayload:
        input_bytes = payload.input.encode("utf-8")
        # Counting steps runs a separate copy so the session starts from a clean tape
        total_steps, total_steps_capped = _calculate_total_steps(
            _compile(payload.code, payload.optimize),
            input_bytes,
        )
        record = session_store.create_session(
            program=_compile(payload.code, payload.optimize),
            input_template=input_bytes,
            optimized=payload.optimize,
            tape_window=payload.tape_window,
            max_steps=payload.max_steps,
            history_limit=payload.history_limit,
            source=payload.code,
            total_steps=total_steps,
            total_steps_capped=total_steps_capped,
        )
        return SessionPayload(**_payload_fields(record))

    @app.get("/api/session/{session_id}", response_model=SessionPayload)
    def get_session(session_id: str) -> SessionPayload:
        return SessionPayload(**_payload_fields(_get_record(session_id)))

    @app.post("/api/session/{session_id}/reset", response_model=SessionPayload)
    def reset_session(session_id: str) -> SessionPayload:
        _get_record(session_id)
        record = session_store.reset(session_id)
        return SessionPayload(**_payload_fields(record))

    @app.post("/api/session/{session_id}/step", response_model=StepResponse)
    def step_session(session_id: str, payload: StepRequest) -> StepResponse:
        record = _get_record(session_id)
        try:
            states = list(record.session.step_forward(payload.count))
        except (StepLimitExceeded, ExecutionIOError) as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return StepResponse(states=_serialize_states(states), **_payload_fields(record))

    @app.post("/api/session/{session_id}/run", response_model=StepResponse)
    def run_session(session_id: str, payload: RunRequest) -> StepResponse:
        record = _get_record(session_id)
        session = record.session
        saved_breakpoints: Optional[set[int]] = None
        if payload.ignore_breakpoints:
            saved_breakpoints = set(session.breakpoints)
            session.clear_breakpoints()

        try:
            states = list(session.run_until_break(payload.limit))
        except (StepLimitExceeded, ExecutionIOError) as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        finally:
            if saved_breakpoints is not None:
                session.breakpoints = saved_breakpoints
                session.hit_breakpoint = None

        return StepResponse(states=_serialize_states(states), **_payload_fields(record))

    @app.post("/api/session/{session_id}/breakpoints", response_model=SessionPayload)
    def add_breakpoint(session_id: str, payload: BreakpointRequest) -> SessionPayload:
        record = _get_record(session_id)
        record.session.add_breakpoint(payload.pc)
        return SessionPayload(**_payload_fields(record))

    @app.delete("/api/session/{session_id}/breakpoints/{pc}", response_model=SessionPayload)
    def remove_breakpoint(session_id: str, pc: int) -> SessionPayload:
        record = _get_record(session_id)
        if not record.session.remove_breakpoint(pc):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Breakpoint not found at pc={pc}",
            )
        return SessionPayload(**_payload_fields(record))

    @app.delete("/api/session/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_session(session_id: str) -> Response:
        if not session_store.remove(session_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown session id: {session_id}",
            )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.post("/api/run", response_model=ExecuteResponse)
    def execute_program(payload: ExecuteRequest) -> ExecuteResponse:
        program = _compile(payload.code, payload.optimize)
        try:
            output = program.run(payload.input.encode("utf-8"), max_steps=payload.max_steps)
        except (StepLimitExceeded, ExecutionIOError) as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return ExecuteResponse(
            output=list(output),
            text=output.decode("utf-8", errors="replace"),
            tape=list(program.tape.cells),
            pointer=program.tape.pointer,
            steps=program.steps_executed,
        )

    @app.post("/api/optimize", response_model=OptimizeResponse)
    def optimize_program(payload: OptimizeRequest) -> OptimizeResponse:
        program = _compile(payload.code, optimize=True)
        listing = program.listing()
        return OptimizeResponse(instructions=listing, count=len(listing))

    return app


__all__ = ["create_app"]

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from foldbf.compiler import AnyProgram
from foldbf.visualizer import VisualizerSession

logger = logging.getLogger(__name__)


@dataclass
class SessionRecord:
    session_id: str
    session: VisualizerSession
    optimized: bool
    total_steps: int = 0
    total_steps_capped: bool = False


class SessionStore:
    """Thread-safe registry for VisualizerSession instances."""

    def __init__(self) -> None:
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = threading.RLock()

    def create_session(
        self,
        *,
        program: AnyProgram,
        input_template: bytes,
        optimized: bool,
        tape_window: int = 10,
        max_steps: Optional[int] = None,
        history_limit: int = 200,
        source: Optional[str] = None,
        total_steps: int = 0,
        total_steps_capped: bool = False,
    ) -> SessionRecord:
        session = VisualizerSession(
            program,
            input_template=input_template,
            tape_window=tape_window,
            max_steps=max_steps,
            history_limit=history_limit,
            source=source,
        )
        record = SessionRecord(
            session_id=uuid.uuid4().hex,
            session=session,
            optimized=optimized,
            total_steps=total_steps,
            total_steps_capped=total_steps_capped,
        )
        with self._lock:
            self._sessions[record.session_id] = record
        logger.debug("created session %s (%d instructions)", record.session_id, len(program))
        return record

    def get(self, session_id: str) -> SessionRecord:
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError as exc:
                raise KeyError(f"Unknown session id: {session_id}") from exc

    def reset(self, session_id: str) -> SessionRecord:
        record = self.get(session_id)
        session = record.session
        session.history.clear()
        session.clear_breakpoints()
        session.hit_breakpoint = None
        session.restart()
        return record

    def remove(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None) is not None
        if removed:
            logger.debug("removed session %s", session_id)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


__all__ = ["SessionRecord", "SessionStore"]

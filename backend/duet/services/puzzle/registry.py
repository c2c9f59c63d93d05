import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .levels import LevelLibrary
from .session import Emitter, GameSession


class SessionRegistry:
    """In-memory map of session id -> GameSession for this process.

    Sessions are created on first use and dropped once empty. A per-id
    lock guarantees a session's first level is built at most once even
    when several clients connect to a new id at the same time.
    """

    def __init__(
        self,
        levels: LevelLibrary,
        emit: Emitter,
        logger: Optional[logging.Logger] = None,
        run_task: Optional[Callable[..., Any]] = None,
    ):
        self.levels = levels
        self.emit = emit
        self.logger = logger or logging.getLogger(__name__)
        self.run_task = run_task
        self._sessions: Dict[str, GameSession] = {}
        self._init_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[GameSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def sessions(self) -> List[GameSession]:
        with self._lock:
            return list(self._sessions.values())

    def get_or_create(self, session_id: str) -> GameSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = GameSession(
                    session_id, self.levels, self.emit,
                    logger=self.logger, run_task=self.run_task,
                )
                self._sessions[session_id] = session
                self.logger.info(f"[session-create] session={session_id}")
            init_lock = self._init_locks.setdefault(session_id, threading.Lock())

        with init_lock:
            if session.initialized:
                return session
            try:
                session.initialize()
            except Exception:
                with self._lock:
                    if self._sessions.get(session_id) is session:
                        del self._sessions[session_id]
                        self._init_locks.pop(session_id, None)
                raise
        return session

    def connect(self, session_id: str, client: str) -> GameSession:
        """Resolve the session for ``session_id`` and add ``client`` as a member."""
        while True:
            session = self.get_or_create(session_id)
            with self._lock:
                # Retry if the session was released between resolving and adding
                if self._sessions.get(session_id) is session:
                    session.add_client(client)
                    return session

    def release(self, session_id: str) -> bool:
        """Drop the session if it has no members left. Returns True if dropped."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.has_clients():
                return False
            del self._sessions[session_id]
            self._init_locks.pop(session_id, None)
        self.logger.info(f"[session-drop] session={session_id}")
        return True

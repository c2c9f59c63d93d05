import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from duet import protocol
from duet.models import LevelState
from .levels import LevelFormatError, LevelLibrary
from .movement import Direction, MovementEngine


# emit(event, payload, client)
Emitter = Callable[[str, Dict[str, Any], str], None]

SLOT_COUNT = 2


class SlotUnavailable(Exception):
    pass


class SessionPhase(str, Enum):
    LOADING = 'loading'
    READY = 'ready'


def _run_inline(fn, *args):
    fn(*args)


class GameSession:
    """One two-player game: the current level, its engine, members and slots.

    Every public operation takes the client identity explicitly and runs
    under the session lock. Building the next level on completion happens
    outside the lock while the session is LOADING; moves that arrive in
    that window are dropped.
    """

    def __init__(
        self,
        session_id: str,
        levels: LevelLibrary,
        emit: Emitter,
        logger: Optional[logging.Logger] = None,
        run_task: Optional[Callable[..., Any]] = None,
    ):
        self.id = session_id
        self.levels = levels
        self._emit = emit
        self.logger = logger or logging.getLogger(__name__)
        self._run_task = run_task or _run_inline
        self._lock = threading.RLock()

        self.phase = SessionPhase.LOADING
        self.level_index = 0
        self.level: Optional[LevelState] = None
        self.engine: Optional[MovementEngine] = None
        self.clients: Set[str] = set()
        self.slots: List[Optional[str]] = [None] * SLOT_COUNT
        self._initialized = False

    # ---- lifecycle ----

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Build the first level. Raises LevelFormatError on a broken level."""
        with self._lock:
            if self._initialized:
                return
            level = self.levels.load(self.level_index)
            self._install_level(level)
            self._initialized = True
            self.logger.info(f"[session-ready] session={self.id} level={self.level_index}")

    def _install_level(self, level: LevelState) -> None:
        engine = MovementEngine(level, logger=self.logger)
        engine.sync_doors()
        self.level = level
        self.engine = engine
        self.phase = SessionPhase.READY

    # ---- membership ----

    def add_client(self, client: str) -> None:
        with self._lock:
            self.clients.add(client)
            self.logger.info(f"[member-add] session={self.id} client={client} members={len(self.clients)}")
            self._send_init(client)
            self._broadcast_slots()

    def remove_client(self, client: str) -> None:
        with self._lock:
            self.clients.discard(client)
            slot = self.slot_of(client)
            if slot is not None:
                self.slots[slot] = None
                self.logger.info(f"[slot-free] session={self.id} client={client} slot={slot}")
                self._broadcast_slots()
            if not self.clients:
                self.slots = [None] * SLOT_COUNT
            self.logger.info(f"[member-remove] session={self.id} client={client} members={len(self.clients)}")

    def has_clients(self) -> bool:
        with self._lock:
            return bool(self.clients)

    def slot_of(self, client: str) -> Optional[int]:
        for index, occupant in enumerate(self.slots):
            if occupant == client:
                return index
        return None

    def occupied(self) -> List[bool]:
        return [occupant is not None for occupant in self.slots]

    def join(self, client: str, desired_slot: Optional[int] = None) -> Optional[int]:
        """Claim a slot for ``client``. Returns the slot held afterwards, or None."""
        with self._lock:
            current = self.slot_of(client)
            if current is not None:
                return current
            try:
                slot = self._claim_slot(client, desired_slot)
            except SlotUnavailable as exc:
                self.logger.info(f"[join-refused] session={self.id} client={client} desired={desired_slot} reason={exc}")
                self._send(protocol.ERROR, protocol.error_payload(str(exc)), client)
                return None
            self.logger.info(f"[join] session={self.id} client={client} slot={slot}")
            self._send_init(client)
            self._broadcast_slots()
            return slot

    def _claim_slot(self, client: str, desired_slot: Optional[int]) -> int:
        if desired_slot is None:
            free = [i for i, occupant in enumerate(self.slots) if occupant is None]
            if not free:
                raise SlotUnavailable('All player slots are taken')
            slot = free[0]
        else:
            if desired_slot not in range(SLOT_COUNT):
                raise SlotUnavailable(f"No player slot {desired_slot}")
            if self.slots[desired_slot] is not None:
                raise SlotUnavailable('The requested slot is already taken')
            slot = desired_slot
        self.slots[slot] = client
        # Joining also makes the client a member
        self.clients.add(client)
        return slot

    # ---- gameplay ----

    def handle_move(self, client: str, direction: Direction) -> bool:
        with self._lock:
            slot = self.slot_of(client)
            if slot is None:
                return False
            if self.phase is not SessionPhase.READY:
                self.logger.debug(f"[move-drop] session={self.id} client={client} phase={self.phase.value}")
                return False
            moved = self.engine.apply_move(slot, direction)
            if not moved:
                return False
            self._broadcast_state()
            if not self.level.is_completed:
                return True
            next_index = (self.level_index + 1) % len(self.levels)
            self.phase = SessionPhase.LOADING
            self.logger.info(f"[advance] session={self.id} level {self.level_index} -> {next_index}")
        self._run_task(self._advance_level, next_index)
        return True

    def _advance_level(self, next_index: int) -> None:
        try:
            level = self.levels.load(next_index)
        except LevelFormatError as exc:
            self.logger.error(f"[advance-failed] session={self.id} level={next_index} error={exc}")
            with self._lock:
                self.phase = SessionPhase.READY
            return
        with self._lock:
            self.level_index = next_index
            self._install_level(level)
            self._broadcast_state()

    # ---- outbound ----

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return protocol.state_payload(self.level_index, self.level)

    def _send(self, event: str, payload: Dict[str, Any], client: str) -> None:
        self._emit(event, payload, client)

    def _broadcast(self, event: str, payload: Dict[str, Any]) -> None:
        for client in list(self.clients):
            self._send(event, payload, client)

    def _send_init(self, client: str) -> None:
        payload = protocol.init_payload(self.slot_of(client), self.level_index, self.level, self.occupied())
        self._send(protocol.INIT, payload, client)

    def _broadcast_state(self) -> None:
        self._broadcast(protocol.STATE, protocol.state_payload(self.level_index, self.level))

    def _broadcast_slots(self) -> None:
        self._broadcast(protocol.SLOTS, protocol.slots_payload(self.occupied()))

    def to_dict(self):
        with self._lock:
            return {
                'id': self.id,
                'phase': self.phase.value,
                'levelIndex': self.level_index,
                'levelCount': len(self.levels),
                'clients': len(self.clients),
                'slots': protocol.slot_summary(self.occupied()),
            }

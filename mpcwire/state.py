"""Running contributor engines and the registry that holds them."""

from __future__ import annotations

import threading
from typing import Any

from .errors import EngineError, MpcRequestRejected, NoSuchEngineId, UnexpectedMessageId
from .msg_queue import MsgQueue
from .types import HandleMpcRequestFn, MpcRequest, MpcSession


class EngineRef:
    """One running contributor engine together with its outgoing messages.

    ``contributor`` must provide ``steps()`` (the number of protocol rounds)
    and ``run(msg)`` returning ``(next_state, reply)``. ``initial_msg`` is the
    first message the contributor sends; it gets message id 0.
    """

    def __init__(self, contributor: Any, initial_msg: bytes) -> None:
        self.lock = threading.Lock()
        self.last_durably_received_client_event_offset: int | None = None
        self._queue = MsgQueue()
        self._queue.send(initial_msg)
        self._mpc: Any = contributor
        self._steps_remaining = contributor.steps()

    def process_message(self, msg: bytes, offset: int) -> None:
        """Feed one client message to the engine; messages must arrive in order."""
        last = self.last_durably_received_client_event_offset
        in_order = (last is None and offset == 0) or (last is not None and last == offset - 1)
        if not in_order:
            raise UnexpectedMessageId()
        self.last_durably_received_client_event_offset = offset
        contributor, self._mpc = self._mpc, None
        if contributor is None:
            return
        try:
            next_state, reply = contributor.run(msg)
        except Exception as exc:
            raise EngineError() from exc
        self._mpc = next_state
        self._queue.send(reply)

    def flush_queue(self, last_durably_received_offset: int) -> None:
        """Forget messages the client has confirmed."""
        self._queue.flush_queue(last_durably_received_offset)

    def dump_messages(self) -> list[tuple[bytes, int]]:
        """Return all unconfirmed messages with their ids, oldest first."""
        return list(self._queue.msgs_iter())

    def is_done(self) -> bool:
        """Whether the engine has no protocol steps left."""
        return self._steps_remaining == 0


class EngineRegistry:
    """Thread-safe map from engine ids to running engines."""

    def __init__(self, handler: HandleMpcRequestFn) -> None:
        self._engines: dict[str, EngineRef] = {}
        self._lock = threading.Lock()
        self._handler = handler

    def insert_engine(self, engine_id: str, engine: EngineRef) -> bool:
        """Register an engine; returns False if the id is already taken."""
        with self._lock:
            if engine_id in self._engines:
                return False
            self._engines[engine_id] = engine
            return True

    def drop_engine(self, engine_id: str) -> bool:
        """Remove an engine; returns whether it was registered."""
        with self._lock:
            return self._engines.pop(engine_id, None) is not None

    def lookup(self, engine_id: str) -> EngineRef:
        """Return the engine with the given id or raise NoSuchEngineId."""
        with self._lock:
            engine = self._engines.get(engine_id)
        if engine is None:
            raise NoSuchEngineId(engine_id)
        return engine

    def handle_input(self, request: MpcRequest) -> MpcSession:
        """Ask the handler for a session; a ValueError becomes MpcRequestRejected."""
        try:
            return self._handler(request)
        except ValueError as exc:
            raise MpcRequestRejected(str(exc)) from exc
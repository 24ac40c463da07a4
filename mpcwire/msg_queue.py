"""Queue of outgoing protocol messages, kept until the peer confirms them."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator


class MsgQueue:
    """Outgoing messages, numbered consecutively from 0.

    A message stays queued until the peer reports it as durably received,
    so that it can be sent again if a request is lost.
    """

    def __init__(self) -> None:
        self._queue: deque[bytes] = deque()
        self._counter = 0

    def _first_offset(self) -> int:
        return self._counter - len(self._queue)

    def flush_queue(self, last_durably_received_offset: int) -> int:
        """Drop every queued message whose id is at most the given offset.

        Afterwards each message still queued has an id strictly greater than
        ``last_durably_received_offset``. Returns how many were dropped.
        """
        offset = self._first_offset()
        removed = 0
        while self._queue and offset <= last_durably_received_offset:
            self._queue.popleft()
            offset += 1
            removed += 1
        return removed

    def send(self, msg: bytes) -> None:
        """Append a message; it gets the next consecutive id."""
        self._counter += 1
        self._queue.append(bytes(msg))

    def msgs_iter(self) -> Iterator[tuple[bytes, int]]:
        """Yield ``(message, message_id)`` for every queued message, oldest first."""
        return (
            (msg, message_id)
            for message_id, msg in enumerate(list(self._queue), start=self._first_offset())
        )

    def __len__(self) -> int:
        return len(self._queue)
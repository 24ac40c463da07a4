import copy

from mpcwire.msg_queue import MsgQueue

FIRST = b"\x01\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00\x00"
SECOND = b"\x01\x00\x00\x00\x00\x00\x00\x00\x01\x00\x00\x00\x00"


def test_flush_empty_queue_removes_nothing():
    queue = MsgQueue()
    assert copy.deepcopy(queue).flush_queue(0) == 0
    assert copy.deepcopy(queue).flush_queue(1) == 0
    assert copy.deepcopy(queue).flush_queue(10) == 0


def test_flush_queue_sequence():
    queue = MsgQueue()

    queue.send(FIRST)
    assert copy.deepcopy(queue).flush_queue(0) == 1

    queue.flush_queue(0)
    assert list(queue.msgs_iter()) == []

    queue.send(SECOND)
    assert copy.deepcopy(queue).flush_queue(0) == 0
    assert copy.deepcopy(queue).flush_queue(1) == 1
    assert next(queue.msgs_iter())[0] == SECOND


def test_msgs_iter_numbers_messages_from_zero():
    queue = MsgQueue()
    queue.send(b"a")
    queue.send(b"b")
    queue.send(b"c")
    assert list(queue.msgs_iter()) == [(b"a", 0), (b"b", 1), (b"c", 2)]


def test_msgs_iter_keeps_ids_after_flush():
    queue = MsgQueue()
    for payload in (b"a", b"b", b"c"):
        queue.send(payload)
    assert queue.flush_queue(1) == 2
    assert list(queue.msgs_iter()) == [(b"c", 2)]
    queue.send(b"d")
    assert list(queue.msgs_iter()) == [(b"c", 2), (b"d", 3)]


def test_flush_is_idempotent():
    queue = MsgQueue()
    queue.send(b"a")
    queue.send(b"b")
    assert queue.flush_queue(0) == 1
    assert queue.flush_queue(0) == 0
    assert len(queue) == 1


def test_len_tracks_queued_messages():
    queue = MsgQueue()
    assert len(queue) == 0
    queue.send(b"a")
    queue.send(b"b")
    assert len(queue) == 2
    queue.flush_queue(5)
    assert len(queue) == 0


def test_msgs_iter_is_a_snapshot():
    queue = MsgQueue()
    queue.send(b"a")
    snapshot = queue.msgs_iter()
    queue.send(b"b")
    assert list(snapshot) == [(b"a", 0)]
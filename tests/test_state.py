import pytest

from mpcwire.errors import EngineError, MpcRequestRejected, NoSuchEngineId, UnexpectedMessageId
from mpcwire.state import EngineRef, EngineRegistry
from mpcwire.types import MpcRequest, MpcSession


class _EchoContributor:
    def __init__(self, steps=2):
        self._steps = steps

    def steps(self):
        return self._steps

    def run(self, msg):
        return self, b"re:" + msg


class _FailingContributor:
    def steps(self):
        return 1

    def run(self, msg):
        raise RuntimeError("engine broke")


def test_initial_message_has_id_zero():
    engine = EngineRef(_EchoContributor(), b"hello")
    assert engine.dump_messages() == [(b"hello", 0)]
    assert engine.last_durably_received_client_event_offset is None


def test_messages_in_order_produce_replies():
    engine = EngineRef(_EchoContributor(), b"hello")
    engine.process_message(b"a", 0)
    engine.process_message(b"b", 1)
    assert engine.dump_messages() == [(b"hello", 0), (b"re:a", 1), (b"re:b", 2)]
    assert engine.last_durably_received_client_event_offset == 1


def test_first_message_must_have_id_zero():
    engine = EngineRef(_EchoContributor(), b"hello")
    with pytest.raises(UnexpectedMessageId):
        engine.process_message(b"a", 1)
    assert engine.last_durably_received_client_event_offset is None
    assert engine.dump_messages() == [(b"hello", 0)]


def test_gap_and_replay_are_rejected():
    engine = EngineRef(_EchoContributor(), b"hello")
    engine.process_message(b"a", 0)
    with pytest.raises(UnexpectedMessageId):
        engine.process_message(b"c", 2)
    with pytest.raises(UnexpectedMessageId):
        engine.process_message(b"a", 0)
    assert engine.last_durably_received_client_event_offset == 0


def test_flush_queue_drops_confirmed_messages():
    engine = EngineRef(_EchoContributor(), b"hello")
    engine.process_message(b"a", 0)
    engine.flush_queue(0)
    assert engine.dump_messages() == [(b"re:a", 1)]
    engine.flush_queue(1)
    assert engine.dump_messages() == []


def test_engine_failure_raises_engine_error():
    engine = EngineRef(_FailingContributor(), b"hello")
    with pytest.raises(EngineError):
        engine.process_message(b"a", 0)
    engine.process_message(b"b", 1)
    assert engine.dump_messages() == [(b"hello", 0)]
    assert engine.last_durably_received_client_event_offset == 1


def test_is_done_follows_contributor_steps():
    assert EngineRef(_EchoContributor(steps=0), b"x").is_done() is True
    assert EngineRef(_EchoContributor(steps=2), b"x").is_done() is False


def test_registry_insert_lookup_drop():
    registry = EngineRegistry(lambda request: None)
    engine = EngineRef(_EchoContributor(), b"hello")
    assert registry.insert_engine("e1", engine) is True
    assert registry.insert_engine("e1", EngineRef(_EchoContributor(), b"other")) is False
    assert registry.lookup("e1") is engine
    assert registry.drop_engine("e1") is True
    assert registry.drop_engine("e1") is False
    with pytest.raises(NoSuchEngineId) as info:
        registry.lookup("e1")
    assert info.value.engine_id == "e1"


def test_handle_input_returns_handler_session():
    session = MpcSession(circuit="c", input_from_server=[True])
    registry = EngineRegistry(lambda request: session)
    result = registry.handle_input(MpcRequest("meta", "prog", "main"))
    assert result is session


def test_handle_input_rejection():
    def handler(request):
        raise ValueError(f"no handler for {request.function}")

    registry = EngineRegistry(handler)
    with pytest.raises(MpcRequestRejected) as info:
        registry.handle_input(MpcRequest("meta", "prog", "main"))
    assert info.value.reason == "no handler for main"
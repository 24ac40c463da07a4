import json
from http import HTTPStatus

import pytest

from mpcwire.errors import (
    ApiError,
    BincodeError,
    CircuitHashMismatch,
    DuplicateEngineId,
    EngineError,
    IncompatibleVersions,
    InternalError,
    MpcRequestRejected,
    NoSuchEngineId,
    UnexpectedMessageId,
    UnexpectedWireFormat,
)

EXPECTED_DICTS = [
    {"error": "CircuitHashMismatch"},
    {"error": "UnexpectedWireFormat", "args": "bad body"},
    {"error": "MpcRequestRejected", "args": "no handler"},
    {"error": "DuplicateEngineId", "args": {"engine_id": "e1"}},
    {"error": "UnexpectedMessageId"},
    {"error": "NoSuchEngineId", "args": {"engine_id": "e2"}},
    {"error": "Internal", "args": {"message": "boom"}},
    {"error": "Bincode"},
    {"error": "Engine"},
    {
        "error": "IncompatibleVersions",
        "args": {"client_version": "0.2.0", "server_version": "0.3.0"},
    },
]

EXPECTED_STATUSES = [
    HTTPStatus.BAD_REQUEST,
    HTTPStatus.BAD_REQUEST,
    HTTPStatus.BAD_REQUEST,
    HTTPStatus.BAD_REQUEST,
    HTTPStatus.BAD_REQUEST,
    HTTPStatus.NOT_FOUND,
    HTTPStatus.INTERNAL_SERVER_ERROR,
    HTTPStatus.BAD_REQUEST,
    HTTPStatus.INTERNAL_SERVER_ERROR,
    HTTPStatus.BAD_REQUEST,
]


def test_status():
    errors = [
        CircuitHashMismatch(),
        UnexpectedWireFormat("bad body"),
        MpcRequestRejected("no handler"),
        DuplicateEngineId("e1"),
        UnexpectedMessageId(),
        NoSuchEngineId("e2"),
        InternalError("boom"),
        BincodeError(),
        EngineError(),
        IncompatibleVersions("0.2.0", "0.3.0"),
    ]
    assert [error.status for error in errors] == EXPECTED_STATUSES


def test_to_dict():
    errors = [
        CircuitHashMismatch(),
        UnexpectedWireFormat("bad body"),
        MpcRequestRejected("no handler"),
        DuplicateEngineId("e1"),
        UnexpectedMessageId(),
        NoSuchEngineId("e2"),
        InternalError("boom"),
        BincodeError(),
        EngineError(),
        IncompatibleVersions("0.2.0", "0.3.0"),
    ]
    assert [error.to_dict() for error in errors] == EXPECTED_DICTS


def test_json_round_trip():
    errors = [
        CircuitHashMismatch(),
        UnexpectedWireFormat("bad body"),
        MpcRequestRejected("no handler"),
        DuplicateEngineId("e1"),
        UnexpectedMessageId(),
        NoSuchEngineId("e2"),
        InternalError("boom"),
        BincodeError(),
        EngineError(),
        IncompatibleVersions("0.2.0", "0.3.0"),
    ]
    assert [json.loads(error.to_json()) for error in errors] == EXPECTED_DICTS


def test_json_is_compact():
    assert " " not in CircuitHashMismatch().to_json()


def test_json_keeps_non_ascii():
    assert "é" in MpcRequestRejected("é").to_json()


def test_errors_are_raised_and_caught_as_api_error():
    error = NoSuchEngineId("missing")
    with pytest.raises(ApiError) as info:
        raise error
    assert info.value is error
    assert error.to_dict() == {"error": "NoSuchEngineId", "args": {"engine_id": "missing"}}


def test_string_argument_errors_carry_text_in_message():
    assert "no handler" in str(MpcRequestRejected("no handler"))
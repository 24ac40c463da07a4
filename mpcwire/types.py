"""Data exchanged between client, server and the server's request handler."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

CIRCUIT_HASH_LEN = 32


def _str_field(data: Mapping[str, Any], key: str) -> str:
    if key not in data:
        raise ValueError(f"missing field {key!r}")
    value = data[key]
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a string")
    return value


def _headers_field(data: Mapping[str, Any], key: str) -> dict[str, str]:
    if key not in data:
        raise ValueError(f"missing field {key!r}")
    value = data[key]
    if not isinstance(value, Mapping) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in value.items()
    ):
        raise ValueError(f"field {key!r} must map strings to strings")
    return dict(value)


def _hash_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        result = bytes(value)
    elif isinstance(value, (list, tuple)) and all(
        isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= 255 for b in value
    ):
        result = bytes(value)
    else:
        raise ValueError("circuit hash must be a sequence of bytes")
    if len(result) != CIRCUIT_HASH_LEN:
        raise ValueError(f"circuit hash must be {CIRCUIT_HASH_LEN} bytes, got {len(result)}")
    return result


@dataclass(frozen=True)
class MpcRequest:
    """A client's request to start a computation."""

    plaintext_metadata: str
    program: str
    function: str


@dataclass
class MpcSession:
    """What the server needs to run the protocol for one request.

    ``request_headers`` are headers the client must send with every later
    request, e.g. to be routed to the same server instance.
    """

    circuit: Any
    input_from_server: list[bool]
    request_headers: dict[str, str] = field(default_factory=dict)


HandleMpcRequestFn = Callable[[MpcRequest], MpcSession]


@dataclass(frozen=True)
class NewSession:
    """Body of a request that creates a session."""

    plaintext_metadata: str
    program: str
    function: str
    circuit_hash: bytes
    client_version: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "circuit_hash", _hash_bytes(self.circuit_hash))

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form; the hash is a list of byte values."""
        return {
            "plaintext_metadata": self.plaintext_metadata,
            "program": self.program,
            "function": self.function,
            "circuit_hash": list(self.circuit_hash),
            "client_version": self.client_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> NewSession:
        """Build from the JSON form, raising ValueError on a malformed body."""
        if not isinstance(data, Mapping):
            raise ValueError("session request must be an object")
        if "circuit_hash" not in data:
            raise ValueError("missing field 'circuit_hash'")
        return cls(
            plaintext_metadata=_str_field(data, "plaintext_metadata"),
            program=_str_field(data, "program"),
            function=_str_field(data, "function"),
            circuit_hash=_hash_bytes(data["circuit_hash"]),
            client_version=_str_field(data, "client_version"),
        )


@dataclass(frozen=True)
class EngineCreationResult:
    """The server's answer to a created session."""

    engine_id: str
    request_headers: dict[str, str]
    server_version: str

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready form."""
        return {
            "engine_id": self.engine_id,
            "request_headers": dict(self.request_headers),
            "server_version": self.server_version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EngineCreationResult:
        """Build from the JSON form, raising ValueError on a malformed body."""
        if not isinstance(data, Mapping):
            raise ValueError("engine creation result must be an object")
        return cls(
            engine_id=_str_field(data, "engine_id"),
            request_headers=_headers_field(data, "request_headers"),
            server_version=_str_field(data, "server_version"),
        )
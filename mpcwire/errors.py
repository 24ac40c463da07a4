"""Errors a server reports to clients, with their HTTP status and JSON form.

The JSON form is ``{"error": <kind>}`` for errors without arguments and
``{"error": <kind>, "args": <arguments>}`` otherwise.
"""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import Any


class ApiError(Exception):
    """Base class of errors that are sent back to the client."""

    kind: str = "Internal"
    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def _payload(self) -> Any:
        return None

    def to_dict(self) -> dict[str, Any]:
        """Return the error in its JSON-ready form."""
        result: dict[str, Any] = {"error": self.kind}
        payload = self._payload()
        if payload is not None:
            result["args"] = payload
        return result

    def to_json(self) -> str:
        """Return the error as a compact JSON string."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


class CircuitHashMismatch(ApiError):
    """The client's circuit hash differs from the server's circuit."""

    kind = "CircuitHashMismatch"
    status = HTTPStatus.BAD_REQUEST

    def __init__(self) -> None:
        super().__init__("circuit hash mismatch")


class UnexpectedWireFormat(ApiError):
    """The request body could not be understood."""

    kind = "UnexpectedWireFormat"
    status = HTTPStatus.BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(f"unexpected wire format: {detail}")
        self.detail = detail

    def _payload(self) -> Any:
        return self.detail


class MpcRequestRejected(ApiError):
    """The server's handler refused the requested computation."""

    kind = "MpcRequestRejected"
    status = HTTPStatus.BAD_REQUEST

    def __init__(self, reason: str) -> None:
        super().__init__(f"request rejected: {reason}")
        self.reason = reason

    def _payload(self) -> Any:
        return self.reason


class DuplicateEngineId(ApiError):
    """A new engine was given an id that is already in use."""

    kind = "DuplicateEngineId"
    status = HTTPStatus.BAD_REQUEST

    def __init__(self, engine_id: str) -> None:
        super().__init__(f"duplicate engine id {engine_id}")
        self.engine_id = engine_id

    def _payload(self) -> Any:
        return {"engine_id": self.engine_id}


class UnexpectedMessageId(ApiError):
    """A client message arrived out of order."""

    kind = "UnexpectedMessageId"
    status = HTTPStatus.BAD_REQUEST

    def __init__(self) -> None:
        super().__init__("unexpected message id")


class NoSuchEngineId(ApiError):
    """No engine is registered under the given id."""

    kind = "NoSuchEngineId"
    status = HTTPStatus.NOT_FOUND

    def __init__(self, engine_id: str) -> None:
        super().__init__(f"no such engine id {engine_id}")
        self.engine_id = engine_id

    def _payload(self) -> Any:
        return {"engine_id": self.engine_id}


class InternalError(ApiError):
    """An unexpected failure inside the server."""

    kind = "Internal"
    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def _payload(self) -> Any:
        return {"message": self.message}


class BincodeError(ApiError):
    """A message could not be encoded or decoded."""

    kind = "Bincode"
    status = HTTPStatus.BAD_REQUEST

    def __init__(self) -> None:
        super().__init__("message could not be encoded or decoded")


class EngineError(ApiError):
    """The computation engine failed."""

    kind = "Engine"
    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self) -> None:
        super().__init__("engine failure")


class IncompatibleVersions(ApiError):
    """Client and server run different protocol versions."""

    kind = "IncompatibleVersions"
    status = HTTPStatus.BAD_REQUEST

    def __init__(self, client_version: str, server_version: str) -> None:
        super().__init__(
            f"client version {client_version} is incompatible with server version {server_version}"
        )
        self.client_version = client_version
        self.server_version = server_version

    def _payload(self) -> Any:
        return {
            "client_version": self.client_version,
            "server_version": self.server_version,
        }
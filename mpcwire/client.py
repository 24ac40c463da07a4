"""Client that acts as evaluator against a contributor server."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar
from urllib.parse import urljoin, urlsplit

import requests

from .msg_queue import MsgQueue
from .server import PROTOCOL_VERSION
from .types import EngineCreationResult, NewSession
from .wire import MessageLog, WireFormatError, decode_reply, encode_messages

_T = TypeVar("_T")

_BINCODE_MESSAGE = "A message could not be serialized/deserialized."


class ClientError(Exception):
    """An error during validation or execution of the protocol on the client side."""


class ServerResponseError(ClientError):
    """The server answered with an error."""

    def __init__(self, message: str) -> None:
        super().__init__(f"An error occurred on the server side: {message}")
        self.message = message


class MessageOffsetMismatchError(ClientError):
    """The client's message ids and the server's message ids disagree."""

    def __init__(self) -> None:
        super().__init__("The client's message id did not match the server's message id.")


def _post(url: str, **kwargs: Any) -> requests.Response:
    try:
        return requests.post(url, **kwargs)
    except requests.RequestException as exc:
        raise ClientError(
            f"An error occurred while trying to send a request to the server: {exc}"
        ) from exc


def _run_engine(step: Callable[[bytes], _T], msg: bytes) -> _T:
    try:
        return step(msg)
    except ClientError:
        raise
    except Exception as exc:
        raise ClientError(
            f"An error occurred during the client's execution of the MPC protocol: {exc}"
        ) from exc


def response_or_error(response: requests.Response) -> requests.Response:
    """Return a successful response, or raise ServerResponseError with its message.

    An error body of the form ``{"error": "...", "args": "..."}`` is reported
    as ``"<error>: <args>"``; any other body is reported as it is.
    """
    if 200 <= response.status_code < 300:
        return response
    text = response.text
    try:
        data = json.loads(text)
    except ValueError:
        data = None
    if (
        isinstance(data, dict)
        and isinstance(data.get("error"), str)
        and isinstance(data.get("args"), str)
    ):
        text = f"{data['error']}: {data['args']}"
    raise ServerResponseError(text)


class ClientSession:
    """A session created on the server, addressed by its own URL."""

    def __init__(self, url: str, request_headers: Mapping[str, str]) -> None:
        self.url = url
        self.request_headers = dict(request_headers)

    def evaluate(self, evaluator: Any) -> list[bool]:
        """Run the protocol to its end and return the evaluator's output bits.

        ``evaluator`` must provide ``steps()``, ``run(msg)`` returning
        ``(next_state, reply)`` and ``output(msg)`` returning the result.
        """
        queue = MsgQueue()
        last_received: int | None = None
        steps_remaining = evaluator.steps()
        while True:
            messages = list(queue.msgs_iter())
            upstream, committed = self.dialog(last_received, messages)
            last_sent = messages[-1][1] if messages else None
            if last_sent != committed:
                raise MessageOffsetMismatchError()
            if committed is not None:
                queue.flush_queue(committed)

            for msg, server_offset in upstream:
                expected = 0 if last_received is None else last_received + 1
                if server_offset != expected:
                    raise MessageOffsetMismatchError()
                if steps_remaining > 0:
                    evaluator, reply = _run_engine(evaluator.run, msg)
                    steps_remaining -= 1
                    queue.send(reply)
                else:
                    return list(_run_engine(evaluator.output, msg))
                last_received = server_offset

    def dialog(
        self, last_durably_received_offset: int | None, messages: Sequence[tuple[bytes, int]]
    ) -> tuple[MessageLog, int | None]:
        """Send queued messages and return the server's messages and committed offset."""
        try:
            body = encode_messages(last_durably_received_offset, messages)
        except WireFormatError as exc:
            raise ClientError(_BINCODE_MESSAGE) from exc
        response = _post(self.url, data=body, headers=self.request_headers)
        response = response_or_error(response)
        try:
            return decode_reply(response.content)
        except WireFormatError as exc:
            raise ClientError(_BINCODE_MESSAGE) from exc


class MpcClient:
    """Entry point that creates sessions on a contributor server."""

    def __init__(self, url: str) -> None:
        try:
            parts = urlsplit(url)
        except ValueError as exc:
            raise ClientError(f"The provided URL is invalid: {exc}") from exc
        if not parts.scheme or not parts.netloc:
            raise ClientError(f"The provided URL is invalid: {url!r}")
        self.url = url

    def new_session(
        self,
        circuit_hash: bytes,
        source_code: str,
        function: str,
        plaintext_metadata: str,
    ) -> ClientSession:
        """Ask the server to start an engine for the given program and function."""
        try:
            request = NewSession(
                plaintext_metadata=plaintext_metadata,
                program=source_code,
                function=function,
                circuit_hash=circuit_hash,
                client_version=PROTOCOL_VERSION,
            )
        except ValueError as exc:
            raise ClientError(f"The MPC program or the input is invalid: {exc}") from exc

        response = response_or_error(_post(self.url, json=request.to_dict()))
        try:
            result = EngineCreationResult.from_dict(response.json())
        except ValueError as exc:
            raise ClientError(f"Unexpected answer from the server: {exc}") from exc
        return ClientSession(urljoin(self.url, result.engine_id), result.request_headers)
"""WSGI server through which a client drives a contributor engine.

Routes:

* ``POST /`` with a JSON body creates a session and answers 201;
* ``POST /<engine_id>`` exchanges a batch of binary protocol messages;
* ``DELETE /<engine_id>`` removes a session;
* ``OPTIONS`` on either path answers CORS preflight requests.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Collection, Iterable
from typing import Any
from urllib.parse import urlsplit, urlunsplit

from werkzeug.exceptions import HTTPException, NotFound
from werkzeug.routing import Map, Rule
from werkzeug.wrappers import Request, Response

from .errors import (
    ApiError,
    BincodeError,
    CircuitHashMismatch,
    DuplicateEngineId,
    EngineError,
    IncompatibleVersions,
    NoSuchEngineId,
    UnexpectedWireFormat,
)
from .state import EngineRef, EngineRegistry
from .types import EngineCreationResult, HandleMpcRequestFn, MpcRequest, NewSession
from .wire import WireFormatError, decode_messages, encode_reply

PROTOCOL_VERSION = "0.3.0"
MAX_DIALOG_BODY = 20 * 1024 * 1024

_LOCAL_HOSTS = frozenset({"127.0.0.1", "localhost"})

ContributorFactory = Callable[[Any, list], tuple]
CircuitHashFn = Callable[[Any], bytes]


def _parse_origin(origin: str) -> tuple[str, str | None] | None:
    try:
        parts = urlsplit(origin)
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    normalized = urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", parts.query, parts.fragment)
    )
    return normalized, parts.hostname


def cors_headers(origin: str | None, allowed_origins: Collection[str] | None) -> dict[str, str]:
    """Return the CORS headers for a response to a request from ``origin``.

    Without configured origins every origin is allowed. Otherwise the origin
    is echoed back if it is configured (in normalized form, e.g. with a
    trailing slash) or points at the local host.
    """
    headers: dict[str, str] = {}
    if allowed_origins is None:
        headers["Access-Control-Allow-Origin"] = "*"
    elif origin:
        parsed = _parse_origin(origin)
        if parsed is not None:
            normalized, host = parsed
            if normalized in allowed_origins or host in _LOCAL_HOSTS:
                headers["Access-Control-Allow-Origin"] = origin
    headers["Access-Control-Allow-Methods"] = "POST, GET, PATCH, OPTIONS"
    headers["Access-Control-Allow-Headers"] = "*"
    headers["Access-Control-Allow-Credentials"] = "true"
    return headers


def _error_response(err: ApiError) -> Response:
    return Response(err.to_json(), status=int(err.status), mimetype="application/json")


class MpcServer:
    """WSGI application serving contributor engines.

    ``handler`` chooses circuit and input for a request, ``contributor_factory``
    turns ``(circuit, input_bits)`` into ``(contributor, initial_msg)`` and
    ``circuit_hash`` computes the 32-byte hash a client must present.
    """

    def __init__(
        self,
        handler: HandleMpcRequestFn,
        contributor_factory: ContributorFactory,
        circuit_hash: CircuitHashFn,
        allowed_origins: Iterable[str] | None = None,
    ) -> None:
        self.registry = EngineRegistry(handler)
        self._contributor_factory = contributor_factory
        self._circuit_hash = circuit_hash
        self.allowed_origins = None if allowed_origins is None else frozenset(allowed_origins)
        self._urls = Map(
            [
                Rule("/", methods=["OPTIONS"], endpoint="preflight"),
                Rule("/", methods=["POST"], endpoint="create"),
                Rule("/<engine_id>", methods=["OPTIONS"], endpoint="preflight"),
                Rule("/<engine_id>", methods=["POST"], endpoint="dialog"),
                Rule("/<engine_id>", methods=["DELETE"], endpoint="delete"),
            ]
        )

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        request = Request(environ)
        response = self._dispatch(request)
        response.headers.update(cors_headers(request.headers.get("Origin"), self.allowed_origins))
        return response(environ, start_response)

    def _dispatch(self, request: Request) -> Response:
        adapter = self._urls.bind_to_environ(request.environ)
        try:
            endpoint, args = adapter.match()
        except HTTPException as exc:
            return exc.get_response(request.environ)
        try:
            if endpoint == "preflight":
                return Response(status=200)
            if endpoint == "create":
                return self._create_response(request)
            if endpoint == "delete":
                self.delete_session(args["engine_id"])
                return Response(status=200)
            body = request.stream.read(MAX_DIALOG_BODY)
            reply = self.dialog(args["engine_id"], body)
            return Response(reply, status=200, mimetype="application/octet-stream")
        except ApiError as err:
            return _error_response(err)

    def _create_response(self, request: Request) -> Response:
        if request.mimetype != "application/json":
            return NotFound().get_response(request.environ)
        payload = request.get_json(silent=True)
        if payload is None:
            raise UnexpectedWireFormat("request body is not valid JSON")
        result = self.create_session(payload)
        return Response(
            json.dumps(result.to_dict()),
            status=201,
            mimetype="application/json",
            headers={"Location": f"/{result.engine_id}"},
        )

    def create_session(self, payload: Any) -> EngineCreationResult:
        """Start an engine for a session request given in its JSON form."""
        try:
            new_session = NewSession.from_dict(payload)
        except ValueError as exc:
            raise UnexpectedWireFormat(str(exc)) from exc
        if new_session.client_version != PROTOCOL_VERSION:
            raise IncompatibleVersions(new_session.client_version, PROTOCOL_VERSION)
        session = self.registry.handle_input(
            MpcRequest(
                plaintext_metadata=new_session.plaintext_metadata,
                program=new_session.program,
                function=new_session.function,
            )
        )
        if bytes(self._circuit_hash(session.circuit)) != new_session.circuit_hash:
            raise CircuitHashMismatch()

        engine_id = str(uuid.uuid4())
        try:
            contributor, initial_msg = self._contributor_factory(
                session.circuit, list(session.input_from_server)
            )
            engine = EngineRef(contributor, initial_msg)
        except Exception as exc:
            raise EngineError() from exc
        if not self.registry.insert_engine(engine_id, engine):
            raise DuplicateEngineId(engine_id)

        return EngineCreationResult(
            engine_id=engine_id,
            request_headers=dict(session.request_headers),
            server_version=PROTOCOL_VERSION,
        )

    def delete_session(self, engine_id: str) -> None:
        """Remove a session, raising NoSuchEngineId if it does not exist."""
        if not self.registry.drop_engine(engine_id):
            raise NoSuchEngineId(engine_id)

    def dialog(self, engine_id: str, body: bytes) -> bytes:
        """Process a batch of client messages and return the encoded reply."""
        try:
            offset, messages = decode_messages(body)
        except WireFormatError as exc:
            raise BincodeError() from exc
        engine = self.registry.lookup(engine_id)
        with engine.lock:
            if offset is not None:
                engine.flush_queue(offset)
            for msg, message_id in messages:
                engine.process_message(msg, message_id)
            reply = encode_reply(
                engine.dump_messages(), engine.last_durably_received_client_event_offset
            )
            done = engine.is_done()
        if done:
            self.registry.drop_engine(engine_id)
        return reply


def build(
    handler: HandleMpcRequestFn,
    contributor_factory: ContributorFactory,
    circuit_hash: CircuitHashFn,
    allowed_origins: Iterable[str] | None = None,
) -> MpcServer:
    """Create a server that answers requests using the given handler logic."""
    return MpcServer(handler, contributor_factory, circuit_hash, allowed_origins)
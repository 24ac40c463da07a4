# mpcwire

HTTP transport for two-party secure computation.

One party, the **contributor**, runs a server. The other party, the
**evaluator**, connects as a client. The two exchange protocol messages over
HTTP until the evaluator holds the result.

`mpcwire` handles the transport: sessions, message ordering, retransmission
of unconfirmed messages and error reporting. The cryptographic engine that
produces and consumes the protocol messages is supplied by you, as
contributor and evaluator objects.

## What is in the package

| Module              | Purpose |
|---------------------|---------|
| `mpcwire.msg_queue` | `MsgQueue`: outgoing messages numbered from 0, kept until the peer confirms them |
| `mpcwire.wire`      | `encode_messages` / `decode_messages` (client request body), `encode_reply` / `decode_reply` (server reply body), `WireFormatError` |
| `mpcwire.errors`    | `ApiError` and its subclasses, each with an HTTP `status` and a JSON form (`to_dict`, `to_json`) |
| `mpcwire.types`     | `MpcRequest`, `MpcSession`, `NewSession`, `EngineCreationResult` |
| `mpcwire.state`     | `EngineRef` (one running session) and `EngineRegistry` (all sessions, thread-safe) |
| `mpcwire.server`    | `MpcServer` (a WSGI application), `build`, `cors_headers`, `PROTOCOL_VERSION` |
| `mpcwire.handlers`  | `ConfiguredHandler`, `load_handler_config`, `program_mismatch`, `set_fly_instance_id` |
| `mpcwire.client`    | `MpcClient`, `ClientSession`, `response_or_error`, `ClientError`, `ServerResponseError`, `MessageOffsetMismatchError` |

## The engine objects you supply

* A **contributor factory** is called as `factory(circuit, input_bits)` and
  returns `(contributor, initial_msg)`. The contributor has `steps()` (the
  number of protocol rounds) and `run(msg)` returning `(next_state, reply)`.
  Messages are `bytes`.
* A **circuit hash** function takes a circuit and returns its 32-byte hash.
* An **evaluator** has `steps()`, `run(msg)` returning `(next_state, reply)`,
  and `output(msg)` returning the result bits.

## The protocol

1. The client posts a `NewSession` as JSON (`Content-Type: application/json`)
   to the server's base URL. It names the program, the function to run, the
   plaintext metadata that lets the server choose its input, the circuit hash
   as a list of 32 byte values, and the client version.
2. The server passes an `MpcRequest` to its handler, which returns an
   `MpcSession` or raises `ValueError` to reject the request
   (`MpcRequestRejected`). The client version must equal
   `PROTOCOL_VERSION` (`IncompatibleVersions`) and the hash of the handler's
   circuit must equal the client's hash (`CircuitHashMismatch`). The server
   then starts a contributor and replies `201 Created` with an
   `EngineCreationResult`: the engine id, the headers the client must send on
   every later request, and the server version.
3. The client then posts binary bodies to `<base>/<engine_id>`. Each body
   holds the id of the last server message the client has received and the
   client messages not yet confirmed. Each reply holds the server's
   unconfirmed messages and the id of the last client message the server
   accepted. Confirmed messages are dropped from both queues, so a lost
   request can be repeated. Client messages must arrive in order, otherwise
   the server answers `UnexpectedMessageId`. Bodies are read up to 20 MiB.
4. When the contributor has no steps left the server forgets the engine. A
   session can also be removed early with `DELETE <base>/<engine_id>`.

Errors come back as JSON, `{"error": "<Kind>"}` or
`{"error": "<Kind>", "args": ...}`, with status 400, 404 or 500. `OPTIONS`
requests on both paths answer CORS preflight checks.

## Running a server

`build` returns a WSGI application, so any WSGI server can host it:

```python
from werkzeug.serving import run_simple

from mpcwire.server import build
from mpcwire.types import MpcSession


def handler(request):
    # Choose the circuit and the server's private input from the request.
    return MpcSession(
        circuit=my_circuit,
        input_from_server=my_input_bits,
        request_headers={},
    )


app = build(handler, my_contributor_factory, my_circuit_hash, allowed_origins=None)
run_simple("127.0.0.1", 8000, app)
```

With `allowed_origins` left as `None`, every response carries
`Access-Control-Allow-Origin: *`. Given a collection of origins, a request's
`Origin` is echoed back only if its normalized form (for example
`https://app.example.com/`) is in the collection or its host is `localhost`
or `127.0.0.1`; see `cors_headers`.

### Serving fixed inputs from a configuration directory

`load_handler_config(directory)` reads `mpc.json` and then `mpc.toml` from a
directory, and then the environment variable `MPC_HANDLERS` (name in any
case, value a JSON object), merging later sources over earlier ones. It
returns the `handlers` table: function name → plaintext metadata → input
literal, all strings. Reading `mpc.toml` needs Python 3.11 or newer.

`ConfiguredHandler(source_code, sessions)` answers requests from a table of
function name → `(circuit, {metadata: input_bits})`. It refuses, with a
`ValueError`, a program that differs from its own source over their common
length (naming the first differing character, see `program_mismatch`), an
unknown function, and unknown metadata.

`set_fly_instance_id(request_headers, environ)` returns the headers with a
`fly-force-instance-id` entry added when `FLY_ALLOC_ID` is set, so that a
client keeps talking to the same Fly.io instance.

## Using the client

```python
from mpcwire.client import MpcClient

client = MpcClient("http://127.0.0.1:8000/")
session = client.new_session(circuit_hash, source_code, "main", "metadata for the server")
output_bits = session.evaluate(my_evaluator)
```

The session URL is the engine id joined to the base URL, so give the base
URL with a trailing slash when it has a path. `ClientSession.evaluate`
drives the dialog until the evaluator produces its output. Failures raise
subclasses of `ClientError`: `ServerResponseError` carries the server's
error text (`"<error>: <args>"` when the body has that form), and
`MessageOffsetMismatchError` is raised when the message ids of the two
parties disagree.

## What the package does not do

* It contains no secure-computation engine: no circuits, no garbling, no
  contributor or evaluator. These are passed in by the caller.
* It does not parse, type-check or compile programs, and does not turn input
  literals into bits. `load_handler_config` returns the literals as strings;
  converting them is left to the caller.
* It installs no command-line programs. A server is started by hosting the
  application from `build` in a WSGI server of your choice.

## Tests

The tests use `pytest` and `responses`, both listed in the `test` extra:

```sh
pip install -e ".[test]"
pytest
```
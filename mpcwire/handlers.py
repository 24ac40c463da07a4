"""Request handlers that choose the server's circuit and input."""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from .types import MpcRequest, MpcSession

try:
    import tomllib
except ModuleNotFoundError:
    tomllib = None  # type: ignore[assignment]

HandlerConfig = dict[str, dict[str, str]]

_FLY_HEADER = "fly-force-instance-id"
_ENV_KEY = "mpc_handlers"


def set_fly_instance_id(
    request_headers: Mapping[str, str], environ: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Return the headers extended with the fly.io instance id, if one is set.

    The id lets a client be routed back to the same instance.
    """
    env = os.environ if environ is None else environ
    headers = dict(request_headers)
    alloc_id = env.get("FLY_ALLOC_ID")
    if alloc_id is not None:
        headers[_FLY_HEADER] = alloc_id.split("-")[0]
    return headers


def _snippet(code: str, index: int) -> str:
    snippet = code[index:index + 10].replace("\\", "\\\\").replace("\n", "\\n")
    return f"'{snippet}...'"


def program_mismatch(client_program: str, server_program: str) -> str | None:
    """Describe where two programs first differ, or return None.

    Only the common length is compared, so a program that is a prefix of the
    other does not count as different.
    """
    index = next(
        (i for i, (a, b) in enumerate(zip(client_program, server_program)) if a != b),
        None,
    )
    if index is None:
        return None
    return (
        f"Programs differ at character {index}: "
        f"{_snippet(client_program, index)}, {_snippet(server_program, index)}"
    )


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        elif isinstance(value, Mapping):
            merged[key] = _merge({}, value)
        else:
            merged[key] = value
    return merged


def _validate(handlers: Any) -> HandlerConfig:
    if not isinstance(handlers, Mapping):
        raise ValueError("'handlers' must map function names to handler tables")
    config: HandlerConfig = {}
    for fn_name, table in handlers.items():
        if not isinstance(table, Mapping) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in table.items()
        ):
            raise ValueError(f"handlers of {fn_name!r} must map metadata strings to input literals")
        config[str(fn_name)] = dict(table)
    return config


def load_handler_config(directory: str | os.PathLike[str] = ".") -> HandlerConfig:
    """Read the handler table from ``mpc.json``, ``mpc.toml`` and the environment.

    Later sources are merged over earlier ones. The environment variable
    ``MPC_HANDLERS`` (any case) holds the table as a JSON object. Reading
    ``mpc.toml`` needs Python 3.11 or newer.
    """
    base = Path(directory)
    merged: dict[str, Any] = {}

    json_path = base / "mpc.json"
    if json_path.is_file():
        data = json.loads(json_path.read_text(encoding="utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError(f"{json_path} must hold a JSON object")
        merged = _merge(merged, data)

    toml_path = base / "mpc.toml"
    if toml_path.is_file():
        if tomllib is None:
            raise RuntimeError("reading mpc.toml requires Python 3.11 or newer")
        merged = _merge(merged, tomllib.loads(toml_path.read_text(encoding="utf-8")))

    env_value = next((v for k, v in os.environ.items() if k.lower() == _ENV_KEY), None)
    if env_value is not None:
        merged = _merge(merged, {"handlers": json.loads(env_value)})

    return _validate(merged.get("handlers", {}))


class ConfiguredHandler:
    """Handler that serves a fixed program with inputs chosen by metadata.

    ``sessions`` maps each function name to ``(circuit, inputs)``, where
    ``inputs`` maps plaintext metadata to the server's input bits.
    Rejections are raised as ValueError.
    """

    def __init__(
        self,
        source_code: str,
        sessions: Mapping[str, tuple[Any, Mapping[str, Sequence[bool]]]],
    ) -> None:
        self.source_code = source_code.strip()
        self._sessions = {
            fn_name: (circuit, {meta: list(bits) for meta, bits in inputs.items()})
            for fn_name, (circuit, inputs) in sessions.items()
        }

    def __call__(self, request: MpcRequest) -> MpcSession:
        program_hash = hashlib.sha256(request.program.strip().encode("utf-8")).hexdigest()
        mismatch = program_mismatch(request.program, self.source_code)
        if mismatch is not None:
            raise ValueError(mismatch)

        entry = self._sessions.get(request.function)
        if entry is None:
            raise ValueError(
                f"could not find a handler for the function '{request.function}' "
                f"(in the program with hash {program_hash}):\n{request.program}"
            )
        circuit, inputs = entry
        bits = inputs.get(request.plaintext_metadata)
        if bits is None:
            raise ValueError(
                f"could not find a handler for metadata '{request.plaintext_metadata}' "
                f"(for the function '{request.function}' in the program with hash "
                f"{program_hash}):\n{request.program} "
            )
        return MpcSession(circuit=circuit, input_from_server=list(bits), request_headers={})
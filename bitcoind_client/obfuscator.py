"""Redaction of sensitive values from logged requests and responses.

These helpers only ever produce copies destined for log records. Values sent
to the daemon and returned to callers are never touched. Which fields are
sensitive is decided per method by the :mod:`bitcoind_client.methods`
registry; this module only knows how to apply those rules.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Mapping, Optional, Union

from .methods import MASK, MethodRegistry

_BASIC_AUTH = re.compile(r"(Basic )(.*)")
_BINARY_CONTENT_TYPE = "application/octet-stream"

Body = Union[str, bytes, None]


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _decode(body: Body) -> Any:
    if body is None:
        return None
    if isinstance(body, bytes):
        body = body.decode("utf-8")
    return json.loads(body)


def obfuscate_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    result = dict(headers)
    for name, value in result.items():
        if name.lower() == "authorization" and isinstance(value, str):
            result[name] = _BASIC_AUTH.sub(rf"\g<1>{MASK}", value)
    return result


def _obfuscate_call(call: Any, registry: MethodRegistry) -> Any:
    if not isinstance(call, dict) or not isinstance(call.get("method"), str):
        return call
    descriptor = registry.lookup(call["method"])
    if descriptor is None or descriptor.obfuscate_request is None or "params" not in call:
        return call
    return {**call, "params": descriptor.obfuscate_request(call["params"])}


def obfuscate_request_body(body: Body, registry: MethodRegistry) -> Body:
    """Redact parameters of a single or batch JSON-RPC request body.

    Bodies that need no redaction, including ones that are not JSON at all,
    are returned unchanged.
    """

    try:
        decoded = _decode(body)
    except ValueError:
        return body

    if isinstance(decoded, list):
        obfuscated: Any = [_obfuscate_call(call, registry) for call in decoded]
    else:
        obfuscated = _obfuscate_call(decoded, registry)

    if obfuscated == decoded:
        return body
    return _dumps(obfuscated)


def _obfuscate_reply(reply: Any, method: Optional[str], registry: MethodRegistry) -> Any:
    if not isinstance(reply, dict) or not isinstance(method, str):
        return reply
    descriptor = registry.lookup(method)
    if descriptor is None or descriptor.obfuscate_response is None or not reply.get("result"):
        return reply
    return {**reply, "result": descriptor.obfuscate_response(reply["result"])}


def _methods_by_id(request: Any) -> Dict[Any, str]:
    calls = request if isinstance(request, list) else [request]
    methods = {}
    for call in calls:
        if isinstance(call, dict) and isinstance(call.get("method"), str):
            identifier = call.get("id")
            if isinstance(identifier, (str, int)):
                methods[identifier] = call["method"]
    return methods


def obfuscate_response_body(
    body: Body,
    content_type: Optional[str],
    request_body: Body,
    registry: MethodRegistry,
) -> Body:
    """Redact results of a JSON-RPC response using the originating request.

    Responses do not carry the method name, so each reply is matched by ``id``
    to the call that produced it.
    """

    if not body:
        return body
    if content_type and content_type.split(";", 1)[0].strip().lower() == _BINARY_CONTENT_TYPE:
        return MASK

    try:
        decoded = _decode(body)
        request = _decode(request_body)
    except ValueError:
        return body

    if isinstance(decoded, list):
        methods = _methods_by_id(request)
        obfuscated: Any = [
            _obfuscate_reply(reply, methods.get(_reply_id(reply)), registry) for reply in decoded
        ]
    elif isinstance(request, dict):
        obfuscated = _obfuscate_reply(decoded, request.get("method"), registry)
    else:
        return body

    if obfuscated == decoded:
        return body
    return _dumps(obfuscated)


def _reply_id(reply: Any) -> Any:
    if isinstance(reply, dict) and isinstance(reply.get("id"), (str, int)):
        return reply["id"]
    return None

"""Decoding of bitcoind JSON-RPC and REST responses."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence

from requests import Response

from . import jsonutil
from .errors import RpcError

LOGGER = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
GENERIC_RPC_ERROR_CODE = -32603
GENERIC_RPC_ERROR_MESSAGE = "An error occurred while processing the RPC call to bitcoind"
PARSE_ERROR_CODE = -32700


def media_type(response: Response) -> str:
    content_type = response.headers.get("content-type") or ""
    return content_type.split(";", 1)[0].strip().lower()


def _is_error_page(response: Response) -> bool:
    return media_type(response) != JSON_CONTENT_TYPE and response.status_code != 200


def get_rpc_result(body: Any) -> Any:
    """Return ``result`` from a single JSON-RPC response object or raise ``RpcError``."""

    if not isinstance(body, Mapping):
        raise RpcError(PARSE_ERROR_CODE, "Invalid RPC response object", body=body)

    error = body.get("error")
    if error is not None:
        if not isinstance(error, Mapping):
            error = {}
        code = error.get("code")
        if isinstance(code, bool) or not isinstance(code, int):
            code = GENERIC_RPC_ERROR_CODE
        raise RpcError(
            code=code,
            message=error.get("message") or GENERIC_RPC_ERROR_MESSAGE,
        )

    # Should never trigger against a compliant daemon.
    if "result" not in body:
        raise RpcError(PARSE_ERROR_CODE, "Missing `result` on the RPC call result")

    return body["result"]


def _capture(body: Any) -> Any:
    try:
        return get_rpc_result(body)
    except RpcError as exc:
        return exc


def _correlate(bodies: Sequence[Any], request_ids: Optional[Sequence[str]]) -> List[Any]:
    """Order batch responses to match ``request_ids`` when every id matches."""

    if not request_ids or len(request_ids) != len(bodies):
        return list(bodies)
    by_id = {}
    for body in bodies:
        identifier = body.get("id") if isinstance(body, Mapping) else None
        if not isinstance(identifier, (str, int)) or identifier in by_id:
            return list(bodies)
        by_id[identifier] = body
    if set(by_id) != set(request_ids):
        LOGGER.debug("Batch response ids do not match request ids; keeping response order")
        return list(bodies)
    return [by_id[identifier] for identifier in request_ids]


class Parser:
    def __init__(self, headers: bool = False) -> None:
        self.headers = headers

    def _wrap(self, payload: Any, response: Response) -> Any:
        if self.headers:
            return payload, response.headers
        return payload

    def rpc(self, response: Response, request_ids: Optional[Sequence[str]] = None) -> Any:
        # Authentication failures and the like come back as empty or HTML pages.
        if _is_error_page(response):
            raise RpcError(response.status_code, response.reason, body=response.text)

        try:
            body = jsonutil.loads(response.text)
        except ValueError as exc:
            raise RpcError(
                PARSE_ERROR_CODE, "Unable to parse the RPC response body", body=response.text
            ) from exc

        if not isinstance(body, list):
            return self._wrap(get_rpc_result(body), response)

        batch = [_capture(item) for item in _correlate(body, request_ids)]
        return self._wrap(batch, response)

    def rest(self, extension: str, response: Response) -> Any:
        # Errors are plain text terminated by CRLF, even for binary requests.
        if _is_error_page(response):
            body = response.content.decode("utf-8", errors="replace")
            raise RpcError(response.status_code, body.removesuffix("\r\n"), body=body)

        if extension == "json":
            try:
                payload: Any = jsonutil.loads(response.text)
            except ValueError as exc:
                raise RpcError(
                    PARSE_ERROR_CODE, "Unable to parse the REST response body", body=response.text
                ) from exc
        elif extension == "bin":
            payload = response.content
        else:
            payload = response.text

        return self._wrap(payload, response)

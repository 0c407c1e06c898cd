"""Construction of JSON-RPC request objects."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .errors import UnsupportedMethodError
from .versioning import ClientCapabilities

Parameters = Union[Sequence[Any], Mapping[str, Any]]


@dataclass
class RpcRequest:
    id: str
    method: str
    params: Union[List[Any], Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "method": self.method, "params": self.params}


def _timestamp() -> str:
    return str(int(time.time() * 1000))


class Requester:
    def __init__(self, capabilities: ClientCapabilities) -> None:
        self.capabilities = capabilities

    @property
    def version(self) -> Optional[str]:
        return self.capabilities.version

    def _params(self, parameters: Parameters) -> Union[List[Any], Dict[str, Any]]:
        if isinstance(parameters, Mapping):
            return dict(parameters)
        params = list(parameters)
        if (
            self.capabilities.supports_named_parameters
            and len(params) == 1
            and isinstance(params[0], Mapping)
        ):
            return dict(params[0])
        return params

    def prepare(
        self,
        method: str,
        parameters: Optional[Parameters] = None,
        suffix: Optional[int] = None,
    ) -> RpcRequest:
        """Build a request, rejecting methods the configured version lacks."""

        method = method.lower()
        if self.version and not self.capabilities.is_supported(method):
            raise UnsupportedMethodError(method, self.version)

        identifier = _timestamp()
        if suffix is not None:
            identifier = f"{identifier}-{suffix}"

        return RpcRequest(id=identifier, method=method, params=self._params(parameters or ()))

    def prepare_batch(self, calls: Iterable[Mapping[str, Any]]) -> List[RpcRequest]:
        return [
            self.prepare(call["method"], call.get("parameters"), suffix=index)
            for index, call in enumerate(calls)
        ]

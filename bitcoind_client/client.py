"""Bitcoin Core JSON-RPC and REST client."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Union
from urllib.parse import quote

import requests
from pydantic import ValidationError
from requests.auth import HTTPBasicAuth

from .autodetect import resolve_credentials
from .config import ClientConfig, SSLOptions
from .errors import ConfigurationError, UnsupportedExtensionError
from .methods import DEFAULT_REGISTRY, MethodDescriptor, MethodRegistry
from .parser import Parser
from .request_logger import RequestLogger
from .requester import Requester, RpcRequest
from .versioning import ClientCapabilities, compute_capabilities

LOGGER = logging.getLogger(__name__)

REST_EXTENSIONS = ("json", "hex", "bin")
HEADER_EXTENSIONS = ("hex", "bin")
MULTIWALLET = "multiwallet"

BatchCall = Mapping[str, Any]


def _rpc_method(descriptor: MethodDescriptor) -> Callable[..., Any]:
    method = descriptor.key

    def call(self: "Client", *parameters: Any) -> Any:
        return self.command(method, *parameters)

    call.__name__ = descriptor.attribute
    call.__qualname__ = f"Client.{descriptor.attribute}"
    call.__doc__ = f"Call the ``{method}`` RPC ({descriptor.category or 'misc'}, bitcoind {descriptor.version_range})."
    return call


def _bind_rpc_methods(registry: MethodRegistry) -> Callable[[type], type]:
    """Install one forwarding method per registry entry on the decorated class."""

    def decorate(cls: type) -> type:
        for descriptor in registry:
            if descriptor.attribute in vars(cls):
                raise TypeError(f"RPC method {descriptor.name} clashes with {cls.__name__}.{descriptor.attribute}")
            setattr(cls, descriptor.attribute, _rpc_method(descriptor))
        cls._rpc_methods = tuple(descriptor.attribute for descriptor in registry)
        return cls

    return decorate


def _validate_extension(extension: str, allowed: Sequence[str] = REST_EXTENSIONS) -> str:
    if extension not in allowed:
        raise UnsupportedExtensionError(extension)
    return extension


@_bind_rpc_methods(DEFAULT_REGISTRY)
class Client:
    """Bitcoin Core client exposing every known RPC method and the REST interface.

    Options are validated through :class:`~bitcoind_client.config.ClientConfig`,
    either passed in as ``config`` or given as keyword arguments::

        client = Client(network="regtest", username="foo", password="bar", version="0.17.0")
        client.get_blockchain_info()
        client.command([{"method": "getnewaddress"}, {"method": "getbalance"}])
    """

    _rpc_methods: tuple[str, ...] = ()

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        registry: MethodRegistry = DEFAULT_REGISTRY,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
        **options: Any,
    ) -> None:
        if config is None:
            try:
                config = ClientConfig(**options)
            except ValidationError as exc:
                raise ConfigurationError(str(exc)) from exc
        elif options:
            raise TypeError("Pass either a ClientConfig or keyword options, not both")

        self.config = config
        self.registry = registry
        self.host = config.host
        self.port = config.port
        self.network = config.network
        self.ssl: SSLOptions = config.ssl
        self.timeout = config.timeout
        self.headers = config.headers
        self.wallet = config.wallet
        self.capabilities: ClientCapabilities = compute_capabilities(registry, config.version)
        self.version = self.capabilities.version

        credentials = resolve_credentials(config)
        self.auth = HTTPBasicAuth(*credentials) if credentials else None

        scheme = "https" if self.ssl.enabled else "http"
        self.base_url = f"{scheme}://{self.host}:{self.port}"
        self.session = session or requests.Session()
        self.requester = Requester(self.capabilities)
        self.parser = Parser(headers=self.headers)
        self.request_logger = RequestLogger(registry, logger)

    @classmethod
    def rpc_methods(cls) -> tuple[str, ...]:
        return cls._rpc_methods

    # Transport ------------------------------------------------------------

    @property
    def _verify(self) -> Union[bool, str]:
        if self.ssl.strict and self.ssl.ca:
            return self.ssl.ca
        return bool(self.ssl.strict)

    def _send(self, method: str, path: str, data: Optional[str] = None) -> requests.Response:
        headers = {"Content-Type": "application/json"} if data is not None else {}
        request = requests.Request(
            method,
            f"{self.base_url}{path}",
            data=data,
            headers=headers,
            auth=self.auth,
        )
        prepared = self.session.prepare_request(request)
        request_id = self.request_logger.log_request(prepared)
        response = self.session.send(
            prepared,
            timeout=self.timeout / 1000,
            verify=self._verify,
        )
        self.request_logger.log_response(request_id, prepared, response)
        return response

    def _supports_multiwallet(self, method: str) -> bool:
        return self.capabilities.has_feature(method, MULTIWALLET)

    def _rpc_path(self, methods: Iterable[str]) -> str:
        if self.wallet and any(self._supports_multiwallet(method) for method in methods):
            return f"/wallet/{quote(self.wallet, safe='')}"
        return "/"

    # RPC ------------------------------------------------------------------

    def command(self, method: Union[str, List[BatchCall]], *parameters: Any) -> Any:
        """Execute an RPC call, or a batch when ``method`` is a list of calls.

        Batch calls are mappings with a ``method`` and optional ``parameters``.
        A failing call inside a batch is returned as an ``RpcError`` in its
        position rather than raised.
        """

        body: Union[RpcRequest, List[RpcRequest]]
        if isinstance(method, list):
            body = self.requester.prepare_batch(method)
            payload: Any = [request.to_dict() for request in body]
            request_ids: Optional[List[str]] = [request.id for request in body]
            path = self._rpc_path(request.method for request in body)
        else:
            body = self.requester.prepare(method, parameters)
            payload = body.to_dict()
            request_ids = None
            path = self._rpc_path([body.method])

        response = self._send("POST", path, data=json.dumps(payload))
        return self.parser.rpc(response, request_ids)

    # REST -----------------------------------------------------------------

    def _rest(self, path: str, extension: str) -> Any:
        response = self._send("GET", f"/rest/{path}")
        return self.parser.rest(extension, response)

    def get_transaction_by_hash(self, txid: str, extension: str = "json") -> Any:
        """Return a transaction in binary, hex-encoded binary or JSON format."""

        _validate_extension(extension)
        return self._rest(f"tx/{txid}.{extension}", extension)

    def get_block_by_hash(self, block_hash: str, summary: bool = False, extension: str = "json") -> Any:
        """Return a block in binary, hex-encoded binary or JSON format.

        With ``summary`` enabled the JSON response only lists transaction
        hashes instead of full transaction details.
        """

        _validate_extension(extension)
        prefix = "block/notxdetails" if summary else "block"
        return self._rest(f"{prefix}/{block_hash}.{extension}", extension)

    def get_block_headers_by_hash(self, block_hash: str, count: int, extension: str = "hex") -> Any:
        """Return ``count`` block headers starting at ``block_hash`` and going up the chain."""

        _validate_extension(extension, HEADER_EXTENSIONS)
        return self._rest(f"headers/{count}/{block_hash}.{extension}", extension)

    def get_blockchain_information(self) -> Any:
        return self._rest("chaininfo.json", "json")

    def get_unspent_transaction_outputs(
        self,
        outpoints: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
        extension: str = "json",
    ) -> Any:
        """Query unspent outputs for ``outpoints`` (BIP64).

        Each outpoint is a mapping with the transaction ``id`` and output
        ``index``.
        """

        _validate_extension(extension)
        if isinstance(outpoints, Mapping):
            outpoints = [outpoints]
        sets = "/".join(f"{outpoint['id']}-{outpoint['index']}" for outpoint in outpoints)
        return self._rest(f"getutxos/checkmempool/{sets}.{extension}", extension)

    def get_memory_pool_content(self) -> Any:
        return self._rest("mempool/contents.json", "json")

    def get_memory_pool_information(self) -> Any:
        return self._rest("mempool/info.json", "json")

    # Lifecycle ------------------------------------------------------------

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Client(base_url={self.base_url!r}, network={self.network!r}, version={self.version!r})"

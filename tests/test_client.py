import json
import logging
import os

import pytest
import requests
from requests import Response

from bitcoind_client.client import Client
from bitcoind_client.config import ClientConfig
from bitcoind_client.errors import (
    ConfigurationError,
    InvalidVersionError,
    RpcError,
    UnsupportedExtensionError,
    UnsupportedMethodError,
)
from bitcoind_client.methods import DEFAULT_REGISTRY


class DummyResponse(Response):
    def __init__(self, status_code: int, body, content_type: str = "application/json", reason=None) -> None:
        super().__init__()
        self.status_code = status_code
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        self._content = body if isinstance(body, bytes) else body.encode()
        self.encoding = "utf-8"
        self.reason = reason
        self.headers["Content-Type"] = content_type


class Recorder:
    """Stands in for ``Session.send`` and records every prepared request."""

    def __init__(self, respond):
        self.respond = respond
        self.calls = []

    def __call__(self, prepared, **kwargs):
        self.calls.append((prepared, kwargs))
        return self.respond(prepared)

    @property
    def bodies(self):
        return [json.loads(prepared.body) for prepared, _ in self.calls]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.upper().startswith("BITCOIND_"):
            monkeypatch.delenv(name)
    monkeypatch.setattr("bitcoind_client.requester._timestamp", lambda: "1700000000000")


def _result(result, identifier="1700000000000"):
    return {"result": result, "error": None, "id": identifier}


def _client(monkeypatch, respond, **options):
    options.setdefault("username", "foo")
    options.setdefault("password", "bar")
    client = Client(**options)
    recorder = Recorder(respond)
    monkeypatch.setattr(client.session, "send", recorder)
    return client, recorder


def test_defaults():
    client = Client()

    assert client.host == "localhost"
    assert client.port == 8332
    assert client.network == "mainnet"
    assert client.timeout == 30000
    assert client.headers is False
    assert client.version is None
    assert client.ssl.enabled is False
    assert client.ssl.strict is False
    assert client.base_url == "http://localhost:8332"


@pytest.mark.parametrize(("network", "port"), [("mainnet", 8332), ("testnet", 18332), ("regtest", 18332)])
def test_default_port_by_network(network, port):
    assert Client(network=network).port == port


def test_explicit_port_wins():
    assert Client(network="regtest", port=9999).port == 9999


def test_invalid_network_is_rejected():
    with pytest.raises(ConfigurationError) as excinfo:
        Client(network="foo")

    assert 'Invalid network name "foo"' in str(excinfo.value)
    assert isinstance(excinfo.value, ValueError)


def test_invalid_version_is_rejected():
    with pytest.raises(InvalidVersionError) as excinfo:
        Client(version="0.12")

    assert str(excinfo.value) == 'Invalid Version "0.12"'


def test_four_part_version_is_normalized():
    assert Client(version="0.15.0.1").version == "0.15.0"


def test_config_and_options_are_exclusive():
    with pytest.raises(TypeError):
        Client(ClientConfig(), host="example.org")


def test_ssl_shorthand_enables_strict_verification():
    client = Client(ssl=True)

    assert client.base_url.startswith("https://")
    assert client.ssl.strict is True
    assert client._verify is True


def test_ssl_options():
    assert Client(ssl={"enabled": True, "strict": False})._verify is False
    assert Client(ssl={"enabled": True, "ca": "/etc/ca.pem"})._verify == "/etc/ca.pem"


def test_every_registry_method_is_exposed():
    for descriptor in DEFAULT_REGISTRY:
        assert callable(getattr(Client, descriptor.attribute))

    assert len(Client.rpc_methods()) == len(DEFAULT_REGISTRY)


def test_command_posts_json_rpc_request(monkeypatch):
    client, recorder = _client(monkeypatch, lambda prepared: DummyResponse(200, _result(42)))

    assert client.get_block_count() == 42

    prepared, kwargs = recorder.calls[0]
    assert prepared.method == "POST"
    assert prepared.url == "http://localhost:8332/"
    assert prepared.headers["Content-Type"] == "application/json"
    assert prepared.headers["Authorization"] == "Basic Zm9vOmJhcg=="
    assert json.loads(prepared.body) == {"id": "1700000000000", "method": "getblockcount", "params": []}
    assert kwargs["timeout"] == 30.0
    assert kwargs["verify"] is False


def test_command_without_credentials_sends_no_auth(monkeypatch):
    client = Client()
    recorder = Recorder(lambda prepared: DummyResponse(200, _result(1)))
    monkeypatch.setattr(client.session, "send", recorder)

    client.command("getblockcount")

    assert "Authorization" not in recorder.calls[0][0].headers


@pytest.mark.parametrize(("attribute", "method"), [("get_hashes_per_sec", "gethashespersec"), ("bump_fee", "bumpfee")])
def test_unsupported_method_sends_nothing(monkeypatch, attribute, method):
    client, recorder = _client(monkeypatch, lambda prepared: DummyResponse(200, _result(None)), version="0.12.0")

    with pytest.raises(UnsupportedMethodError) as excinfo:
        getattr(client, attribute)()

    assert str(excinfo.value) == f'Method "{method}" is not supported by version "0.12.0"'
    assert recorder.calls == []


def test_named_parameters(monkeypatch):
    client, recorder = _client(monkeypatch, lambda prepared: DummyResponse(200, _result(0)), version="0.15.0")

    client.get_balance({"minconf": 0})

    assert recorder.bodies[0]["params"] == {"minconf": 0}


def test_named_parameters_not_used_on_old_versions(monkeypatch):
    client, recorder = _client(monkeypatch, lambda prepared: DummyResponse(200, _result(0)), version="0.13.0")

    client.get_balance({"minconf": 0})

    assert recorder.bodies[0]["params"] == [{"minconf": 0}]


def test_wallet_routing_for_multiwallet_methods(monkeypatch):
    client, recorder = _client(
        monkeypatch, lambda prepared: DummyResponse(200, _result(0)), version="0.17.0", wallet="wallet 1"
    )

    client.get_balance()
    client.get_difficulty()

    assert recorder.calls[0][0].url == "http://localhost:8332/wallet/wallet%201"
    assert recorder.calls[1][0].url == "http://localhost:8332/"


def test_wallet_routing_depends_on_version(monkeypatch):
    client, recorder = _client(
        monkeypatch, lambda prepared: DummyResponse(200, _result(0)), version="0.14.0", wallet="wallet1"
    )

    client.get_balance()

    assert recorder.calls[0][0].url == "http://localhost:8332/"


def test_batch_is_routed_to_wallet_when_any_call_needs_it(monkeypatch):
    def respond(prepared):
        return DummyResponse(200, [_result(index, call["id"]) for index, call in enumerate(json.loads(prepared.body))])

    client, recorder = _client(monkeypatch, respond, version="0.17.0", wallet="wallet1")

    assert client.command([{"method": "getdifficulty"}, {"method": "getbalance"}]) == [0, 1]
    assert recorder.calls[0][0].url == "http://localhost:8332/wallet/wallet1"


def test_batch_isolates_failures(monkeypatch):
    def respond(prepared):
        replies = []
        for call in json.loads(prepared.body):
            if call["method"] == "validateaddress":
                replies.append({"result": None, "error": {"code": -5, "message": "Invalid address"}, "id": call["id"]})
            else:
                replies.append(_result("mkteeBFmGkraJaWN5WzqHCjmbQWVrPo5X3", call["id"]))
        return DummyResponse(200, list(reversed(replies)))

    client, recorder = _client(monkeypatch, respond)

    batch = client.command(
        [
            {"method": "getnewaddress"},
            {"method": "validateaddress", "parameters": ["foobar"]},
            {"method": "getnewaddress"},
        ]
    )

    assert [call["id"] for call in recorder.bodies[0]] == [
        "1700000000000-0",
        "1700000000000-1",
        "1700000000000-2",
    ]
    assert batch[0] == batch[2] == "mkteeBFmGkraJaWN5WzqHCjmbQWVrPo5X3"
    assert isinstance(batch[1], RpcError)
    assert batch[1].code == -5


def test_rpc_error_is_raised(monkeypatch):
    body = {"result": None, "error": {"code": -32601, "message": "Method not found"}, "id": "1"}
    client, _ = _client(monkeypatch, lambda prepared: DummyResponse(404, body))

    with pytest.raises(RpcError) as excinfo:
        client.command("foobar")

    assert excinfo.value.code == -32601
    assert str(excinfo.value) == "RPC error -32601: Method not found"


def test_unauthorized_response(monkeypatch):
    client, _ = _client(
        monkeypatch, lambda prepared: DummyResponse(401, "", content_type="text/html", reason="Unauthorized")
    )

    with pytest.raises(RpcError) as excinfo:
        client.get_block_count()

    assert excinfo.value.code == 401
    assert excinfo.value.message == "Unauthorized"


def test_headers_are_returned_when_enabled(monkeypatch):
    client, _ = _client(monkeypatch, lambda prepared: DummyResponse(200, _result("foo")), headers=True)

    result, headers = client.get_best_block_hash()

    assert result == "foo"
    assert headers["content-type"] == "application/json"


def test_transport_errors_propagate(monkeypatch):
    def respond(prepared):
        raise requests.ConnectionError("connection refused")

    client, _ = _client(monkeypatch, respond)

    with pytest.raises(requests.ConnectionError):
        client.get_block_count()


@pytest.mark.parametrize(
    ("call", "path"),
    [
        (lambda client: client.get_transaction_by_hash("abc"), "/rest/tx/abc.json"),
        (lambda client: client.get_transaction_by_hash("abc", extension="hex"), "/rest/tx/abc.hex"),
        (lambda client: client.get_block_by_hash("def"), "/rest/block/def.json"),
        (lambda client: client.get_block_by_hash("def", summary=True), "/rest/block/notxdetails/def.json"),
        (lambda client: client.get_block_headers_by_hash("def", 5), "/rest/headers/5/def.hex"),
        (lambda client: client.get_blockchain_information(), "/rest/chaininfo.json"),
        (
            lambda client: client.get_unspent_transaction_outputs({"id": "abc", "index": 0}),
            "/rest/getutxos/checkmempool/abc-0.json",
        ),
        (
            lambda client: client.get_unspent_transaction_outputs(
                [{"id": "abc", "index": 0}, {"id": "def", "index": 1}]
            ),
            "/rest/getutxos/checkmempool/abc-0/def-1.json",
        ),
        (lambda client: client.get_memory_pool_content(), "/rest/mempool/contents.json"),
        (lambda client: client.get_memory_pool_information(), "/rest/mempool/info.json"),
    ],
)
def test_rest_urls(monkeypatch, call, path):
    client, recorder = _client(monkeypatch, lambda prepared: DummyResponse(200, "{}"))

    call(client)

    prepared, _ = recorder.calls[0]
    assert prepared.method == "GET"
    assert prepared.url == f"http://localhost:8332{path}"
    assert prepared.body is None


def test_rest_rejects_unknown_extensions(monkeypatch):
    client, recorder = _client(monkeypatch, lambda prepared: DummyResponse(200, "{}"))

    with pytest.raises(UnsupportedExtensionError) as excinfo:
        client.get_transaction_by_hash("abc", extension="xml")
    with pytest.raises(UnsupportedExtensionError):
        client.get_block_headers_by_hash("abc", 1, extension="json")

    assert str(excinfo.value) == 'Extension "xml" is not supported'
    assert recorder.calls == []


def test_rest_binary_response(monkeypatch):
    client, _ = _client(
        monkeypatch, lambda prepared: DummyResponse(200, b"\x00\x01", content_type="application/octet-stream")
    )

    assert client.get_block_by_hash("abc", extension="bin") == b"\x00\x01"


def test_rest_headers_accept_hex_and_bin(monkeypatch):
    def respond(prepared):
        if prepared.url.endswith(".bin"):
            return DummyResponse(200, b"\x00\x01", content_type="application/octet-stream")
        return DummyResponse(200, "0001\n", content_type="text/plain")

    client, recorder = _client(monkeypatch, respond)

    assert client.get_block_headers_by_hash("abc", 1, extension="bin") == b"\x00\x01"
    assert client.get_block_headers_by_hash("abc", 1) == "0001\n"
    assert [prepared.url for prepared, _ in recorder.calls] == [
        "http://localhost:8332/rest/headers/1/abc.bin",
        "http://localhost:8332/rest/headers/1/abc.hex",
    ]


def test_rest_error(monkeypatch):
    client, _ = _client(
        monkeypatch, lambda prepared: DummyResponse(400, "Invalid hash: foobar\r\n", content_type="text/plain")
    )

    with pytest.raises(RpcError) as excinfo:
        client.get_transaction_by_hash("foobar")

    assert excinfo.value.code == 400
    assert excinfo.value.message == "Invalid hash: foobar"


def test_debug_log_redacts_secrets(monkeypatch, caplog):
    client, recorder = _client(monkeypatch, lambda prepared: DummyResponse(200, _result(None)))

    with caplog.at_level(logging.DEBUG, logger="bitcoind_client.request_logger"):
        client.wallet_passphrase("secret", 60)

    request_record, response_record = [record.request for record in caplog.records if hasattr(record, "request")]
    assert request_record["type"] == "request"
    assert request_record["headers"]["Authorization"] == "Basic ******"
    assert json.loads(request_record["body"])["params"] == ["******", 60]
    assert response_record["type"] == "response"
    assert response_record["id"] == request_record["id"]
    assert response_record["status_code"] == 200
    assert "secret" not in caplog.text
    assert recorder.bodies[0]["params"] == ["secret", 60]


def test_debug_log_redacts_private_key_results(monkeypatch, caplog):
    client, _ = _client(monkeypatch, lambda prepared: DummyResponse(200, _result("cVsecretkey")))

    with caplog.at_level(logging.DEBUG, logger="bitcoind_client.request_logger"):
        assert client.dump_priv_key("mkteeBF") == "cVsecretkey"

    records = [record.request for record in caplog.records if hasattr(record, "request")]
    assert json.loads(records[1]["body"])["result"] == "******"


def test_context_manager_closes_session(monkeypatch):
    closed = []
    client = Client()
    monkeypatch.setattr(client.session, "close", lambda: closed.append(True))

    with client:
        pass

    assert closed == [True]

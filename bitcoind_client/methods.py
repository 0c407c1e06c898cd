"""Catalogue of bitcoind RPC methods.

Every remote method is described by exactly one :class:`MethodDescriptor`. A
descriptor records the daemon versions that ship the method, the versions at
which optional features (currently only multi-wallet routing) apply, and the
functions used to redact sensitive values from logged requests and responses.

Keeping the table current with the daemon's method catalogue only requires
adding or editing entries in ``_METHODS``; gating and parsing never need to
change.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Union

MASK = "******"

Params = Union[List[Any], Dict[str, Any]]


@dataclass(frozen=True)
class ParamsObfuscator:
    """Redacts request parameters for both calling conventions.

    ``positional`` receives the parameter list, ``named`` the parameter
    mapping. Both receive a private deep copy and return the redacted value.
    """

    positional: Callable[[List[Any]], List[Any]]
    named: Callable[[Dict[str, Any]], Dict[str, Any]]

    def __call__(self, params: Params) -> Params:
        if isinstance(params, dict):
            return self.named(copy.deepcopy(params))
        if isinstance(params, list):
            return self.positional(copy.deepcopy(params))
        return params


@dataclass(frozen=True)
class MethodDescriptor:
    name: str
    version_range: str
    category: Optional[str] = None
    features: Mapping[str, str] = field(default_factory=dict)
    obfuscate_request: Optional[ParamsObfuscator] = None
    obfuscate_response: Optional[Callable[[Any], Any]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "features", MappingProxyType(dict(self.features)))

    @property
    def key(self) -> str:
        """Canonical, lowercase method name as sent on the wire."""

        return self.name.lower()

    @property
    def attribute(self) -> str:
        """Python attribute name used on :class:`~bitcoind_client.client.Client`."""

        return re.sub(r"(?<!^)(?=[A-Z])", "_", self.name).lower()


class MethodRegistry:
    """Immutable, case-insensitive table of method descriptors."""

    def __init__(self, descriptors: Iterable[MethodDescriptor]) -> None:
        table: Dict[str, MethodDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.key in table:
                raise ValueError(f'Duplicate method "{descriptor.name}"')
            table[descriptor.key] = descriptor
        self._table: Mapping[str, MethodDescriptor] = MappingProxyType(table)

    def lookup(self, name: str) -> Optional[MethodDescriptor]:
        return self._table.get(name.lower())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._table

    def __iter__(self) -> Iterator[MethodDescriptor]:
        return iter(self._table.values())

    def __len__(self) -> int:
        return len(self._table)


# Obfuscation helpers --------------------------------------------------------


def _mask_positions(*positions: int) -> Callable[[List[Any]], List[Any]]:
    def obfuscate(params: List[Any]) -> List[Any]:
        for position in positions:
            if position < len(params):
                params[position] = MASK
        return params

    return obfuscate


def _mask_keys(*keys: str) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    def obfuscate(params: Dict[str, Any]) -> Dict[str, Any]:
        for key in keys:
            if key in params:
                params[key] = MASK
        return params

    return obfuscate


def _mask_all(values: Any) -> Any:
    if isinstance(values, list):
        return [MASK for _ in values]
    return values


def _mask_list_at(position: int) -> Callable[[List[Any]], List[Any]]:
    def obfuscate(params: List[Any]) -> List[Any]:
        if position < len(params):
            params[position] = _mask_all(params[position])
        return params

    return obfuscate


def _mask_list_key(key: str) -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    def obfuscate(params: Dict[str, Any]) -> Dict[str, Any]:
        if key in params:
            params[key] = _mask_all(params[key])
        return params

    return obfuscate


def _mask_import_requests(requests: Any) -> Any:
    if not isinstance(requests, list):
        return requests
    for request in requests:
        if isinstance(request, dict) and "keys" in request:
            request["keys"] = _mask_all(request["keys"])
    return requests


def _import_multi_positional(params: List[Any]) -> List[Any]:
    if params:
        params[0] = _mask_import_requests(params[0])
    return params


def _import_multi_named(params: Dict[str, Any]) -> Dict[str, Any]:
    if "requests" in params:
        params["requests"] = _mask_import_requests(params["requests"])
    return params


def _mask_result(result: Any) -> str:
    return MASK


_MULTIWALLET = {"multiwallet": ">=0.15.0"}
_MULTIWALLET_LABELS = {"multiwallet": ">=0.17.0"}
_MULTIWALLET_ACCOUNTS = {"multiwallet": ">=0.15.0 <0.18.0"}

_PASSPHRASE = ParamsObfuscator(positional=_mask_positions(0), named=_mask_keys("passphrase"))
_PRIVKEY = ParamsObfuscator(positional=_mask_positions(0), named=_mask_keys("privkey"))

_METHODS = (
    MethodDescriptor("abandonTransaction", ">=0.12.0", "wallet", _MULTIWALLET),
    MethodDescriptor("abortRescan", ">=0.15.0", "wallet", _MULTIWALLET),
    MethodDescriptor("addMultiSigAddress", ">=0.1.0", "wallet", _MULTIWALLET),
    MethodDescriptor("addNode", ">=0.8.0", "network"),
    MethodDescriptor("addWitnessAddress", ">=0.13.0 <0.18.0", "wallet", _MULTIWALLET),
    MethodDescriptor("analyzePsbt", ">=0.18.0", "rawtransactions"),
    MethodDescriptor("backupWallet", ">=0.3.12", "wallet", _MULTIWALLET),
    MethodDescriptor("bumpFee", ">=0.14.0", "wallet", _MULTIWALLET),
    MethodDescriptor("clearBanned", ">=0.12.0", "network"),
    MethodDescriptor("combinePsbt", ">=0.17.0", "rawtransactions"),
    MethodDescriptor("combineRawTransaction", ">=0.15.0", "rawtransactions"),
    MethodDescriptor("convertToPsbt", ">=0.17.0", "rawtransactions"),
    MethodDescriptor("createMultiSig", ">=0.1.0", "util"),
    MethodDescriptor("createPsbt", ">=0.17.0", "rawtransactions"),
    MethodDescriptor("createRawTransaction", ">=0.7.0", "rawtransactions"),
    MethodDescriptor("createWallet", ">=0.17.0", "wallet"),
    MethodDescriptor("createWitnessAddress", "=0.13.0", "wallet"),
    MethodDescriptor("decodePsbt", ">=0.17.0", "rawtransactions"),
    MethodDescriptor("decodeRawTransaction", ">=0.7.0", "rawtransactions"),
    MethodDescriptor("decodeScript", ">=0.9.0", "rawtransactions"),
    MethodDescriptor("deriveAddresses", ">=0.18.0", "util"),
    MethodDescriptor("disconnectNode", ">=0.12.0", "network"),
    MethodDescriptor(
        "dumpPrivKey",
        ">=0.6.0",
        "wallet",
        _MULTIWALLET,
        obfuscate_response=_mask_result,
    ),
    MethodDescriptor("dumpWallet", ">=0.9.0", "wallet", _MULTIWALLET),
    MethodDescriptor(
        "encryptWallet",
        ">=0.1.0",
        "wallet",
        _MULTIWALLET,
        obfuscate_request=_PASSPHRASE,
    ),
    MethodDescriptor("estimateFee", ">=0.10.0", "util"),
    MethodDescriptor("estimatePriority", ">=0.10.0 <0.15.0", "util"),
    MethodDescriptor("estimateSmartFee", ">=0.12.0", "util"),
    MethodDescriptor("estimateSmartPriority", ">=0.12.0 <0.15.0", "util"),
    MethodDescriptor("finalizePsbt", ">=0.17.0", "rawtransactions"),
    MethodDescriptor("fundRawTransaction", ">=0.12.0", "rawtransactions", _MULTIWALLET),
    MethodDescriptor("generate", ">=0.11.0", "generating", _MULTIWALLET),
    MethodDescriptor("generateToAddress", ">=0.13.0", "generating"),
    MethodDescriptor("getAccount", ">=0.1.0 <0.18.0", "wallet", _MULTIWALLET_ACCOUNTS),
    MethodDescriptor("getAccountAddress", ">=0.3.18 <0.18.0", "wallet", _MULTIWALLET_ACCOUNTS),
    MethodDescriptor("getAddedNodeInfo", ">=0.8.0", "network"),
    MethodDescriptor("getAddressInfo", ">=0.17.0", "wallet", _MULTIWALLET_LABELS),
    MethodDescriptor("getAddressesByAccount", ">=0.1.0 <0.18.0", "wallet", _MULTIWALLET_ACCOUNTS),
    MethodDescriptor("getAddressesByLabel", ">=0.17.0", "wallet", _MULTIWALLET_LABELS),
    MethodDescriptor("getBalance", ">=0.3.18", "wallet", _MULTIWALLET),
    MethodDescriptor("getBestBlockHash", ">=0.9.0", "blockchain"),
    MethodDescriptor("getBlock", ">=0.6.0", "blockchain"),
    MethodDescriptor("getBlockCount", ">=0.1.0", "blockchain"),
    MethodDescriptor("getBlockHash", ">=0.6.0", "blockchain"),
    MethodDescriptor("getBlockHeader", ">=0.12.0", "blockchain"),
    MethodDescriptor("getBlockStats", ">=0.17.0", "blockchain"),
    MethodDescriptor("getBlockTemplate", ">=0.7.0", "mining"),
    MethodDescriptor("getBlockchainInfo", ">=0.9.2", "blockchain"),
    MethodDescriptor("getChainTips", ">=0.10.0", "blockchain"),
    MethodDescriptor("getChainTxStats", ">=0.15.0", "blockchain"),
    MethodDescriptor("getConnectionCount", ">=0.1.0", "network"),
    MethodDescriptor("getDescriptorInfo", ">=0.18.0", "util"),
    MethodDescriptor("getDifficulty", ">=0.1.0", "blockchain"),
    MethodDescriptor("getGenerate", "<0.13.0", "generating"),
    MethodDescriptor("getHashesPerSec", "<0.10.0", "blockchain"),
    MethodDescriptor("getInfo", ">=0.1.0 <0.16.0", "control"),
    MethodDescriptor("getMemoryInfo", ">=0.14.0", "control"),
    MethodDescriptor("getMempoolAncestors", ">=0.13.0", "blockchain"),
    MethodDescriptor("getMempoolDescendants", ">=0.13.0", "blockchain"),
    MethodDescriptor("getMempoolEntry", ">=0.13.0", "blockchain"),
    MethodDescriptor("getMempoolInfo", ">=0.10.0", "blockchain"),
    MethodDescriptor("getMiningInfo", ">=0.6.0", "mining"),
    MethodDescriptor("getNetTotals", ">=0.1.0", "network"),
    MethodDescriptor("getNetworkHashPs", ">=0.9.0", "mining"),
    MethodDescriptor("getNetworkInfo", ">=0.9.2", "network"),
    MethodDescriptor("getNewAddress", ">=0.1.0", "wallet", _MULTIWALLET),
    MethodDescriptor("getNodeAddresses", ">=0.18.0", "network"),
    MethodDescriptor("getPeerInfo", ">=0.7.0", "network"),
    MethodDescriptor("getRawChangeAddress", ">=0.9.0", "wallet", _MULTIWALLET),
    MethodDescriptor("getRawMempool", ">=0.7.0", "blockchain"),
    MethodDescriptor("getRawTransaction", ">=0.7.0", "rawtransactions"),
    MethodDescriptor("getReceivedByAccount", ">=0.1.0 <0.18.0", "wallet", _MULTIWALLET_ACCOUNTS),
    MethodDescriptor("getReceivedByAddress", ">=0.1.0", "wallet", _MULTIWALLET),
    MethodDescriptor("getReceivedByLabel", ">=0.17.0", "wallet", _MULTIWALLET_LABELS),
    MethodDescriptor("getRpcInfo", ">=0.18.0", "control"),
    MethodDescriptor("getTransaction", ">=0.1.0", "wallet", _MULTIWALLET),
    MethodDescriptor("getTxOut", ">=0.7.0", "blockchain"),
    MethodDescriptor("getTxOutProof", ">=0.11.0", "blockchain"),
    MethodDescriptor("getTxOutSetInfo", ">=0.7.0", "blockchain"),
    MethodDescriptor("getUnconfirmedBalance", ">=0.9.0", "wallet", _MULTIWALLET),
    MethodDescriptor("getWalletInfo", ">=0.9.2", "wallet", _MULTIWALLET),
    MethodDescriptor("getWork", "<0.10.0", "blockchain"),
    MethodDescriptor("getZmqNotifications", ">=0.17.0", "control"),
    MethodDescriptor("help", ">=0.1.0", "control"),
    MethodDescriptor("importAddress", ">=0.10.0", "wallet", _MULTIWALLET),
    MethodDescriptor(
        "importMulti",
        ">=0.14.0",
        "wallet",
        _MULTIWALLET,
        obfuscate_request=ParamsObfuscator(
            positional=_import_multi_positional,
            named=_import_multi_named,
        ),
    ),
    MethodDescriptor(
        "importPrivKey",
        ">=0.6.0",
        "wallet",
        _MULTIWALLET,
        obfuscate_request=_PRIVKEY,
    ),
    MethodDescriptor("importPrunedFunds", ">=0.13.0", "wallet", _MULTIWALLET),
    MethodDescriptor("importPubKey", ">=0.12.0", "wallet", _MULTIWALLET),
    MethodDescriptor("importWallet", ">=0.9.0", "wallet", _MULTIWALLET),
    MethodDescriptor("joinPsbts", ">=0.18.0", "rawtransactions"),
    MethodDescriptor("keypoolRefill", ">=0.1.0", "wallet", _MULTIWALLET),
    MethodDescriptor("listAccounts", ">=0.1.0 <0.18.0", "wallet", _MULTIWALLET_ACCOUNTS),
    MethodDescriptor("listAddressGroupings", ">=0.7.0", "wallet", _MULTIWALLET),
    MethodDescriptor("listBanned", ">=0.12.0", "network"),
    MethodDescriptor("listLabels", ">=0.17.0", "wallet", _MULTIWALLET_LABELS),
    MethodDescriptor("listLockUnspent", ">=0.8.0", "wallet", _MULTIWALLET),
    MethodDescriptor("listReceivedByAccount", ">=0.1.0 <0.18.0", "wallet", _MULTIWALLET_ACCOUNTS),
    MethodDescriptor("listReceivedByAddress", ">=0.1.0", "wallet", _MULTIWALLET),
    MethodDescriptor("listReceivedByLabel", ">=0.17.0", "wallet", _MULTIWALLET_LABELS),
    MethodDescriptor("listSinceBlock", ">=0.5.0", "wallet", _MULTIWALLET),
    MethodDescriptor("listTransactions", ">=0.3.18", "wallet", _MULTIWALLET),
    MethodDescriptor("listUnspent", ">=0.7.0", "wallet", _MULTIWALLET),
    MethodDescriptor("listWalletDir", ">=0.18.0", "wallet"),
    MethodDescriptor("listWallets", ">=0.15.0", "wallet", _MULTIWALLET),
    MethodDescriptor("loadWallet", ">=0.17.0", "wallet"),
    MethodDescriptor("lockUnspent", ">=0.8.0", "wallet", _MULTIWALLET),
    MethodDescriptor("logging", ">=0.17.0", "control"),
    MethodDescriptor("move", ">=0.3.18", "wallet", _MULTIWALLET),
    MethodDescriptor("ping", ">=0.9.0", "network"),
    MethodDescriptor("preciousBlock", ">=0.14.0", "blockchain"),
    MethodDescriptor("prioritiseTransaction", ">=0.10.0", "mining"),
    MethodDescriptor("pruneBlockchain", ">=0.14.0", "blockchain"),
    MethodDescriptor("removePrunedFunds", ">=0.13.0", "wallet", _MULTIWALLET),
    MethodDescriptor("rescanBlockchain", ">=0.16.0", "wallet"),
    MethodDescriptor("saveMempool", ">=0.16.0", "blockchain"),
    MethodDescriptor("scanTxOutSet", ">=0.17.0", "blockchain"),
    MethodDescriptor("sendFrom", ">=0.3.18", "wallet", _MULTIWALLET),
    MethodDescriptor("sendMany", ">=0.3.21", "wallet", _MULTIWALLET),
    MethodDescriptor("sendRawTransaction", ">=0.7.0", "rawtransactions"),
    MethodDescriptor("sendToAddress", ">=0.1.0", "wallet", _MULTIWALLET),
    MethodDescriptor("setAccount", ">=0.1.0 <0.18.0", "wallet", _MULTIWALLET_ACCOUNTS),
    MethodDescriptor("setBan", ">=0.12.0", "network"),
    MethodDescriptor("setGenerate", "<0.13.0", "generating"),
    MethodDescriptor(
        "setHdSeed",
        ">=0.17.0",
        "wallet",
        _MULTIWALLET_LABELS,
        obfuscate_request=ParamsObfuscator(positional=_mask_positions(1), named=_mask_keys("seed")),
    ),
    MethodDescriptor("setLabel", ">=0.17.0", "wallet", _MULTIWALLET_LABELS),
    MethodDescriptor("setNetworkActive", ">=0.14.0", "network"),
    MethodDescriptor("setTxFee", ">=0.3.22", "wallet", _MULTIWALLET),
    MethodDescriptor("signMessage", ">=0.5.0", "wallet", _MULTIWALLET),
    MethodDescriptor(
        "signMessageWithPrivKey",
        ">=0.13.0",
        "util",
        obfuscate_request=_PRIVKEY,
    ),
    MethodDescriptor(
        "signRawTransaction",
        ">=0.7.0 <0.18.0",
        "rawtransactions",
        obfuscate_request=ParamsObfuscator(
            positional=_mask_list_at(2),
            named=_mask_list_key("privkeys"),
        ),
    ),
    MethodDescriptor(
        "signRawTransactionWithKey",
        ">=0.17.0",
        "rawtransactions",
        obfuscate_request=ParamsObfuscator(
            positional=_mask_list_at(1),
            named=_mask_list_key("privkeys"),
        ),
    ),
    MethodDescriptor("signRawTransactionWithWallet", ">=0.17.0", "rawtransactions", _MULTIWALLET_LABELS),
    MethodDescriptor("stop", ">=0.1.0", "control"),
    MethodDescriptor("submitBlock", ">=0.7.0", "mining"),
    MethodDescriptor("testMempoolAccept", ">=0.17.0", "blockchain"),
    MethodDescriptor("unloadWallet", ">=0.17.0", "wallet"),
    MethodDescriptor("uptime", ">=0.15.0", "control"),
    MethodDescriptor("utxoUpdatePsbt", ">=0.18.0", "rawtransactions"),
    MethodDescriptor("validateAddress", ">=0.3.14", "util"),
    MethodDescriptor("verifyChain", ">=0.9.0", "blockchain"),
    MethodDescriptor("verifyMessage", ">=0.5.0", "util"),
    MethodDescriptor("verifyTxOutProof", ">0.11.0", "blockchain"),
    MethodDescriptor("walletCreateFundedPsbt", ">=0.17.0", "rawtransactions", _MULTIWALLET_LABELS),
    MethodDescriptor("walletLock", ">=0.1.0", "wallet", _MULTIWALLET),
    MethodDescriptor(
        "walletPassphrase",
        ">=0.1.0",
        "wallet",
        _MULTIWALLET,
        obfuscate_request=_PASSPHRASE,
    ),
    MethodDescriptor(
        "walletPassphraseChange",
        ">=0.1.0",
        "wallet",
        _MULTIWALLET,
        obfuscate_request=ParamsObfuscator(
            positional=_mask_positions(0, 1),
            named=_mask_keys("oldpassphrase", "newpassphrase"),
        ),
    ),
    MethodDescriptor("walletProcessPsbt", ">=0.17.0", "rawtransactions", _MULTIWALLET_LABELS),
)

DEFAULT_REGISTRY = MethodRegistry(_METHODS)

"""Discovery of local Bitcoin Core credentials (cookie file or bitcoin.conf)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import ClientConfig

LOGGER = logging.getLogger(__name__)

NETWORK_SUBDIRS = {
    "mainnet": "",
    "testnet": "testnet3",
    "regtest": "regtest",
}

# bitcoin.conf section headers per network
CONF_SECTIONS = {
    "mainnet": "main",
    "testnet": "test",
    "regtest": "regtest",
}


def find_cookie(datadir: str | None, network: str = "mainnet") -> Optional[Path]:
    """Return the ``.cookie`` written by bitcoind for ``network``, if present."""

    if not datadir:
        return None
    path = Path(datadir).expanduser() / NETWORK_SUBDIRS.get(network, "") / ".cookie"
    return path if path.exists() else None


def read_bitcoin_conf(datadir: str | None, network: str = "mainnet") -> dict[str, str]:
    """Return bitcoin.conf settings that apply to ``network``.

    Keys from the network's ``[section]`` override top-level keys; other
    sections are ignored.
    """

    if not datadir:
        return {}
    candidate = Path(datadir).expanduser() / "bitcoin.conf"
    if not candidate.exists():
        return {}
    sections = _parse_conf(candidate)
    return {**sections.get("", {}), **sections.get(CONF_SECTIONS.get(network, ""), {})}


def _parse_conf(path: Path) -> dict[str, dict[str, str]]:
    sections: dict[str, dict[str, str]] = {"": {}}
    current = sections[""]
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.split("#", 1)[0].strip()
        if not line:
            continue
        if line.startswith("[") and line.endswith("]"):
            current = sections.setdefault(line[1:-1].strip(), {})
            continue
        if "=" in line:
            key, value = line.split("=", 1)
            # the first occurrence wins, as in bitcoind
            current.setdefault(key.strip(), value.strip())
    return sections


def detect_rpc_credentials(datadir: str | None, network: str = "mainnet") -> Optional[tuple[str, str]]:
    conf = read_bitcoin_conf(datadir, network)
    user = conf.get("rpcuser")
    password = conf.get("rpcpassword")
    if user and password:
        return user, password
    return None


def read_cookie(cookie_path: Path) -> tuple[str, str]:
    content = cookie_path.read_text(encoding="utf-8").strip()
    username, separator, password = content.partition(":")
    if not separator:
        raise ValueError(f"Malformed cookie file {cookie_path}")
    return username, password


def resolve_credentials(config: ClientConfig) -> Optional[tuple[str, str]]:
    """Return ``(username, password)`` for ``config``.

    Explicit credentials win. Otherwise an explicit cookie file, then the
    network cookie inside ``datadir``, then ``bitcoin.conf`` are consulted.
    """

    if config.username or config.password:
        return config.username or "", config.password or ""

    cookie = config.cookie_file or find_cookie(config.datadir, config.network)
    if cookie:
        LOGGER.debug("Using cookie authentication", extra={"path": str(cookie)})
        return read_cookie(cookie)

    credentials = detect_rpc_credentials(config.datadir, config.network)
    if credentials:
        LOGGER.debug("Using bitcoin.conf credentials", extra={"datadir": config.datadir})
    return credentials

"""Exceptions raised by the bitcoind client."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Optional


class BitcoindClientError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(BitcoindClientError, ValueError):
    """Raised when the client is constructed with invalid options."""


class InvalidVersionError(ConfigurationError):
    def __init__(self, version: str) -> None:
        super().__init__(f'Invalid Version "{version}"')
        self.version = version


class UnsupportedMethodError(BitcoindClientError):
    """Raised before any I/O when a method is unavailable at the configured version."""

    def __init__(self, method: str, version: str) -> None:
        super().__init__(f'Method "{method}" is not supported by version "{version}"')
        self.method = method
        self.version = version


class UnsupportedExtensionError(BitcoindClientError, ValueError):
    def __init__(self, extension: str) -> None:
        super().__init__(f'Extension "{extension}" is not supported')
        self.extension = extension


def _reason_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


@dataclass(eq=False)
class RpcError(BitcoindClientError):
    """Protocol-level error carrying a JSON-RPC or HTTP status code."""

    code: int
    message: Optional[str] = None
    body: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.code, bool) or not isinstance(self.code, int):
            raise TypeError("Non-numeric HTTP code")
        if not self.message:
            self.message = _reason_phrase(self.code)
        super().__init__(self.code, self.message)

    @property
    def status(self) -> int:
        return self.code

    def __str__(self) -> str:
        return f"RPC error {self.code}: {self.message}"

"""Debug logging of HTTP exchanges with sensitive values redacted."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from requests import PreparedRequest, Response

from .methods import MethodRegistry
from .obfuscator import obfuscate_headers, obfuscate_request_body, obfuscate_response_body
from .parser import media_type

LOGGER = logging.getLogger(__name__)


class RequestLogger:
    def __init__(self, registry: MethodRegistry, logger: Optional[logging.Logger] = None) -> None:
        self.registry = registry
        self.logger = logger or LOGGER

    @property
    def enabled(self) -> bool:
        return self.logger.isEnabledFor(logging.DEBUG)

    def log_request(self, prepared: PreparedRequest) -> str:
        """Log ``prepared`` and return the id correlating it with its response."""

        request_id = str(uuid.uuid4())
        if not self.enabled:
            return request_id
        record: Dict[str, Any] = {
            "id": request_id,
            "type": "request",
            "method": prepared.method,
            "uri": prepared.url,
            "headers": obfuscate_headers(prepared.headers),
            "body": obfuscate_request_body(prepared.body, self.registry),
        }
        self.logger.debug(
            "Making request %s to %s %s",
            request_id,
            prepared.method,
            prepared.url,
            extra={"request": record},
        )
        return request_id

    def log_response(self, request_id: str, prepared: PreparedRequest, response: Response) -> None:
        if not self.enabled:
            return
        body: Any = response.content
        if media_type(response) != "application/octet-stream":
            body = response.text
        record = {
            "id": request_id,
            "type": "response",
            "uri": response.url,
            "status_code": response.status_code,
            "headers": dict(response.headers),
            "body": obfuscate_response_body(
                body,
                response.headers.get("content-type"),
                prepared.body,
                self.registry,
            ),
        }
        self.logger.debug(
            "Received response for request %s",
            request_id,
            extra={"request": record},
        )

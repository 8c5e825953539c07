"""Forwarding of JSON-RPC messages to the remote MCP endpoint."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import httpx

from dify_mcp_bridge.config import BridgeConfig
from dify_mcp_bridge.protocol.jsonrpc import NETWORK_ERROR, REMOTE_ERROR, make_error
from dify_mcp_bridge.remote.decoder import DecodeError, decode_body

USER_AGENT = "dify-mcp-bridge/1.0"

ACCEPT = "application/json, text/event-stream"


class RemoteInvoker:
    """Posts each message to the remote endpoint and decodes the answer.

    One request per message, no retries. Failures never escape
    :meth:`forward`; they come back as JSON-RPC error responses addressed
    to the caller's request ID.
    """

    def __init__(
        self,
        config: BridgeConfig,
        client: httpx.Client | None = None,
        log: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the invoker with a reusable HTTP client.

        Args:
            config: Remote endpoint settings.
            client: Pre-built HTTP client (tests inject one).
            log: Diagnostics sink.
        """
        self._config = config
        self._log = log or (lambda message: None)
        self._client = client or httpx.Client(
            headers={"User-Agent": USER_AGENT},
            timeout=config.timeout_seconds,
        )

    @property
    def url(self) -> str:
        """Remote endpoint URL."""
        return self._config.remote_url

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> RemoteInvoker:
        """Enter a context that closes the client on exit.

        Returns:
            This invoker.
        """
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the HTTP client.

        Args:
            exc_type: Exception type, if one was raised.
            exc_val: Exception instance, if one was raised.
            exc_tb: Traceback, if an exception was raised.
        """
        self.close()

    def forward(self, message: dict[str, Any], expect_id: Any = None) -> Any:
        """Send a message to the remote endpoint.

        The configured timeout bounds the whole call, including a body that
        keeps trickling in, not only each connect or read.

        Args:
            message: JSON-RPC message, sent verbatim.
            expect_id: ID to address error responses to.

        Returns:
            The decoded remote payload (any shape), or an error response
            for network, status and decoding failures.
        """
        deadline = time.monotonic() + self._config.timeout_seconds
        try:
            with self._client.stream(
                "POST",
                self._config.remote_url,
                json=message,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self._config.token}",
                    "Accept": ACCEPT,
                },
                timeout=self._config.timeout_seconds,
            ) as response:
                text = self._read_text(response, deadline)
        except httpx.HTTPError as e:
            self._log(f"Network error forwarding {message.get('method')!r}: {e!r}")
            return make_error(
                expect_id,
                NETWORK_ERROR,
                "Network error forwarding to remote MCP",
                str(e) or type(e).__name__,
            )

        if not response.is_success:
            self._log(f"Remote returned HTTP {response.status_code}")
            return make_error(
                expect_id, REMOTE_ERROR, f"Remote MCP error {response.status_code}", text
            )

        try:
            return decode_body(text, response.headers.get("content-type"))
        except DecodeError as e:
            self._log(f"{e.message}: {text[:200]!r}")
            return e.to_envelope(expect_id)

    def _read_text(self, response: httpx.Response, deadline: float) -> str:
        """Read the whole body, aborting once the deadline has passed.

        Raises:
            httpx.ReadTimeout: If the deadline passes before the body ends.
        """
        parts = []
        self._check_deadline(response, deadline)
        for part in response.iter_text():
            self._check_deadline(response, deadline)
            parts.append(part)
        return "".join(parts)

    def _check_deadline(self, response: httpx.Response, deadline: float) -> None:
        if time.monotonic() > deadline:
            raise httpx.ReadTimeout(
                f"Remote call exceeded {self._config.timeout_ms} ms", request=response.request
            )

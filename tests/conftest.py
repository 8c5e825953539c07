"""Shared fixtures for bridge tests."""

import io
from collections.abc import Callable

import httpx
import pytest

from dify_mcp_bridge.config import BridgeConfig
from dify_mcp_bridge.protocol.transport import StdioTransport
from dify_mcp_bridge.remote.invoker import RemoteInvoker

REMOTE_URL = "https://remote.example.com/mcp"
TOKEN = "test-token"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def config() -> BridgeConfig:
    """Valid bridge configuration."""
    return BridgeConfig(remote_url=REMOTE_URL, token=TOKEN, timeout_ms=5000)


@pytest.fixture
def make_invoker(config: BridgeConfig):
    """Build invokers whose HTTP traffic goes to a handler function."""
    invokers: list[RemoteInvoker] = []

    def factory(handler: Handler) -> RemoteInvoker:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        invoker = RemoteInvoker(config, client=client)
        invokers.append(invoker)
        return invoker

    yield factory

    for invoker in invokers:
        invoker.close()


@pytest.fixture
def stdout() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def stderr() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def transport(stdout: io.StringIO, stderr: io.StringIO) -> StdioTransport:
    """Transport with fake streams and no input."""
    return StdioTransport(stdin=io.StringIO(""), stdout=stdout, stderr=stderr)

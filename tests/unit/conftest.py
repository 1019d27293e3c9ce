"""Unit test fixtures: a server wired to in-process fakes."""

from __future__ import annotations

import re

import httpx
import pytest
from fastmcp import Client

from dualtrans.config import AuditConfig
from dualtrans.models import ChatMessage
from dualtrans.observability import reset_metrics
from dualtrans.providers import FreeTranslationRacer
from tests.helpers.fakes import FakeBackend
from tests.helpers.fakes import FakeCache
from tests.helpers.fakes import FakeChatProvider
from tests.helpers.fakes import FakeMemory
from tests.helpers.fakes import ProviderFactoryRecorder

_MARKER_RE = re.compile(r"\[(\d+)\] ")


def prefix_reply(messages: list[ChatMessage]) -> str:
    """``fr:``-prefix a single text, or every ``[k]`` item of a batch."""
    content = messages[-1].content
    if content.startswith("[1] "):
        return _MARKER_RE.sub(r"[\1] fr:", content)
    return f"fr:{content}"


@pytest.fixture()
def chat_provider() -> FakeChatProvider:
    return FakeChatProvider(reply=prefix_reply)


@pytest.fixture()
def memory() -> FakeMemory:
    return FakeMemory()


@pytest.fixture()
async def server(chat_provider, memory):
    """Configure the module-level server against fakes; yield the orchestrator."""
    from dualtrans.server import configure
    from dualtrans.server import shutdown

    reset_metrics()
    orchestrator = await configure(
        cache=FakeCache(),
        memory=memory,
        racer=FreeTranslationRacer(
            [FakeBackend("google-direct", reply="Salut", detected="en")]
        ),
        provider_factory=ProviderFactoryRecorder(chat_provider),
        audit_config=AuditConfig(enabled=False),
        network_detection=False,
    )
    yield orchestrator
    await shutdown()
    reset_metrics()


@pytest.fixture()
async def http_client(server):
    """Yield an httpx client bound to the server's ASGI app."""
    from dualtrans.server import mcp

    transport = httpx.ASGITransport(app=mcp.http_app())
    async with httpx.AsyncClient(
        transport=transport, base_url="http://test"
    ) as client:
        yield client


@pytest.fixture()
async def mcp_client(server):
    """Yield a FastMCP Client wired to the DualTrans server."""
    from dualtrans.server import mcp

    async with Client(mcp) as client:
        yield client

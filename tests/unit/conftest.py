"""Unit test fixtures — FastMCP client over in-memory stores."""

from __future__ import annotations

import pytest
from fastmcp import Client


@pytest.fixture()
def server_gateway(make_gateway):
    """Scripted gateway behind the MCP server; tests add routes before calling tools."""
    return make_gateway()


@pytest.fixture()
async def mcp_client(server_gateway, clock):
    """Yield a FastMCP Client wired to the CarePilot server."""
    from carepilot.server import configure
    from carepilot.server import mcp
    from carepilot.server import shutdown

    await configure(gateway=server_gateway, clock=clock)

    async with Client(mcp) as client:
        yield client

    await shutdown()

"""
Live integration tests against a Polkadot RPC node

These tests make real requests to the configured node.
Run with: TEST_MODE=live pytest tests/integration/test_polkadot_live.py -v -s -m live
"""
import os

import pytest
import pytest_asyncio

from liquidity_matrix.chain.substrate import SubstrateChainClient
from liquidity_matrix.tools.liquidity_matrix import LiquidityMatrixTool
from liquidity_matrix.utils.config import ConfigManager

# Polkadot 国库账户
TREASURY = "13UVJyLnbVp9RBZYFwFGyDvVd1y27Tt8tkntv6Q7JVPhFsTB"

pytestmark = [
    pytest.mark.live,
    pytest.mark.skipif(
        os.getenv("TEST_MODE", "mock") != "live", reason="set TEST_MODE=live to run"
    ),
]


class TestPolkadotLive:
    """Live integration tests"""

    @pytest_asyncio.fixture
    async def client(self):
        params = ConfigManager().get_chain_params("polkadot")
        client = SubstrateChainClient(params)
        await client.connect()
        yield client
        await client.close()

    @pytest.mark.asyncio
    async def test_finalized_head(self, client):
        head = await client.get_finalized_head()
        assert head > 17_000_000

    @pytest.mark.asyncio
    async def test_full_run(self, client):
        """完整生成一个账户的报告"""
        report = await LiquidityMatrixTool(client, client.params).execute([TREASURY])

        assert len(report.accounts) == 1
        doc = report.to_document()
        assert len(doc["accounts"][0]["data"]["liquidity"]["locks"]) == 6

"""
Pytest配置和共享fixtures
"""
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import pytest
import structlog
from substrateinterface.utils.ss58 import ss58_encode

from liquidity_matrix.chain.base import BaseChainReader
from liquidity_matrix.core.models import (
    AccountAddress,
    AccountBalance,
    ClassLock,
    RawBalanceLock,
    ReferendumInfo,
    VestingInfo,
    Voting,
)
from liquidity_matrix.tools.liquidity import BlockClock
from liquidity_matrix.utils.config import ChainParams
from liquidity_matrix.utils.exceptions import ChainFetchError

PLANCK = 10**10
HEAD = 20_000_000
NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

ALICE_PUBLIC_KEY = "0x" + "11" * 32
BOB_PUBLIC_KEY = "0x" + "22" * 32
ALICE = ss58_encode(ALICE_PUBLIC_KEY, ss58_format=0)
BOB = ss58_encode(BOB_PUBLIC_KEY, ss58_format=0)


# ==================== Pytest Markers ====================

def pytest_configure(config):
    """注册自定义markers"""
    config.addinivalue_line("markers", "live: marks tests that call a real RPC node")
    config.addinivalue_line("markers", "slow: marks tests as slow running")


# ==================== Fake Chain Reader ====================

class FakeChainReader(BaseChainReader):
    """
    内存中的链上数据读取器

    以公钥为键保存各存储项；在 failures 中登记的 (方法名, 键) 会抛出 ChainFetchError。
    """

    name = "fake"

    def __init__(self, head: int = HEAD):
        self.head = head
        self.balances: Dict[str, AccountBalance] = {}
        self.locks: Dict[str, List[RawBalanceLock]] = {}
        self.class_locks: Dict[str, List[ClassLock]] = {}
        self.voting: Dict[Tuple[str, int], Voting] = {}
        self.referenda: Dict[int, ReferendumInfo] = {}
        self.vesting: Dict[str, List[VestingInfo]] = {}
        self.failures: Dict[Tuple[str, object], Exception] = {}
        self.calls: List[Tuple[str, object]] = []
        self.closed = False

    def fail(self, method: str, key: object, message: str = "boom"):
        self.failures[(method, key)] = ChainFetchError(self.name, message)

    def _check(self, method: str, key: object):
        self.calls.append((method, key))
        error = self.failures.get((method, key))
        if error is not None:
            raise error

    async def get_finalized_head(self) -> int:
        return self.head

    async def get_account_balance(self, account: AccountAddress) -> Optional[AccountBalance]:
        self._check("balance", account.public_key)
        return self.balances.get(account.public_key)

    async def get_balance_locks(self, account: AccountAddress) -> List[RawBalanceLock]:
        self._check("locks", account.public_key)
        return self.locks.get(account.public_key, [])

    async def get_class_locks(self, account: AccountAddress) -> List[ClassLock]:
        self._check("class_locks", account.public_key)
        return self.class_locks.get(account.public_key, [])

    async def get_voting(self, account: AccountAddress, track: int) -> Optional[Voting]:
        self._check("voting", (account.public_key, track))
        return self.voting.get((account.public_key, track))

    async def get_referendum_info(self, referendum_id: int) -> Optional[ReferendumInfo]:
        self._check("referendum", referendum_id)
        return self.referenda.get(referendum_id)

    async def get_vesting(self, account: AccountAddress) -> List[VestingInfo]:
        self._check("vesting", account.public_key)
        return self.vesting.get(account.public_key, [])

    async def close(self):
        self.closed = True


# ==================== Fixtures ====================

@pytest.fixture(autouse=True)
def reset_logging():
    """CLI测试会重新配置structlog，测试结束后恢复默认配置"""
    yield
    structlog.reset_defaults()


@pytest.fixture
def head():
    return HEAD


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def chain_params():
    """Polkadot 默认链参数"""
    return ChainParams()


@pytest.fixture
def clock(chain_params):
    """固定 H 与 T_now 的区块时钟"""
    return BlockClock(finalized_block=HEAD, now=NOW, params=chain_params)


@pytest.fixture
def reader():
    """空的内存读取器"""
    return FakeChainReader()


@pytest.fixture
def alice():
    return AccountAddress(public_key=ALICE_PUBLIC_KEY, ss58=ALICE)


@pytest.fixture
def bob():
    return AccountAddress(public_key=BOB_PUBLIC_KEY, ss58=BOB)


# ==================== Live Test Fixtures ====================

@pytest.fixture
def is_live_test():
    """检查是否为真实节点测试模式"""
    return os.getenv("TEST_MODE", "mock") == "live"

"""
链上数据读取抽象基类
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from liquidity_matrix.core.models import (
    AccountAddress,
    AccountBalance,
    ClassLock,
    RawBalanceLock,
    ReferendumInfo,
    VestingInfo,
    Voting,
)


class BaseChainReader(ABC):
    """
    链上存储项读取接口

    每个方法要么返回解码后的值，要么表示"不存在"（None 或空列表）。
    传输错误与解码错误以 ChainFetchError 抛出，与"不存在"严格区分。
    """

    name: str = "chain"

    @abstractmethod
    async def get_finalized_head(self) -> int:
        """获取最新已终结区块高度"""
        pass

    @abstractmethod
    async def get_account_balance(self, account: AccountAddress) -> Optional[AccountBalance]:
        """balances.account"""
        pass

    @abstractmethod
    async def get_balance_locks(self, account: AccountAddress) -> List[RawBalanceLock]:
        """balances.locks"""
        pass

    @abstractmethod
    async def get_class_locks(self, account: AccountAddress) -> List[ClassLock]:
        """convictionVoting.classLocksFor"""
        pass

    @abstractmethod
    async def get_voting(self, account: AccountAddress, track: int) -> Optional[Voting]:
        """convictionVoting.votingFor(account, class)"""
        pass

    @abstractmethod
    async def get_referendum_info(self, referendum_id: int) -> Optional[ReferendumInfo]:
        """referenda.referendumInfoFor(refId)"""
        pass

    @abstractmethod
    async def get_vesting(self, account: AccountAddress) -> List[VestingInfo]:
        """vesting.vesting"""
        pass

    async def close(self):
        """释放连接（子类按需覆盖）"""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name}>"

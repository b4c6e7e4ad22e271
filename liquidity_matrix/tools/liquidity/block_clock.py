"""
区块时钟

- 每次运行只采样一次最新已终结区块 H 与当前UTC时间 T_now
- 相对锚定：block → T_now - block_time * (H - block)，用于 conviction 锁仓
- 绝对锚定：以创世/后期两个固定时间点推算，用于 vesting 计划
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from liquidity_matrix.chain.base import BaseChainReader
from liquidity_matrix.utils.config import ChainParams
from liquidity_matrix.utils.logger import get_logger

logger = get_logger(__name__)


class BlockClock:
    """区块高度 ↔ UTC时间 换算"""

    def __init__(
        self,
        finalized_block: int,
        now: datetime,
        params: Optional[ChainParams] = None,
    ):
        """
        Args:
            finalized_block: 运行开始时的已终结区块高度 H
            now: 与 H 同时采样的UTC时间 T_now
            params: 链参数（出块时间与锚点）
        """
        if now.tzinfo is None:
            raise ValueError("BlockClock requires a timezone-aware 'now'")

        self.finalized_block = finalized_block
        self.now = now.astimezone(timezone.utc)
        self.params = params or ChainParams()
        self.block_time = timedelta(seconds=self.params.block_time_seconds)

    @classmethod
    async def sample(
        cls, reader: BaseChainReader, params: Optional[ChainParams] = None
    ) -> "BlockClock":
        """读取最新已终结区块并立即采样当前时间"""
        head = await reader.get_finalized_head()
        now = datetime.now(timezone.utc)
        logger.info("block_clock_sampled", finalized_block=head, now=now.isoformat())
        return cls(finalized_block=head, now=now, params=params)

    def block_to_instant(self, block: int) -> datetime:
        """相对锚定：T_now - block_time * (H - block)"""
        return self.now - self.block_time * (self.finalized_block - block)

    def blocks_before_now(self, instant: datetime) -> int:
        """相对锚定的逆运算：(T_now - instant) / block_time"""
        return (self.now - instant) // self.block_time

    def block_to_instant_absolute(self, block: int) -> datetime:
        """
        绝对锚定（分段常数模型）

        block < genesis_threshold 时以 block 1 的时间为基准加 block_time * block，
        否则以后期锚点为基准加 block_time * (block - later_epoch_block)。
        """
        if block < self.params.genesis_threshold:
            return self.params.genesis_epoch + self.block_time * block
        return self.params.later_epoch + self.block_time * (
            block - self.params.later_epoch_block
        )

    def blocks_to_duration(self, blocks: int) -> timedelta:
        return self.block_time * blocks

"""
BlockClock 单元测试
"""
from datetime import datetime, timedelta, timezone

import pytest

from liquidity_matrix.tools.liquidity import BlockClock
from liquidity_matrix.utils.config import ChainParams

GENESIS = datetime(2020, 5, 26, 15, 36, 18, tzinfo=timezone.utc)
LATER = datetime(2023, 8, 25, 13, 1, 0, tzinfo=timezone.utc)


class TestBlockClock:
    """区块时钟测试"""

    def test_requires_aware_now(self):
        """naive 时间会被拒绝"""
        with pytest.raises(ValueError):
            BlockClock(finalized_block=1, now=datetime(2024, 1, 1))

    def test_head_maps_to_now(self, clock):
        """H 对应 T_now"""
        assert clock.block_to_instant(clock.finalized_block) == clock.now

    @pytest.mark.parametrize("offset", [0, 1, 100, 14_400, 5_000_000])
    def test_relative_anchoring_round_trip(self, clock, offset):
        """(T_now - block_to_instant(B)) / 6s == H - B"""
        block = clock.finalized_block - offset
        instant = clock.block_to_instant(block)

        assert (clock.now - instant) / timedelta(seconds=6) == offset
        assert clock.blocks_before_now(instant) == offset

    def test_absolute_anchoring_early_blocks(self, clock):
        """早期区块以 block 1 的时间为基准"""
        assert clock.block_to_instant_absolute(1) == GENESIS + timedelta(seconds=6)
        assert clock.block_to_instant_absolute(8_999_999) == GENESIS + timedelta(
            seconds=6 * 8_999_999
        )

    def test_absolute_anchoring_later_blocks(self, clock):
        """threshold 之后以后期锚点为基准"""
        assert clock.block_to_instant_absolute(17_100_000) == LATER
        assert clock.block_to_instant_absolute(17_100_010) == LATER + timedelta(seconds=60)
        assert clock.block_to_instant_absolute(9_000_000) < LATER

    def test_custom_block_time(self, now):
        """出块时间取自链参数"""
        params = ChainParams(block_time_seconds=12)
        clock = BlockClock(finalized_block=1000, now=now, params=params)

        assert clock.block_to_instant(990) == now - timedelta(seconds=120)
        assert clock.blocks_to_duration(5) == timedelta(seconds=60)

    @pytest.mark.asyncio
    async def test_sample_reads_finalized_head(self, reader, head):
        """sample() 读取一次已终结区块并采样当前UTC时间"""
        before = datetime.now(timezone.utc)
        clock = await BlockClock.sample(reader)
        after = datetime.now(timezone.utc)

        assert clock.finalized_block == head
        assert before <= clock.now <= after

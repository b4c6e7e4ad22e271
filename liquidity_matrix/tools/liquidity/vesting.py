"""
Vesting 计划解析

每个 VestingInfo { locked, per_block, starting_block } 展开为：
- total_blocks = ceil(locked / per_block)
- start_at = 绝对锚定(starting_block)
- end_at = start_at + block_time × total_blocks
"""
from typing import List

from liquidity_matrix.core.models import VestingInfo, VestingSchedule
from liquidity_matrix.tools.liquidity.block_clock import BlockClock
from liquidity_matrix.utils.logger import get_logger
from liquidity_matrix.utils.units import to_tokens

logger = get_logger(__name__)


def blocks_until_vested(locked: int, per_block: int) -> int:
    """ceil(locked / per_block)；per_block 为 0 时按 1 计（与 vesting pallet 一致）"""
    per_block = max(per_block, 1)
    return -(-locked // per_block)


class VestingResolver:
    """Vesting 计划解析器"""

    def __init__(self, clock: BlockClock):
        self.clock = clock

    def resolve(self, vesting: List[VestingInfo]) -> List[VestingSchedule]:
        """
        将链上 vesting 记录转换为带起止时间的释放计划

        Args:
            vesting: vesting.vesting 的结果（保持链上顺序）

        Returns:
            VestingSchedule 列表
        """
        schedules = []
        for info in vesting:
            total_blocks = blocks_until_vested(info.locked, info.per_block)
            start_at = self.clock.block_to_instant_absolute(info.starting_block)
            end_at = start_at + self.clock.blocks_to_duration(total_blocks)

            schedules.append(
                VestingSchedule(
                    start_at=start_at,
                    end_at=end_at,
                    locked_total=to_tokens(info.locked),
                    per_block_release=to_tokens(info.per_block),
                    starting_block=info.starting_block,
                    total_blocks=total_blocks,
                )
            )

            logger.debug(
                "vesting_schedule_resolved",
                starting_block=info.starting_block,
                total_blocks=total_blocks,
                start_at=start_at.isoformat(),
                end_at=end_at.isoformat(),
            )
        return schedules

"""
流动性阶梯计算

提供:
- categorize_lock_period: 按剩余天数分档
- reduce_buckets: 档内取最大锁仓（同一轨道的锁不累加，取最大值）
- build_ladder: 从最长期限往下遍历，只保留比更长期限更大的金额
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List

from liquidity_matrix.core.models import (
    LADDER_ORDER,
    LadderBucket,
    LadderEntry,
    LockedInterval,
)
from liquidity_matrix.utils.logger import get_logger

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)


class LadderCalculator:
    """流动性阶梯计算器"""

    @staticmethod
    def days_remaining(end_at: datetime, now: datetime) -> int:
        """floor((end_at - now) / 1天)"""
        return (end_at - now) // ONE_DAY

    @staticmethod
    def categorize_lock_period(end_at: datetime, now: datetime) -> LadderBucket:
        """
        根据剩余锁仓天数分档

        Args:
            end_at: 解锁时间
            now: 本次运行的 T_now

        Returns:
            所属分档
        """
        days = LadderCalculator.days_remaining(end_at, now)
        if days <= 0:
            return LadderBucket.DAYS_0
        if days <= 7:
            return LadderBucket.DAYS_1_7
        if days <= 14:
            return LadderBucket.DAYS_8_14
        if days <= 28:
            return LadderBucket.DAYS_15_28
        if days <= 60:
            return LadderBucket.DAYS_29_60
        return LadderBucket.DAYS_60_PLUS

    @staticmethod
    def reduce_buckets(
        intervals: Iterable[LockedInterval], now: datetime
    ) -> Dict[LadderBucket, LockedInterval]:
        """
        档内归约：保留金额最大的区间，金额相同时保留解锁更晚的

        Returns:
            {分档: 代表区间}
        """
        reduced: Dict[LadderBucket, LockedInterval] = {}
        for interval in intervals:
            bucket = LadderCalculator.categorize_lock_period(interval.end_at, now)
            current = reduced.get(bucket)
            if (
                current is None
                or interval.amount > current.amount
                or (interval.amount == current.amount and interval.end_at > current.end_at)
            ):
                reduced[bucket] = interval

            logger.debug(
                "interval_categorized",
                amount=str(interval.amount),
                end_at=interval.end_at.isoformat(),
                bucket=bucket.value,
            )
        return reduced

    @staticmethod
    def build_ladder(intervals: Iterable[LockedInterval], now: datetime) -> List[LadderEntry]:
        """
        构建六档流动性阶梯

        从 60+d 向 0d 遍历，只有金额大于已见最大值的档位才输出；
        长期锁仓在更短的期限内同样处于锁定状态，不重复计入。

        Returns:
            按 0d → 60+d 顺序的六个 LadderEntry
        """
        reduced = LadderCalculator.reduce_buckets(intervals, now)

        max_seen = Decimal(0)
        entries: Dict[LadderBucket, LadderEntry] = {}
        for bucket in reversed(LADDER_ORDER):
            interval = reduced.get(bucket)
            if interval is not None and interval.amount > max_seen:
                max_seen = interval.amount
                entries[bucket] = LadderEntry(
                    bucket=bucket, amount=interval.amount, end_at=interval.end_at
                )
            else:
                entries[bucket] = LadderEntry(bucket=bucket)

        return [entries[bucket] for bucket in LADDER_ORDER]

"""
LadderCalculator 单元测试
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from liquidity_matrix.core.models import LADDER_ORDER, LadderBucket, LockedInterval
from liquidity_matrix.tools.liquidity import LadderCalculator

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def interval(days: float, amount: str, start_days_ago: float = 0) -> LockedInterval:
    return LockedInterval(
        start_at=NOW - timedelta(days=start_days_ago),
        end_at=NOW + timedelta(days=days),
        amount=Decimal(amount),
    )


class TestCategorizeLockPeriod:
    """分档边界测试"""

    @pytest.mark.parametrize(
        "days,expected",
        [
            (-3, LadderBucket.DAYS_0),
            (0, LadderBucket.DAYS_0),
            (0.5, LadderBucket.DAYS_0),
            (1, LadderBucket.DAYS_1_7),
            (7, LadderBucket.DAYS_1_7),
            (7.9, LadderBucket.DAYS_1_7),
            (8, LadderBucket.DAYS_8_14),
            (14, LadderBucket.DAYS_8_14),
            (15, LadderBucket.DAYS_15_28),
            (28, LadderBucket.DAYS_15_28),
            (29, LadderBucket.DAYS_29_60),
            (60, LadderBucket.DAYS_29_60),
            (61, LadderBucket.DAYS_60_PLUS),
            (1792, LadderBucket.DAYS_60_PLUS),
        ],
    )
    def test_bucket_boundaries(self, days, expected):
        """剩余天数按向下取整分档"""
        end_at = NOW + timedelta(days=days)
        assert LadderCalculator.categorize_lock_period(end_at, NOW) == expected

    def test_days_remaining_floors(self):
        """不足一天的部分舍去，已过期为负数"""
        assert LadderCalculator.days_remaining(NOW + timedelta(days=2, hours=23), NOW) == 2
        assert LadderCalculator.days_remaining(NOW - timedelta(hours=1), NOW) == -1


class TestReduceBuckets:
    """档内归约测试"""

    def test_keeps_maximum_amount(self):
        """同一档只保留最大金额"""
        reduced = LadderCalculator.reduce_buckets(
            [interval(100, "10"), interval(200, "30"), interval(90, "20")], NOW
        )
        assert list(reduced) == [LadderBucket.DAYS_60_PLUS]
        assert reduced[LadderBucket.DAYS_60_PLUS].amount == Decimal("30")

    def test_tie_prefers_later_end(self):
        """金额相同时保留解锁更晚的区间"""
        early, late = interval(35, "5"), interval(50, "5")
        reduced = LadderCalculator.reduce_buckets([late, early], NOW)
        assert reduced[LadderBucket.DAYS_29_60].end_at == late.end_at

        reduced = LadderCalculator.reduce_buckets([early, late], NOW)
        assert reduced[LadderBucket.DAYS_29_60].end_at == late.end_at


class TestBuildLadder:
    """流动性阶梯测试"""

    def test_empty_yields_six_absent_entries(self):
        """无锁仓时六档均为 none"""
        ladder = LadderCalculator.build_ladder([], NOW)

        assert [entry.bucket for entry in ladder] == list(LADDER_ORDER)
        assert all(entry.is_absent for entry in ladder)

    def test_dominated_shorter_bucket_is_hidden(self):
        """较短期限的金额不大于更长期限时不输出"""
        ladder = LadderCalculator.build_ladder([interval(100, "50"), interval(3, "20")], NOW)
        by_bucket = {entry.bucket: entry for entry in ladder}

        assert by_bucket[LadderBucket.DAYS_60_PLUS].amount == Decimal("50")
        assert by_bucket[LadderBucket.DAYS_1_7].is_absent

    def test_equal_amount_is_not_emitted_twice(self):
        """金额相等不算更大"""
        ladder = LadderCalculator.build_ladder([interval(100, "50"), interval(3, "50")], NOW)
        present = [entry.bucket for entry in ladder if not entry.is_absent]
        assert present == [LadderBucket.DAYS_60_PLUS]

    def test_amounts_strictly_increase_towards_shorter_buckets(self):
        """从最长期限往下，输出的金额严格递增"""
        intervals = [
            interval(100, "10"),
            interval(45, "5"),
            interval(20, "25"),
            interval(10, "25"),
            interval(3, "40"),
            interval(0, "1"),
        ]
        ladder = LadderCalculator.build_ladder(intervals, NOW)

        amounts = [entry.amount for entry in reversed(ladder) if not entry.is_absent]
        assert amounts == [Decimal("10"), Decimal("25"), Decimal("40")]
        assert all(a < b for a, b in zip(amounts, amounts[1:]))

    def test_entry_documents(self):
        """文档中的 lock_category / amount / class"""
        ladder = LadderCalculator.build_ladder([interval(100, "100")], NOW)
        docs = [entry.to_document() for entry in ladder]

        assert docs[0] == {"lock_category": "Locked 0 Days", "amount": "none", "class": "none"}
        assert docs[-1] == {
            "lock_category": "Locked 60+ Days",
            "amount": "100.0000000000",
            "class": "locked-60-plus-days",
        }

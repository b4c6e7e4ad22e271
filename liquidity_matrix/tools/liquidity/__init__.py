"""锁仓重建与流动性阶梯计算"""
from .block_clock import BlockClock
from .composer import ReportComposer
from .conviction import ConvictionLockResolver, ConvictionResolution
from .ladder import LadderCalculator
from .vesting import VestingResolver

__all__ = [
    "BlockClock",
    "ConvictionLockResolver",
    "ConvictionResolution",
    "LadderCalculator",
    "ReportComposer",
    "VestingResolver",
]

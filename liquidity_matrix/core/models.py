"""
核心数据模型 - Pydantic定义
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from liquidity_matrix.utils.exceptions import InvariantViolationError
from liquidity_matrix.utils.units import format_amount, to_tokens

NONE_MARKER = "none"


# ==================== 枚举类型 ====================


class LadderBucket(str, Enum):
    """解锁期限分档（按列出顺序，60+d 为最长期限）"""

    DAYS_0 = "0d"
    DAYS_1_7 = "1-7d"
    DAYS_8_14 = "8-14d"
    DAYS_15_28 = "15-28d"
    DAYS_29_60 = "29-60d"
    DAYS_60_PLUS = "60+d"

    @property
    def label(self) -> str:
        """报告中显示的分档名称"""
        return _BUCKET_LABELS[self]

    @property
    def css_class(self) -> str:
        """报告模板使用的CSS类名"""
        return _BUCKET_CSS[self]


_BUCKET_LABELS = {
    LadderBucket.DAYS_0: "Locked 0 Days",
    LadderBucket.DAYS_1_7: "Locked 1-7 Days",
    LadderBucket.DAYS_8_14: "Locked 8-14 Days",
    LadderBucket.DAYS_15_28: "Locked 15-28 Days",
    LadderBucket.DAYS_29_60: "Locked 29-60 Days",
    LadderBucket.DAYS_60_PLUS: "Locked 60+ Days",
}

_BUCKET_CSS = {
    LadderBucket.DAYS_0: "locked-0-days",
    LadderBucket.DAYS_1_7: "locked-1-7-days",
    LadderBucket.DAYS_8_14: "locked-8-14-days",
    LadderBucket.DAYS_15_28: "locked-15-28-days",
    LadderBucket.DAYS_29_60: "locked-29-60-days",
    LadderBucket.DAYS_60_PLUS: "locked-60-plus-days",
}

LADDER_ORDER: Tuple[LadderBucket, ...] = tuple(LadderBucket)


class ReferendumStatus(str, Enum):
    """公投状态（ReferendumInfo 的变体）"""

    ONGOING = "Ongoing"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"
    TIMED_OUT = "TimedOut"
    KILLED = "Killed"
    UNKNOWN = "Unknown"


# ==================== 基础模型 ====================


class AccountAddress(BaseModel):
    """账户地址"""

    public_key: str = Field(..., description="32字节公钥（0x开头的hex）")
    ss58: str = Field(..., description="规范SS58编码，用于显示")

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return self.ss58


# ==================== 链上存储项（解码后） ====================


class AccountBalance(BaseModel):
    """balances.account（仅透传显示）"""

    free: int = Field(default=0, ge=0)
    reserved: int = Field(default=0, ge=0)
    frozen: int = Field(default=0, ge=0)


class RawBalanceLock(BaseModel):
    """balances.locks 中的一项"""

    id: str = Field(..., description="8字节锁ID（ASCII）")
    amount: int = Field(..., ge=0, description="锁定金额（base units）")
    reasons: str = Field(default="All")


class ClassLock(BaseModel):
    """convictionVoting.classLocksFor 中的一项"""

    track: int = Field(..., ge=0, description="治理轨道（class）")
    amount: int = Field(..., ge=0, description="该轨道锁定金额（base units）")


class StandardVote(BaseModel):
    """AccountVote::Standard"""

    kind: Literal["Standard"] = "Standard"
    vote: int = Field(..., ge=0, le=255, description="vote字节：低7位conviction，最高位aye")
    balance: int = Field(..., ge=0)

    @property
    def aye(self) -> bool:
        return bool(self.vote & 0x80)


class SplitVote(BaseModel):
    """AccountVote::Split"""

    kind: Literal["Split"] = "Split"
    aye: int = Field(..., ge=0)
    nay: int = Field(..., ge=0)

    @property
    def balance(self) -> int:
        return self.aye + self.nay

    @property
    def portions(self) -> List[Tuple[str, int]]:
        """各部分金额（aye / nay），分别计算锁仓"""
        return [("aye", self.aye), ("nay", self.nay)]


class SplitAbstainVote(BaseModel):
    """AccountVote::SplitAbstain"""

    kind: Literal["SplitAbstain"] = "SplitAbstain"
    aye: int = Field(..., ge=0)
    nay: int = Field(..., ge=0)
    abstain: int = Field(..., ge=0)

    @property
    def balance(self) -> int:
        return self.aye + self.nay + self.abstain

    @property
    def portions(self) -> List[Tuple[str, int]]:
        return [("aye", self.aye), ("nay", self.nay), ("abstain", self.abstain)]


AccountVote = Annotated[
    Union[StandardVote, SplitVote, SplitAbstainVote],
    Field(discriminator="kind"),
]


class CastingVoting(BaseModel):
    """Voting::Casting"""

    kind: Literal["Casting"] = "Casting"
    votes: List[Tuple[int, AccountVote]] = Field(default_factory=list)


class DelegatingVoting(BaseModel):
    """Voting::Delegating"""

    kind: Literal["Delegating"] = "Delegating"
    target: Optional[str] = None
    conviction: Optional[str] = None
    balance: int = Field(default=0, ge=0)


Voting = Annotated[
    Union[CastingVoting, DelegatingVoting],
    Field(discriminator="kind"),
]


class ReferendumTally(BaseModel):
    """进行中公投的计票"""

    ayes: int = 0
    nays: int = 0
    support: int = 0


class ReferendumInfo(BaseModel):
    """referenda.referendumInfoFor"""

    status: ReferendumStatus
    reference_block: Optional[int] = Field(
        default=None, description="Ongoing取submitted，其余取变体中的区块号"
    )
    track: Optional[int] = None
    tally: Optional[ReferendumTally] = None


class VestingInfo(BaseModel):
    """vesting.vesting 中的一项"""

    locked: int = Field(..., ge=0)
    per_block: int = Field(..., ge=0)
    starting_block: int = Field(..., ge=0)


# ==================== 锁仓计算结果 ====================


class LockedInterval(BaseModel):
    """单次投票产生的连续锁仓区间"""

    start_at: datetime
    end_at: datetime
    amount: Decimal = Field(..., description="锁定数量（tokens）")
    referendum_id: Optional[int] = None
    track: Optional[int] = None
    conviction: Optional[int] = None
    vote_kind: str = "Standard"
    portion: Optional[str] = Field(default=None, description="Split投票的部分（aye / nay / abstain）")

    @model_validator(mode="after")
    def check_invariants(self) -> "LockedInterval":
        """start_at ≤ end_at 且 amount ≥ 0"""
        if self.start_at > self.end_at:
            raise InvariantViolationError(
                f"Locked interval ends before it starts: {self.start_at} > {self.end_at}"
            )
        if self.amount < 0:
            raise InvariantViolationError(f"Negative locked amount: {self.amount}")
        return self


class VestingSchedule(BaseModel):
    """线性释放计划"""

    start_at: datetime
    end_at: datetime
    locked_total: Decimal = Field(..., description="start_at 时仍锁定的数量（tokens）")
    per_block_release: Decimal = Field(..., description="每个区块释放数量（tokens）")
    starting_block: int
    total_blocks: int

    def to_document(self) -> Dict[str, Any]:
        return {
            "start_at": self.start_at.strftime("%Y-%m-%d %H:%M:%S"),
            "end_at": self.end_at.strftime("%Y-%m-%d %H:%M:%S"),
            "locked_tokens": format_amount(self.locked_total),
            "per_block_tokens": format_amount(self.per_block_release),
        }


class BalanceLockEntry(BaseModel):
    """balances.locks 汇总项（仅显示，不参与分档）"""

    id: str
    amount: Decimal

    def to_document(self) -> Dict[str, Any]:
        return {"id": self.id, "amount_tokens": format_amount(self.amount)}


class LadderEntry(BaseModel):
    """流动性阶梯中的一档"""

    bucket: LadderBucket
    amount: Optional[Decimal] = None
    end_at: Optional[datetime] = None

    @property
    def is_absent(self) -> bool:
        return self.amount is None

    def to_document(self) -> Dict[str, Any]:
        if self.amount is None:
            return {
                "lock_category": self.bucket.label,
                "amount": NONE_MARKER,
                "class": NONE_MARKER,
            }
        return {
            "lock_category": self.bucket.label,
            "amount": format_amount(self.amount),
            "class": self.bucket.css_class,
        }


class VoteDetail(BaseModel):
    """单张投票的明细（报告中的投票表）"""

    referendum_id: int
    track: int
    status: ReferendumStatus
    vote_kind: str
    aye: Optional[bool] = None
    conviction: Optional[int] = None
    amount: Decimal
    tally: Optional[ReferendumTally] = None
    locked_until: Optional[datetime] = None
    skipped_reason: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        if self.aye is None:
            direction = "split"
        else:
            direction = "aye" if self.aye else "nay"
        return {
            "referendum_id": self.referendum_id,
            "track": self.track,
            "status": self.status.value,
            "vote_kind": self.vote_kind,
            "direction": direction,
            "conviction": self.conviction,
            "amount_tokens": format_amount(self.amount),
            "tally_ayes": format_amount(to_tokens(self.tally.ayes)) if self.tally else None,
            "tally_nays": format_amount(to_tokens(self.tally.nays)) if self.tally else None,
            "locked_until": self.locked_until.strftime("%Y-%m-%d %H:%M:%S")
            if self.locked_until
            else None,
            "skipped_reason": self.skipped_reason,
        }


# ==================== 报告模型 ====================


class AccountReport(BaseModel):
    """单个账户的报告"""

    address: AccountAddress
    ladder: List[LadderEntry]
    locks: List[BalanceLockEntry] = Field(default_factory=list)
    vesting: List[VestingSchedule] = Field(default_factory=list)
    balance: Optional[AccountBalance] = None
    votes: List[VoteDetail] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        balance_doc = None
        if self.balance is not None:
            balance_doc = {
                "free": format_amount(to_tokens(self.balance.free)),
                "reserved": format_amount(to_tokens(self.balance.reserved)),
                "frozen": format_amount(to_tokens(self.balance.frozen)),
            }

        return {
            "address": self.address.ss58,
            "data": {
                "liquidity": {"locks": [entry.to_document() for entry in self.ladder]},
                "locks": [lock.to_document() for lock in self.locks],
                "vesting": [schedule.to_document() for schedule in self.vesting],
                "balance": balance_doc,
                "votes": [vote.to_document() for vote in self.votes],
                "warnings": list(self.warnings),
            },
        }


class RunReport(BaseModel):
    """一次运行的完整报告"""

    generated_at: datetime
    finalized_block: int
    accounts: List[AccountReport] = Field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        """转换为模板使用的结构化文档"""
        return {
            "date": self.generated_at.strftime("%Y-%m-%d %H:%M:%S") + " UTC",
            "finalized_block": self.finalized_block,
            "accounts": [account.to_document() for account in self.accounts],
        }

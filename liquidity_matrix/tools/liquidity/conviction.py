"""
Conviction 锁仓解析

对每个账户：
1. 遍历 classLocksFor 中的每个治理轨道，读取 votingFor(account, track)
2. 仅处理 Casting 记录（Delegating / 不存在则跳过该轨道）
3. 对每张投票读取 referendumInfoFor，取参考区块：
   Ongoing → submitted；Approved/Rejected/Killed/Cancelled/TimedOut → 变体中的区块
4. 锁仓结束时间 = 参考区块时间 + 28天 × 2^conviction
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from liquidity_matrix.chain.base import BaseChainReader
from liquidity_matrix.core.models import (
    AccountAddress,
    CastingVoting,
    ClassLock,
    LockedInterval,
    ReferendumInfo,
    ReferendumStatus,
    StandardVote,
    VoteDetail,
)
from liquidity_matrix.middleware import ErrorAggregator
from liquidity_matrix.tools.liquidity.block_clock import BlockClock
from liquidity_matrix.utils.exceptions import ChainFetchError, InvariantViolationError
from liquidity_matrix.utils.logger import get_logger
from liquidity_matrix.utils.units import to_tokens

logger = get_logger(__name__)

MAX_CONVICTION = 6
CONVICTION_MASK = 0x7F
BASE_LOCK_PERIOD_DAYS = 28


def decode_conviction(vote: int) -> Tuple[bool, int]:
    """
    解析 vote 字节

    Returns:
        (aye, conviction)

    Raises:
        InvariantViolationError: conviction 超出 0..6
    """
    conviction = vote & CONVICTION_MASK
    if conviction > MAX_CONVICTION:
        raise InvariantViolationError(f"Unknown conviction value: {conviction}")
    return bool(vote & 0x80), conviction


def conviction_multiplier(conviction: int) -> int:
    """锁仓倍数 2^k（k=0 时为 1）"""
    if not 0 <= conviction <= MAX_CONVICTION:
        raise InvariantViolationError(f"Unknown conviction value: {conviction}")
    return 1 << conviction


def lock_end(
    start_at: datetime, conviction: int, base_lock_period_days: int = BASE_LOCK_PERIOD_DAYS
) -> datetime:
    return start_at + timedelta(days=base_lock_period_days * conviction_multiplier(conviction))


@dataclass
class ConvictionResolution:
    """单个账户的解析结果"""

    intervals: List[LockedInterval] = field(default_factory=list)
    votes: List[VoteDetail] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class ConvictionLockResolver:
    """Conviction 锁仓解析器"""

    def __init__(
        self,
        reader: BaseChainReader,
        clock: BlockClock,
        base_lock_period_days: int = BASE_LOCK_PERIOD_DAYS,
        include_split_votes: bool = True,
        error_aggregator: Optional[ErrorAggregator] = None,
    ):
        """
        Args:
            reader: 链上数据读取器
            clock: 本次运行的区块时钟
            base_lock_period_days: 基础锁仓周期（天）
            include_split_votes: Split / SplitAbstain 投票的各部分是否按 conviction 0 计入锁仓
            error_aggregator: 读取失败记录器
        """
        self.reader = reader
        self.clock = clock
        self.base_lock_period_days = base_lock_period_days
        self.include_split_votes = include_split_votes
        self.errors = error_aggregator or ErrorAggregator()
        # 同一公投会被多个账户引用，单次运行内缓存
        self._referenda: Dict[int, Optional[ReferendumInfo]] = {}

    async def resolve(
        self, account: AccountAddress, class_locks: List[ClassLock]
    ) -> ConvictionResolution:
        """
        解析账户在所有轨道上的投票锁仓

        Args:
            account: 账户
            class_locks: classLocksFor 的结果

        Returns:
            ConvictionResolution（锁仓区间、投票明细、警告）
        """
        result = ConvictionResolution()

        for class_lock in class_locks:
            try:
                voting = await self.reader.get_voting(account, class_lock.track)
            except ChainFetchError as e:
                self._record(result, account, "convictionVoting.votingFor", e, class_lock.track)
                continue

            if not isinstance(voting, CastingVoting):
                logger.debug(
                    "voting_not_casting",
                    address=account.ss58,
                    track=class_lock.track,
                    kind=voting.kind if voting else None,
                )
                continue

            await self._process_casting(account, class_lock.track, voting, result)

        logger.info(
            "conviction_locks_resolved",
            address=account.ss58,
            tracks=len(class_locks),
            votes=len(result.votes),
            intervals=len(result.intervals),
        )
        return result

    async def _process_casting(
        self,
        account: AccountAddress,
        track: int,
        casting: CastingVoting,
        result: ConvictionResolution,
    ):
        for referendum_id, account_vote in casting.votes:
            try:
                info = await self._referendum_info(referendum_id)
            except ChainFetchError as e:
                self._record(result, account, "referenda.referendumInfoFor", e, referendum_id)
                continue

            status = info.status if info else ReferendumStatus.UNKNOWN
            reference_block = info.reference_block if info else None

            if isinstance(account_vote, StandardVote):
                aye, conviction = account_vote.aye, account_vote.vote & CONVICTION_MASK
            else:
                aye, conviction = None, 0

            detail = VoteDetail(
                referendum_id=referendum_id,
                track=track,
                status=status,
                vote_kind=account_vote.kind,
                aye=aye,
                conviction=conviction,
                amount=to_tokens(account_vote.balance),
                tally=info.tally if info else None,
            )
            result.votes.append(detail)

            # 区块 0 视为无可用参考区块
            if not reference_block:
                detail.skipped_reason = "no reference block"
                continue

            if not isinstance(account_vote, StandardVote) and not self.include_split_votes:
                logger.info(
                    "split_vote_not_counted",
                    address=account.ss58,
                    referendum_id=referendum_id,
                    kind=account_vote.kind,
                )
                detail.skipped_reason = "split votes excluded"
                continue

            if isinstance(account_vote, StandardVote):
                decode_conviction(account_vote.vote)

            start_at = self.clock.block_to_instant(reference_block)
            end_at = lock_end(start_at, conviction, self.base_lock_period_days)
            detail.locked_until = end_at

            if isinstance(account_vote, StandardVote):
                portions = [(None, account_vote.balance)]
            else:
                # Split 投票的每个部分各自形成一个 conviction 0 区间
                portions = [(name, amount) for name, amount in account_vote.portions if amount]

            for portion, amount in portions:
                result.intervals.append(
                    LockedInterval(
                        start_at=start_at,
                        end_at=end_at,
                        amount=to_tokens(amount),
                        referendum_id=referendum_id,
                        track=track,
                        conviction=conviction,
                        vote_kind=account_vote.kind,
                        portion=portion,
                    )
                )

    async def _referendum_info(self, referendum_id: int) -> Optional[ReferendumInfo]:
        if referendum_id not in self._referenda:
            self._referenda[referendum_id] = await self.reader.get_referendum_info(referendum_id)
        return self._referenda[referendum_id]

    def _record(
        self,
        result: ConvictionResolution,
        account: AccountAddress,
        item: str,
        exc: Exception,
        key: int,
    ):
        logger.warning(
            "storage_fetch_failed",
            address=account.ss58,
            item=item,
            key=key,
            error=str(exc),
        )
        self.errors.record_error(account.ss58, item, exc, key=str(key))
        result.warnings.append(f"{item}({key}) unavailable: {exc}")

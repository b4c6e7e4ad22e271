"""
liquidity_matrix 工具实现

对输入的每个账户：
- 读取 balances.account / balances.locks（透传显示）
- 读取 classLocksFor → 重建 conviction 锁仓区间 → 六档流动性阶梯
- 读取 vesting.vesting → 释放计划
按输入顺序组装为一份 RunReport。

单个存储项读取失败只影响该账户的对应部分（记录日志与警告），不会中断运行；
conviction 超出范围等不变量错误会直接中断。
"""
import time
from typing import Any, Callable, Awaitable, List, Optional

from liquidity_matrix.chain.base import BaseChainReader
from liquidity_matrix.core.models import AccountAddress, AccountReport, RunReport
from liquidity_matrix.middleware import ErrorAggregator
from liquidity_matrix.tools.liquidity import (
    BlockClock,
    ConvictionLockResolver,
    LadderCalculator,
    ReportComposer,
    VestingResolver,
)
from liquidity_matrix.utils.addresses import parse_address
from liquidity_matrix.utils.config import ChainParams
from liquidity_matrix.utils.exceptions import AddressParseError, ChainFetchError
from liquidity_matrix.utils.logger import get_logger

logger = get_logger(__name__)


class LiquidityMatrixTool:
    """liquidity_matrix 工具"""

    def __init__(
        self,
        reader: BaseChainReader,
        params: Optional[ChainParams] = None,
        include_split_votes: bool = True,
    ):
        self.reader = reader
        self.params = params or ChainParams()
        self.include_split_votes = include_split_votes
        self.errors = ErrorAggregator()
        logger.info("liquidity_matrix_tool_initialized", provider=reader.name)

    async def execute(
        self, addresses: List[str], clock: Optional[BlockClock] = None
    ) -> RunReport:
        """
        生成本次运行的报告

        Args:
            addresses: 原始地址字符串（按输入顺序）
            clock: 区块时钟，默认从链上采样一次

        Returns:
            RunReport
        """
        start_time = time.time()
        logger.info("liquidity_matrix_execute_start", addresses=len(addresses))

        self.errors.clear()
        if clock is None:
            clock = await BlockClock.sample(self.reader, self.params)

        conviction_resolver = ConvictionLockResolver(
            self.reader,
            clock,
            base_lock_period_days=self.params.base_lock_period_days,
            include_split_votes=self.include_split_votes,
            error_aggregator=self.errors,
        )
        vesting_resolver = VestingResolver(clock)
        composer = ReportComposer(generated_at=clock.now, finalized_block=clock.finalized_block)

        skipped = 0
        for raw_address in addresses:
            try:
                account = parse_address(raw_address, self.params.ss58_format)
            except AddressParseError as e:
                logger.warning("address_parse_failed", address=raw_address, error=e.message)
                skipped += 1
                continue

            await self._process_account(
                account, clock, conviction_resolver, vesting_resolver, composer
            )

        report = composer.build()

        elapsed = time.time() - start_time
        logger.info(
            "liquidity_matrix_execute_complete",
            accounts=len(report.accounts),
            skipped_addresses=skipped,
            elapsed_ms=round(elapsed * 1000, 2),
            **self.errors.get_error_summary(),
        )
        return report

    async def _process_account(
        self,
        account: AccountAddress,
        clock: BlockClock,
        conviction_resolver: ConvictionLockResolver,
        vesting_resolver: VestingResolver,
        composer: ReportComposer,
    ) -> AccountReport:
        logger.info("account_processing", address=account.ss58)
        warnings: List[str] = []

        balance = await self._read(
            account, "balances.account", self.reader.get_account_balance, None, warnings
        )
        if balance is not None:
            logger.info(
                "account_balance",
                address=account.ss58,
                free=balance.free,
                reserved=balance.reserved,
                frozen=balance.frozen,
            )

        locks = await self._read(
            account, "balances.locks", self.reader.get_balance_locks, [], warnings
        )
        for lock in locks:
            logger.info("balance_lock", address=account.ss58, id=lock.id, amount=lock.amount)

        class_locks = await self._read(
            account, "convictionVoting.classLocksFor", self.reader.get_class_locks, [], warnings
        )
        resolution = await conviction_resolver.resolve(account, class_locks)
        warnings.extend(resolution.warnings)
        ladder = LadderCalculator.build_ladder(resolution.intervals, clock.now)

        for entry in ladder:
            if not entry.is_absent:
                logger.info(
                    "ladder_bucket",
                    address=account.ss58,
                    bucket=entry.bucket.value,
                    amount=str(entry.amount),
                    css_class=entry.bucket.css_class,
                )

        vesting = await self._read(
            account, "vesting.vesting", self.reader.get_vesting, [], warnings
        )
        schedules = vesting_resolver.resolve(vesting)

        return composer.add_account(
            address=account,
            ladder=ladder,
            locks=locks,
            vesting=schedules,
            balance=balance,
            votes=resolution.votes,
            warnings=warnings,
        )

    async def _read(
        self,
        account: AccountAddress,
        item: str,
        fetch: Callable[[AccountAddress], Awaitable[Any]],
        default: Any,
        warnings: List[str],
    ) -> Any:
        """读取单个存储项；失败时记录并返回空值"""
        try:
            return await fetch(account)
        except ChainFetchError as e:
            logger.warning(
                "storage_fetch_failed",
                address=account.ss58,
                item=item,
                error=str(e),
            )
            self.errors.record_error(account.ss58, item, e)
            warnings.append(f"{item} unavailable: {e}")
            return default

"""
报告组装
"""
from datetime import datetime
from typing import List, Optional

from liquidity_matrix.core.models import (
    AccountAddress,
    AccountBalance,
    AccountReport,
    BalanceLockEntry,
    LadderEntry,
    RawBalanceLock,
    RunReport,
    VestingSchedule,
    VoteDetail,
)
from liquidity_matrix.utils.units import to_tokens


class ReportComposer:
    """按输入顺序累积账户报告，最终生成 RunReport"""

    def __init__(self, generated_at: datetime, finalized_block: int):
        self.generated_at = generated_at
        self.finalized_block = finalized_block
        self._accounts: List[AccountReport] = []

    def add_account(
        self,
        address: AccountAddress,
        ladder: List[LadderEntry],
        locks: List[RawBalanceLock],
        vesting: List[VestingSchedule],
        balance: Optional[AccountBalance] = None,
        votes: Optional[List[VoteDetail]] = None,
        warnings: Optional[List[str]] = None,
    ) -> AccountReport:
        """组装单个账户的报告并追加到本次运行"""
        report = AccountReport(
            address=address,
            ladder=ladder,
            locks=[BalanceLockEntry(id=lock.id, amount=to_tokens(lock.amount)) for lock in locks],
            vesting=vesting,
            balance=balance,
            votes=votes or [],
            warnings=warnings or [],
        )
        self._accounts.append(report)
        return report

    @property
    def accounts(self) -> List[AccountReport]:
        return list(self._accounts)

    def build(self) -> RunReport:
        return RunReport(
            generated_at=self.generated_at,
            finalized_block=self.finalized_block,
            accounts=list(self._accounts),
        )

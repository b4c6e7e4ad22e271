"""
Substrate RPC客户端 - 通过 substrate-interface 读取 Polkadot 链上存储

读取的存储项：
- Balances.Account / Balances.Locks
- ConvictionVoting.ClassLocksFor / ConvictionVoting.VotingFor
- Referenda.ReferendumInfoFor
- Vesting.Vesting

substrate-interface 为同步库，所有调用通过 asyncio.to_thread 执行，
调用方按顺序 await，单连接串行使用。
"""
import asyncio
import time
from typing import Any, List, Optional, Tuple

from substrateinterface import SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from websocket import WebSocketException, WebSocketTimeoutException

from liquidity_matrix.chain.base import BaseChainReader
from liquidity_matrix.core.models import (
    AccountAddress,
    AccountBalance,
    CastingVoting,
    ClassLock,
    DelegatingVoting,
    RawBalanceLock,
    ReferendumInfo,
    ReferendumStatus,
    ReferendumTally,
    SplitAbstainVote,
    SplitVote,
    StandardVote,
    VestingInfo,
    Voting,
)
from liquidity_matrix.middleware import with_retry
from liquidity_matrix.utils.config import ChainParams
from liquidity_matrix.utils.exceptions import (
    ChainConnectionError,
    ChainDecodeError,
    ChainFetchError,
    ChainTimeoutError,
)
from liquidity_matrix.utils.logger import get_logger

logger = get_logger(__name__)

# Conviction 枚举名 → 数值
CONVICTION_NAMES = {
    "None": 0,
    "Locked1x": 1,
    "Locked2x": 2,
    "Locked3x": 3,
    "Locked4x": 4,
    "Locked5x": 5,
    "Locked6x": 6,
}

# 以区块号作为首个字段的已结束公投变体
_CONCLUDED_VARIANTS = {
    "Approved": ReferendumStatus.APPROVED,
    "Rejected": ReferendumStatus.REJECTED,
    "Cancelled": ReferendumStatus.CANCELLED,
    "TimedOut": ReferendumStatus.TIMED_OUT,
    "Killed": ReferendumStatus.KILLED,
}


class SubstrateChainClient(BaseChainReader):
    """基于 substrate-interface 的链上数据读取客户端"""

    def __init__(self, params: ChainParams, max_retries: int = 3):
        """
        初始化客户端

        Args:
            params: 链参数（RPC地址、SS58前缀等）
            max_retries: 超时重试次数
        """
        self.name = params.name
        self.params = params
        self.url = params.rpc_url
        self._substrate: Optional[SubstrateInterface] = None
        self._query_with_retry = with_retry(max_attempts=max_retries)(self._raw_query)

    @property
    def substrate(self) -> SubstrateInterface:
        """获取RPC连接（懒加载）"""
        if self._substrate is None:
            try:
                self._substrate = SubstrateInterface(
                    url=self.url,
                    ss58_format=self.params.ss58_format,
                )
            except Exception as e:
                raise ChainConnectionError(self.name, f"Cannot connect to {self.url}: {e}")
        return self._substrate

    async def connect(self):
        """建立连接并加载运行时元数据，失败即为致命错误"""
        logger.info("chain_connecting", provider=self.name, url=self.url)
        substrate = await asyncio.to_thread(lambda: self.substrate)
        try:
            await asyncio.to_thread(substrate.init_runtime)
        except Exception as e:
            raise ChainConnectionError(self.name, f"Failed to load runtime metadata: {e}")
        logger.info(
            "chain_connected",
            provider=self.name,
            runtime_version=substrate.runtime_version,
        )

    async def close(self):
        """关闭连接"""
        if self._substrate:
            self._substrate.close()
            self._substrate = None

    # ==================== 存储项读取 ====================

    async def get_finalized_head(self) -> int:
        start_time = time.time()
        try:
            block_hash = await asyncio.to_thread(self.substrate.get_chain_finalised_head)
            number = await asyncio.to_thread(self.substrate.get_block_number, block_hash)
        except (WebSocketException, SubstrateRequestException, OSError) as e:
            raise ChainFetchError(self.name, f"Failed to fetch finalized head: {e}")

        if number is None:
            raise ChainFetchError(self.name, f"Finalized block {block_hash} has no header")

        logger.info(
            "finalized_head_fetched",
            provider=self.name,
            block_number=number,
            block_hash=block_hash,
            response_time_ms=round((time.time() - start_time) * 1000, 2),
        )
        return int(number)

    async def get_account_balance(self, account: AccountAddress) -> Optional[AccountBalance]:
        return await self.fetch("Balances", "Account", [account.public_key], "balance")

    async def get_balance_locks(self, account: AccountAddress) -> List[RawBalanceLock]:
        return await self.fetch("Balances", "Locks", [account.public_key], "locks")

    async def get_class_locks(self, account: AccountAddress) -> List[ClassLock]:
        return await self.fetch(
            "ConvictionVoting", "ClassLocksFor", [account.public_key], "class_locks"
        )

    async def get_voting(self, account: AccountAddress, track: int) -> Optional[Voting]:
        return await self.fetch(
            "ConvictionVoting", "VotingFor", [account.public_key, track], "voting"
        )

    async def get_referendum_info(self, referendum_id: int) -> Optional[ReferendumInfo]:
        return await self.fetch("Referenda", "ReferendumInfoFor", [referendum_id], "referendum")

    async def get_vesting(self, account: AccountAddress) -> List[VestingInfo]:
        return await self.fetch("Vesting", "Vesting", [account.public_key], "vesting")

    async def fetch(
        self,
        module: str,
        storage_function: str,
        params: List[Any],
        data_type: str,
    ) -> Any:
        """
        读取并解码存储项的完整流程

        Args:
            module: pallet名称，如 ConvictionVoting
            storage_function: 存储项名称，如 VotingFor
            params: 存储键
            data_type: 解码类型（见 transform）

        Returns:
            解码后的模型；存储项不存在时为 None 或空列表
        """
        start_time = time.time()
        endpoint = f"{module}.{storage_function}"

        try:
            raw = await self._query_with_retry(module, storage_function, params)
            data = self.transform(raw, data_type)
        except ChainFetchError as e:
            logger.error(
                f"Failed to fetch from {self.name}",
                provider=self.name,
                endpoint=endpoint,
                params=params,
                error=str(e),
                response_time_ms=round((time.time() - start_time) * 1000, 2),
            )
            raise

        logger.debug(
            f"Successfully fetched from {self.name}",
            provider=self.name,
            endpoint=endpoint,
            params=params,
            response_time_ms=round((time.time() - start_time) * 1000, 2),
        )
        return data

    async def _raw_query(self, module: str, storage_function: str, params: List[Any]) -> Any:
        """发起存储查询，返回解码后的原始值（不存在时为 None）"""
        endpoint = f"{module}.{storage_function}"
        try:
            result = await asyncio.to_thread(
                self.substrate.query,
                module=module,
                storage_function=storage_function,
                params=params,
            )
        except (WebSocketTimeoutException, TimeoutError):
            raise ChainTimeoutError(self.name, f"Query {endpoint} timed out")
        except (WebSocketException, SubstrateRequestException, OSError) as e:
            raise ChainFetchError(self.name, f"Query {endpoint} failed: {e}")
        except ValueError as e:
            # SCALE 解码失败、存储项不存在于元数据（StorageFunctionNotFound）
            raise ChainDecodeError(self.name, f"Query {endpoint} could not be decoded: {e}")

        if result is None:
            return None
        return getattr(result, "value", result)

    # ==================== 解码 ====================

    def transform(self, raw_data: Any, data_type: str) -> Any:
        """
        将 substrate-interface 解码出的原始值转换为模型

        Args:
            raw_data: ScaleType.value（dict / list / tuple / int）
            data_type: balance, locks, class_locks, voting, referendum, vesting

        Returns:
            对应模型或模型列表
        """
        parsers = {
            "balance": self._parse_balance,
            "locks": self._parse_locks,
            "class_locks": self._parse_class_locks,
            "voting": self._parse_voting,
            "referendum": self._parse_referendum,
            "vesting": self._parse_vesting,
        }
        if data_type not in parsers:
            raise ValueError(f"Unknown data type: {data_type}")

        try:
            return parsers[data_type](raw_data)
        except ChainDecodeError:
            raise
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ChainDecodeError(
                self.name, f"Unexpected {data_type} payload {raw_data!r}: {e}"
            )

    def _parse_balance(self, raw: Any) -> Optional[AccountBalance]:
        if raw is None:
            return None
        frozen = raw.get("frozen")
        if frozen is None:
            # 旧版 AccountData：misc_frozen / fee_frozen
            frozen = max(int(raw.get("misc_frozen", 0)), int(raw.get("fee_frozen", 0)))
        return AccountBalance(
            free=int(raw.get("free", 0)),
            reserved=int(raw.get("reserved", 0)),
            frozen=int(frozen),
        )

    def _parse_locks(self, raw: Any) -> List[RawBalanceLock]:
        if not raw:
            return []
        return [
            RawBalanceLock(
                id=decode_lock_id(item["id"]),
                amount=int(item["amount"]),
                reasons=str(item.get("reasons", "All")),
            )
            for item in raw
        ]

    def _parse_class_locks(self, raw: Any) -> List[ClassLock]:
        if not raw:
            return []
        locks = []
        for item in raw:
            track, amount = _pair(item)
            locks.append(ClassLock(track=int(track), amount=int(amount)))
        return locks

    def _parse_voting(self, raw: Any) -> Optional[Voting]:
        if raw is None:
            return None
        variant, payload = _variant(raw)

        if variant == "Casting":
            votes = []
            for item in payload.get("votes") or []:
                referendum_id, account_vote = _pair(item)
                votes.append((int(referendum_id), self._parse_account_vote(account_vote)))
            return CastingVoting(votes=votes)

        if variant == "Delegating":
            return DelegatingVoting(
                target=payload.get("target"),
                conviction=payload.get("conviction"),
                balance=int(payload.get("balance", 0)),
            )

        raise ChainDecodeError(self.name, f"Unknown Voting variant: {variant}")

    def _parse_account_vote(self, raw: Any):
        variant, payload = _variant(raw)

        if variant == "Standard":
            return StandardVote(
                vote=normalize_vote_byte(payload["vote"]),
                balance=int(payload["balance"]),
            )
        if variant == "Split":
            return SplitVote(aye=int(payload["aye"]), nay=int(payload["nay"]))
        if variant == "SplitAbstain":
            return SplitAbstainVote(
                aye=int(payload["aye"]),
                nay=int(payload["nay"]),
                abstain=int(payload["abstain"]),
            )

        raise ChainDecodeError(self.name, f"Unknown AccountVote variant: {variant}")

    def _parse_referendum(self, raw: Any) -> Optional[ReferendumInfo]:
        if raw is None:
            return None

        # 无数据的变体可能被解码为纯字符串
        if isinstance(raw, str):
            return ReferendumInfo(status=ReferendumStatus.UNKNOWN)

        variant, payload = _variant(raw)

        if variant == "Ongoing":
            tally = payload.get("tally") or {}
            return ReferendumInfo(
                status=ReferendumStatus.ONGOING,
                reference_block=int(payload["submitted"]),
                track=int(payload["track"]) if payload.get("track") is not None else None,
                tally=ReferendumTally(
                    ayes=int(tally.get("ayes", 0)),
                    nays=int(tally.get("nays", 0)),
                    support=int(tally.get("support", 0)),
                ),
            )

        if variant in _CONCLUDED_VARIANTS:
            block = payload[0] if isinstance(payload, (list, tuple)) else payload
            return ReferendumInfo(
                status=_CONCLUDED_VARIANTS[variant],
                reference_block=int(block),
            )

        return ReferendumInfo(status=ReferendumStatus.UNKNOWN)

    def _parse_vesting(self, raw: Any) -> List[VestingInfo]:
        if not raw:
            return []
        return [
            VestingInfo(
                locked=int(item["locked"]),
                per_block=int(item["per_block"]),
                starting_block=int(item["starting_block"]),
            )
            for item in raw
        ]


def _variant(raw: Any) -> Tuple[str, Any]:
    """拆分枚举值 {"Variant": payload}"""
    if not isinstance(raw, dict) or len(raw) != 1:
        raise TypeError(f"expected single-variant enum, got {type(raw).__name__}")
    variant, payload = next(iter(raw.items()))
    return variant, payload


def _pair(item: Any) -> Tuple[Any, Any]:
    """二元组可能被解码为 tuple 或 list"""
    if not isinstance(item, (list, tuple)) or len(item) != 2:
        raise TypeError(f"expected 2-tuple, got {item!r}")
    return item[0], item[1]


def decode_lock_id(value: Any) -> str:
    """
    将 [u8; 8] 锁ID转换为 ASCII 字符串

    substrate-interface 通常返回 0x 开头的hex；也兼容 bytes / int列表 / 已解码字符串。
    非 ASCII 内容原样返回hex。
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, (list, tuple)):
        raw = bytes(int(b) for b in value)
    elif isinstance(value, str) and value.startswith("0x"):
        raw = bytes.fromhex(value[2:])
    elif isinstance(value, str):
        return value.rstrip("\x00 ")
    else:
        raise TypeError(f"unsupported lock id {value!r}")

    try:
        return raw.rstrip(b"\x00 ").decode("ascii")
    except UnicodeDecodeError:
        return "0x" + raw.hex()


def normalize_vote_byte(value: Any) -> int:
    """
    将 Vote 统一为原始字节（低7位 conviction，最高位 aye）

    兼容三种解码形式：int、[int]、{"aye": bool, "conviction": "Locked6x"}
    """
    if isinstance(value, bool):
        raise TypeError("vote must not be a bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    if isinstance(value, (list, tuple)) and len(value) == 1:
        return normalize_vote_byte(value[0])
    if isinstance(value, dict) and "aye" in value and "conviction" in value:
        conviction = value["conviction"]
        if isinstance(conviction, str):
            if conviction not in CONVICTION_NAMES:
                raise ValueError(f"unknown conviction {conviction!r}")
            conviction = CONVICTION_NAMES[conviction]
        return (0x80 if value["aye"] else 0) | int(conviction)
    raise TypeError(f"unsupported vote encoding {value!r}")

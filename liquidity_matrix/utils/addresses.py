"""
地址输入与解析

- 从文件或交互式输入读取以换行分隔的地址列表（忽略空行和 # 注释）
- 将SS58或0x公钥解析为 AccountAddress，并按网络前缀重新编码为规范形式
"""
import sys
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from substrateinterface.utils.ss58 import ss58_decode, ss58_encode

from liquidity_matrix.core.models import AccountAddress
from liquidity_matrix.utils.exceptions import AddressParseError, InputError

PUBLIC_KEY_BYTES = 32


def split_address_lines(lines: Iterable[str]) -> List[str]:
    """去除空白行与注释行"""
    addresses = []
    for line in lines:
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        addresses.append(text)
    return addresses


def read_addresses_from_file(path: Path) -> List[str]:
    """
    从文件读取地址列表

    Args:
        path: 文本文件路径，每行一个地址

    Returns:
        地址字符串列表（保持原顺序）
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return split_address_lines(f)
    except OSError as e:
        raise InputError(f"Cannot read address file {path}: {e}")


def read_addresses_from_prompt(
    stream: Optional[TextIO] = None, prompt_stream: Optional[TextIO] = None
) -> List[str]:
    """
    从标准输入读取地址

    终端交互输入时，EOF 或（已输入至少一个地址后）空行结束；
    管道或重定向输入读到 EOF，空行忽略。
    """
    stream = stream or sys.stdin
    prompt_stream = prompt_stream or sys.stderr

    interactive = stream.isatty()
    if interactive:
        prompt_stream.write(
            "Please input addresses, separated by newlines (blank line to finish):\n"
        )
        prompt_stream.flush()

    lines: List[str] = []
    for line in stream:
        if not line.strip():
            if interactive and lines:
                break
            continue
        lines.append(line)
    return split_address_lines(lines)


def parse_address(text: str, ss58_format: int = 0) -> AccountAddress:
    """
    解析账户地址

    Args:
        text: SS58地址或 0x 开头的32字节公钥
        ss58_format: 规范显示使用的SS58前缀（Polkadot为0）

    Returns:
        AccountAddress

    Raises:
        AddressParseError: 地址格式非法
    """
    value = text.strip()
    if not value:
        raise AddressParseError(text, "empty address")

    if value.startswith("0x"):
        try:
            raw = bytes.fromhex(value[2:])
        except ValueError:
            raise AddressParseError(text, "public key is not valid hex")
        if len(raw) != PUBLIC_KEY_BYTES:
            raise AddressParseError(
                text, f"public key must be {PUBLIC_KEY_BYTES} bytes, got {len(raw)}"
            )
        public_key = raw.hex()
    else:
        try:
            public_key = ss58_decode(value)
        except ValueError as e:
            raise AddressParseError(text, str(e))
        if len(public_key) != PUBLIC_KEY_BYTES * 2:
            raise AddressParseError(text, "address does not encode a 32-byte account id")

    public_key = "0x" + public_key.lower()
    return AccountAddress(
        public_key=public_key,
        ss58=ss58_encode(public_key, ss58_format=ss58_format),
    )

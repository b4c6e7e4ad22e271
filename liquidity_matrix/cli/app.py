"""
命令行入口

使用方式:
    liquidity-matrix --input addresses.txt
    echo 15oF4uVJwmo4TdGW7VfQxNLavjCXviqxT9S1MgbjMNHr6Sp5 | liquidity-matrix
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from liquidity_matrix.chain.substrate import SubstrateChainClient
from liquidity_matrix.core.models import RunReport
from liquidity_matrix.report import ReportRenderer
from liquidity_matrix.tools.liquidity_matrix import LiquidityMatrixTool
from liquidity_matrix.utils.addresses import read_addresses_from_file, read_addresses_from_prompt
from liquidity_matrix.utils.config import ChainParams, ConfigManager, config
from liquidity_matrix.utils.exceptions import (
    ChainError,
    ConfigurationError,
    InputError,
    InvariantViolationError,
    ReportWriteError,
)
from liquidity_matrix.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_CONNECTION = 2
EXIT_REPORT_WRITE = 3
EXIT_INVARIANT = 4
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="liquidity-matrix",
        description="Per-account liquidity and lock-status report for Polkadot accounts.",
    )
    parser.add_argument(
        "--input",
        "-i",
        type=Path,
        help="File with one address per line (default: read from stdin)",
    )
    parser.add_argument("--network", help="Network name from config/chain.yaml")
    parser.add_argument("--rpc-url", help="WebSocket RPC endpoint")
    parser.add_argument("--output-dir", "-o", type=Path, help="Directory for the HTML report")
    parser.add_argument(
        "--open",
        action="store_true",
        default=None,
        help="Open the report in the default browser after writing",
    )
    parser.add_argument(
        "--no-split-votes",
        action="store_true",
        help="Do not count Split/SplitAbstain votes as conviction-0 locks",
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    return parser


async def run(
    addresses: List[str], params: ChainParams, max_retries: int, include_split_votes: bool
) -> RunReport:
    """连接节点并生成报告；无论成功与否都会关闭连接"""
    client = SubstrateChainClient(params, max_retries=max_retries)
    try:
        await client.connect()
        tool = LiquidityMatrixTool(client, params, include_split_votes=include_split_votes)
        return await tool.execute(addresses)
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None, manager: Optional[ConfigManager] = None) -> int:
    """主入口"""
    args = build_parser().parse_args(argv)
    manager = manager or config

    try:
        settings = manager.settings
    except ValidationError as e:
        setup_logging("INFO")
        logger.error("invalid_settings", error=str(e))
        return EXIT_CONFIG

    setup_logging(args.log_level or settings.log_level)

    try:
        params = manager.get_chain_params(args.network)
        if args.rpc_url:
            params = params.model_copy(update={"rpc_url": args.rpc_url})

        if args.input is not None:
            addresses = read_addresses_from_file(args.input)
        else:
            addresses = read_addresses_from_prompt()
        if not addresses:
            raise InputError("No addresses provided")
    except (ConfigurationError, InputError) as e:
        logger.error("startup_failed", error=str(e))
        return EXIT_CONFIG

    include_split_votes = settings.include_split_votes and not args.no_split_votes
    output_dir = args.output_dir or settings.output_dir
    open_report = settings.open_report if args.open is None else args.open

    logger.info(
        "liquidity_matrix_starting",
        network=params.name,
        rpc_url=params.rpc_url,
        addresses=len(addresses),
        include_split_votes=include_split_votes,
    )

    try:
        report = asyncio.run(
            run(addresses, params, settings.chain_max_retries, include_split_votes)
        )
        path = ReportRenderer().write(report, output_dir, open_in_browser=open_report)
    except ChainError as e:
        # 连接失败或无法读取已终结区块
        logger.error("chain_connection_failed", error=str(e))
        return EXIT_CONNECTION
    except InvariantViolationError as e:
        logger.error("invariant_violated", error=str(e))
        return EXIT_INVARIANT
    except ReportWriteError as e:
        logger.error("report_write_failed", path=e.path, error=e.message)
        return EXIT_REPORT_WRITE
    except KeyboardInterrupt:
        logger.info("interrupted_by_user")
        return EXIT_INTERRUPTED

    print(path)
    return EXIT_OK


def entrypoint():
    sys.exit(main())


if __name__ == "__main__":
    entrypoint()

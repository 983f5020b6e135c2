"""
V3 Position Lens - CLI

Вывод всех Uniswap V3 / PancakeSwap V3 позиций кошелька:
поля позиции, текущий tick/sqrtPriceX96 пула и токены пары.

Usage:
    python main.py 0xWALLET --chain 56 --dex pancakeswap
    python main.py 0xWALLET --chain 1 --dex uniswap --batch --json
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from web3 import Web3

from config import get_chain_config, get_rpc_url, get_v3_dex_config
from src import PositionLens, PositionRecord, ExternalReadFailure

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Консольный handler для всех логгеров проекта."""
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not root.handlers:
        root.addHandler(handler)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="position-lens",
        description="List Uniswap V3 / PancakeSwap V3 positions of a wallet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py 0xWALLET                              PancakeSwap V3 on BSC
  python main.py 0xWALLET --chain 1 --dex uniswap      Uniswap V3 on Ethereum
  python main.py 0xWALLET --batch --json               Multicall3 reads, JSON output

RPC: --rpc, else RPC_URL_<chain_id> or RPC_URL from .env, else the chain's public RPC.
The node's chain id must match --chain.
""",
    )
    parser.add_argument("owner", help="Wallet address (0x…)")
    parser.add_argument(
        "--chain", type=int, default=56,
        help="Chain id: 56 (BSC), 1 (Ethereum), 8453 (Base) (default: 56)",
    )
    parser.add_argument(
        "--dex", type=str, default="pancakeswap",
        help="uniswap or pancakeswap (default: pancakeswap)",
    )
    parser.add_argument("--rpc", type=str, default=None, help="RPC URL override")
    parser.add_argument(
        "--batch", action="store_true",
        help="Read through Multicall3 instead of one RPC call per read",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def print_positions(records: List[PositionRecord], explorer_url: str = ""):
    """Таблица позиций."""
    print("\n" + "=" * 70)
    print(f"V3 POSITIONS: {len(records)}")
    print("=" * 70)

    if not records:
        print("Позиций нет")
        return

    for r in records:
        in_range = r.tick_lower <= r.tick < r.tick_upper
        pair = f"{r.token0.symbol}/{r.token1.symbol}"
        print(f"\n#{r.token_id}  {pair}  fee={r.fee / 10000:.2f}%  {'IN RANGE' if in_range else 'OUT OF RANGE'}")
        print(f"  Pool:       {r.pool_address}")
        if explorer_url:
            print(f"              {explorer_url}/address/{r.pool_address}")
        print(f"  Ticks:      [{r.tick_lower}, {r.tick_upper}]  current={r.tick}")
        print(f"  Liquidity:  {r.liquidity}")
        print(f"  Owed:       {r.tokens_owed0} {r.token0.symbol} (raw), {r.tokens_owed1} {r.token1.symbol} (raw)")
        print(f"  sqrtPriceX96: {r.sqrt_price_x96}")


def connect(rpc_url: str, chain_id: int) -> Web3:
    """
    Подключение к RPC с проверкой сети.

    Адреса PancakeSwap V3 одинаковы на всех сетях, поэтому RPC не той сети
    вернул бы чужие позиции без единой ошибки.

    Raises:
        ExternalReadFailure: нода не ответила на eth_chainId
        ValueError: нода в другой сети
    """
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    try:
        node_chain_id = w3.eth.chain_id
    except Exception as e:
        raise ExternalReadFailure(
            source="rpc", identifier=rpc_url, method="eth_chainId", reason=str(e)
        ) from e

    if node_chain_id != chain_id:
        raise ValueError(f"RPC {rpc_url} is on chain {node_chain_id}, expected {chain_id}")
    return w3


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        chain = get_chain_config(args.chain)
        dex = get_v3_dex_config(args.dex, args.chain)
        owner = Web3.to_checksum_address(args.owner)
        rpc_url = args.rpc or get_rpc_url(args.chain)
        w3 = connect(rpc_url, chain.chain_id)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 2
    except ExternalReadFailure as e:
        print(f"FAILED: {e}")
        return 1

    lens = PositionLens.from_dex_config(w3, dex, multicall_address=chain.multicall3)

    logger.info(f"{dex.name} on chain {chain.chain_id}, RPC {rpc_url}")

    try:
        if args.batch:
            records = lens.list_positions_batched(owner)
        else:
            records = lens.list_positions(owner)
    except ExternalReadFailure as e:
        print(f"FAILED: {e}")
        return 1

    if args.json:
        print(json.dumps([r.to_dict() for r in records], indent=2))
    else:
        print_positions(records, chain.explorer_url)
    return 0


if __name__ == "__main__":
    sys.exit(main())

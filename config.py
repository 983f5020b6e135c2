"""
Configuration for V3 Position Lens

Адреса NonfungiblePositionManager, factory и деплоеров пулов
Uniswap V3 / PancakeSwap V3 по сетям.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List

from src.contracts.pool_factory import (
    UNISWAP_V3_POOL_INIT_CODE_HASH,
    PANCAKESWAP_V3_POOL_INIT_CODE_HASH,
    PANCAKESWAP_V3_POOL_DEPLOYER,
)


@dataclass
class ChainConfig:
    """Конфигурация сети."""
    chain_id: int
    rpc_url: str
    explorer_url: str
    native_token: str
    multicall3: str = "0xcA11bde05977b3631167028862bE2a173976CA11"


@dataclass
class V3DexConfig:
    """Configuration for V3 DEX (multiple DEXes per chain)."""
    name: str
    position_manager: str
    pool_factory: str
    init_code_hash: str
    pool_deployer: str = ""  # Пустой = пулы деплоит сама factory (Uniswap)
    fee_tiers: List[int] = field(default_factory=list)


# ============================================================
# CHAIN CONFIGURATIONS
# ============================================================

# BNB Chain (BSC Mainnet)
BNB_CHAIN = ChainConfig(
    chain_id=56,
    rpc_url="https://bsc-dataseed.binance.org/",
    explorer_url="https://bscscan.com",
    native_token="BNB",
)

# Ethereum Mainnet
ETHEREUM = ChainConfig(
    chain_id=1,
    rpc_url="https://eth.llamarpc.com",
    explorer_url="https://etherscan.io",
    native_token="ETH",
)

# Base Mainnet
BASE = ChainConfig(
    chain_id=8453,
    rpc_url="https://base.llamarpc.com",
    explorer_url="https://basescan.org",
    native_token="ETH",
)

# ============================================================
# FEE TIERS
# ============================================================

FEE_TIERS = {
    "LOWEST": 100,    # 0.01% - стейблкоины
    "LOW": 500,       # 0.05% - стабильные пары
    "MEDIUM_PSC": 2500,   # 0.25% - PancakeSwap specific
    "MEDIUM_UNI": 3000,   # 0.30% - стандартный Uniswap tier
    "HIGH": 10000,    # 1.00% - экзотические пары
}

UNISWAP_FEE_TIERS = [100, 500, 3000, 10000]
PANCAKESWAP_FEE_TIERS = [100, 500, 2500, 10000]

# ============================================================
# V3 DEXES
# ============================================================

# PancakeSwap V3 использует одни и те же адреса на BSC, Ethereum и Base
_PANCAKESWAP_V3 = dict(
    name="PancakeSwap V3",
    position_manager="0x46A15B0b27311cedF172AB29E4f4766fbE7F4364",
    pool_factory="0x0BFbCF9fa4f9C56B0F40a671Ad40E0805A091865",
    pool_deployer=PANCAKESWAP_V3_POOL_DEPLOYER,
    init_code_hash=PANCAKESWAP_V3_POOL_INIT_CODE_HASH,
)

V3_DEXES: Dict[int, Dict[str, V3DexConfig]] = {
    56: {  # BSC
        "uniswap": V3DexConfig(
            name="Uniswap V3",
            position_manager="0x7b8A01B39D58278b5DE7e48c8449c9f4F5170613",
            pool_factory="0xdB1d10011AD0Ff90774D0C6Bb92e5C5c8b4461F7",
            init_code_hash=UNISWAP_V3_POOL_INIT_CODE_HASH,
            fee_tiers=UNISWAP_FEE_TIERS,
        ),
        "pancakeswap": V3DexConfig(**_PANCAKESWAP_V3, fee_tiers=PANCAKESWAP_FEE_TIERS),
    },
    1: {  # Ethereum
        "uniswap": V3DexConfig(
            name="Uniswap V3",
            position_manager="0xC36442b4a4522E871399CD717aBDD847Ab11FE88",
            pool_factory="0x1F98431c8aD98523631AE4a59f267346ea31F984",
            init_code_hash=UNISWAP_V3_POOL_INIT_CODE_HASH,
            fee_tiers=UNISWAP_FEE_TIERS,
        ),
        "pancakeswap": V3DexConfig(**_PANCAKESWAP_V3, fee_tiers=PANCAKESWAP_FEE_TIERS),
    },
    8453: {  # Base
        "uniswap": V3DexConfig(
            name="Uniswap V3",
            position_manager="0x03a520b32C04BF3bEEf7BEb72E919cf822Ed34f1",
            pool_factory="0x33128a8fC17869897dcE68Ed026d694621f6FDfD",
            init_code_hash=UNISWAP_V3_POOL_INIT_CODE_HASH,
            fee_tiers=UNISWAP_FEE_TIERS,
        ),
        "pancakeswap": V3DexConfig(**_PANCAKESWAP_V3, fee_tiers=PANCAKESWAP_FEE_TIERS),
    },
}

# ============================================================
# HELPER FUNCTIONS
# ============================================================

def get_chain_config(chain_id: int) -> ChainConfig:
    """Получение конфигурации по chain_id."""
    configs = {
        56: BNB_CHAIN,
        1: ETHEREUM,
        8453: BASE,
    }
    if chain_id not in configs:
        raise ValueError(f"Unknown chain_id: {chain_id}")
    return configs[chain_id]


def get_v3_dex_config(dex_name: str, chain_id: int = 56) -> V3DexConfig:
    """Получить конфигурацию V3 DEX по имени."""
    if chain_id not in V3_DEXES:
        raise ValueError(f"No V3 DEXes configured for chain_id: {chain_id}")

    dex_name_lower = dex_name.lower()
    if "uniswap" in dex_name_lower:
        return V3_DEXES[chain_id]["uniswap"]
    elif "pancake" in dex_name_lower:
        return V3_DEXES[chain_id]["pancakeswap"]

    raise ValueError(f"Unknown DEX name: {dex_name}")


def get_rpc_url(chain_id: int) -> str:
    """
    RPC для сети: RPC_URL_<chain_id>, затем RPC_URL, затем публичный RPC сети.

    RPC_URL не привязан к сети, поэтому main() сверяет chain_id ноды.
    """
    return (
        os.getenv(f"RPC_URL_{chain_id}")
        or os.getenv("RPC_URL")
        or get_chain_config(chain_id).rpc_url
    )

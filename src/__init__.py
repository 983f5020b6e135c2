"""
V3 Position Lens

Read-only агрегатор позиций Uniswap V3 / PancakeSwap V3.
"""

from .lens import PositionLens, PositionRecord
from .contracts.pool_factory import (
    PoolFactory,
    PoolState,
    compute_pool_address,
    sort_tokens,
    UNISWAP_V3_POOL_INIT_CODE_HASH,
    PANCAKESWAP_V3_POOL_INIT_CODE_HASH,
    PANCAKESWAP_V3_POOL_DEPLOYER,
)
from .contracts.token import TokenMetadata, TokenMetadataResolver
from .exceptions import LensError, ExternalReadFailure, TokenMetadataError

__all__ = [
    'PositionLens',
    'PositionRecord',
    'PoolFactory',
    'PoolState',
    'compute_pool_address',
    'sort_tokens',
    'UNISWAP_V3_POOL_INIT_CODE_HASH',
    'PANCAKESWAP_V3_POOL_INIT_CODE_HASH',
    'PANCAKESWAP_V3_POOL_DEPLOYER',
    'TokenMetadata',
    'TokenMetadataResolver',
    'LensError',
    'ExternalReadFailure',
    'TokenMetadataError',
]

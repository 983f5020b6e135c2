"""
Uniswap V3 Pool Address Derivation

Вычисление адреса пула через CREATE2 без обращения к factory.getPool()
и чтение текущего состояния пула (slot0).
"""

import logging
from dataclasses import dataclass
from typing import Tuple, Union
from web3 import Web3
from eth_abi import encode, decode

from .abis import SELECTOR_SLOT0
from ..exceptions import ExternalReadFailure

logger = logging.getLogger(__name__)


# keccak256 байткода UniswapV3Pool (одинаковый во всех сетях)
UNISWAP_V3_POOL_INIT_CODE_HASH = "0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54"

# PancakeSwap V3 деплоит пулы через отдельный PoolDeployer, а не через factory
PANCAKESWAP_V3_POOL_INIT_CODE_HASH = "0x6ce8eb472fa82df5469c6ab6d485f17c3ad13c8cd7af59b3d4a8026c5ce0f7e2"
PANCAKESWAP_V3_POOL_DEPLOYER = "0x41ff9AA7e16B8B1a8a8dc4f0eFacd93D02d071c9"


@dataclass(frozen=True)
class PoolState:
    """Текущее состояние пула (slot0)."""
    sqrt_price_x96: int
    tick: int


def sort_tokens(token_a: str, token_b: str) -> Tuple[str, str]:
    """
    Сортировка пары токенов: меньший адрес становится token0.

    Returns:
        (token0, token1) в checksum формате
    """
    addr_a = Web3.to_checksum_address(token_a)
    addr_b = Web3.to_checksum_address(token_b)

    if int(addr_a, 16) > int(addr_b, 16):
        addr_a, addr_b = addr_b, addr_a

    return addr_a, addr_b


def _hash_to_bytes(init_code_hash: Union[str, bytes]) -> bytes:
    if isinstance(init_code_hash, (bytes, bytearray)):
        return bytes(init_code_hash)
    return bytes.fromhex(init_code_hash[2:] if init_code_hash.startswith('0x') else init_code_hash)


def compute_pool_address(
    deployer: str,
    token_a: str,
    token_b: str,
    fee: int,
    init_code_hash: Union[str, bytes] = UNISWAP_V3_POOL_INIT_CODE_HASH
) -> str:
    """
    Вычисление адреса пула (CREATE2), как PoolAddress.computeAddress в периферии V3.

    salt = keccak256(abi.encode(token0, token1, fee))
    address = keccak256(0xff ++ deployer ++ salt ++ init_code_hash)[12:]

    Порядок token_a/token_b не важен - пара сортируется.
    Одинаковые токены не отклоняются: получится адрес несуществующего пула.

    Args:
        deployer: Адрес контракта, деплоящего пулы (factory для Uniswap)
        token_a: Адрес первого токена
        token_b: Адрес второго токена
        fee: Fee tier (например, 3000 для 0.3%)
        init_code_hash: keccak256 байткода пула

    Returns:
        Checksum адрес пула
    """
    token0, token1 = sort_tokens(token_a, token_b)

    salt = Web3.keccak(encode(['address', 'address', 'uint24'], [token0, token1, fee]))
    deployer_bytes = bytes.fromhex(Web3.to_checksum_address(deployer)[2:])

    packed = b'\xff' + deployer_bytes + salt + _hash_to_bytes(init_code_hash)
    return Web3.to_checksum_address('0x' + bytes(Web3.keccak(packed))[12:].hex())


def decode_slot0(raw: bytes) -> PoolState:
    """
    Декодирование ответа slot0().

    Берём только первые два слова (sqrtPriceX96, tick): у PancakeSwap V3
    slot0 возвращает 8 полей (feeProtocol: uint32), у Uniswap V3 - 7.
    """
    if len(raw) < 64:
        raise ValueError(f"slot0 response too short ({len(raw)} bytes)")
    sqrt_price_x96, tick = decode(['uint160', 'int24'], bytes(raw[:64]))
    return PoolState(sqrt_price_x96=sqrt_price_x96, tick=tick)


class PoolFactory:
    """
    Адреса и состояние пулов одного V3 DEX.

    Адрес пула не запрашивается у factory, а вычисляется из
    (deployer, token0, token1, fee) и не сверяется с factory.getPool().
    """

    def __init__(
        self,
        w3: Web3,
        deployer_address: str,
        init_code_hash: Union[str, bytes] = UNISWAP_V3_POOL_INIT_CODE_HASH
    ):
        self.w3 = w3
        self.deployer_address = Web3.to_checksum_address(deployer_address)
        self.init_code_hash = _hash_to_bytes(init_code_hash)

    def get_pool_address(self, token_a: str, token_b: str, fee: int) -> str:
        """Адрес пула для пары и fee tier."""
        return compute_pool_address(
            self.deployer_address, token_a, token_b, fee, self.init_code_hash
        )

    def get_pool_state(self, pool_address: str) -> PoolState:
        """
        Чтение slot0 пула через сырой eth_call.

        Args:
            pool_address: Адрес пула

        Returns:
            PoolState с sqrtPriceX96 и tick

        Raises:
            ExternalReadFailure: пул не ответил или ответ не декодируется
                (в т.ч. когда по вычисленному адресу нет контракта)
        """
        address = Web3.to_checksum_address(pool_address)

        try:
            raw = self.w3.eth.call({'to': address, 'data': SELECTOR_SLOT0})
            state = decode_slot0(raw)
        except Exception as e:
            raise ExternalReadFailure(
                source="pool", identifier=address, method="slot0", reason=str(e)
            ) from e

        logger.debug(f"slot0 {address}: sqrtPriceX96={state.sqrt_price_x96}, tick={state.tick}")
        return state

"""
ERC20 Token Metadata

Чтение name / symbol / decimals токена. Без кэша: каждый вызов идёт в сеть.
"""

import logging
from dataclasses import dataclass
from web3 import Web3

from .abis import ERC20_METADATA_ABI
from ..exceptions import TokenMetadataError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenMetadata:
    """Метаданные токена на момент чтения."""
    address: str
    name: str
    symbol: str
    decimals: int


class TokenMetadataResolver:
    """
    Чтение метаданных ERC20.

    Все три поля обязательны: если хотя бы одно не прочиталось,
    метаданные не возвращаются вовсе (без подстановки "UNKNOWN" / 18).
    """

    def __init__(self, w3: Web3):
        self.w3 = w3

    def resolve(self, token_address: str) -> TokenMetadata:
        """
        Получение метаданных токена.

        Args:
            token_address: Адрес токена

        Returns:
            TokenMetadata

        Raises:
            TokenMetadataError: с адресом токена и именем упавшего вызова
        """
        address = Web3.to_checksum_address(token_address)
        token = self.w3.eth.contract(address=address, abi=ERC20_METADATA_ABI)

        values = {}
        for method in ('name', 'symbol', 'decimals'):
            try:
                values[method] = getattr(token.functions, method)().call()
            except Exception as e:
                logger.warning(f"Failed to get {method} for {address}: {e}")
                raise TokenMetadataError(
                    identifier=address, method=method, reason=str(e)
                ) from e

        return TokenMetadata(
            address=address,
            name=values['name'],
            symbol=values['symbol'],
            decimals=values['decimals']
        )

"""
Uniswap V3 Position Manager Reader

Чтение позиций из NonfungiblePositionManager (ERC721Enumerable + positions()).
"""

import logging
from typing import List
from web3 import Web3
from web3.contract import Contract

from .abis import POSITION_MANAGER_ABI
from ..exceptions import ExternalReadFailure

logger = logging.getLogger(__name__)


def position_from_tuple(result) -> dict:
    """Разбор 12 полей positions(tokenId) в словарь."""
    return {
        'nonce': result[0],
        'operator': result[1],
        'token0': result[2],
        'token1': result[3],
        'fee': result[4],
        'tick_lower': result[5],
        'tick_upper': result[6],
        'liquidity': result[7],
        'fee_growth_inside0_last_x128': result[8],
        'fee_growth_inside1_last_x128': result[9],
        'tokens_owed0': result[10],
        'tokens_owed1': result[11]
    }


class PositionManagerReader:
    """
    Read-only обёртка над NonfungiblePositionManager.

    Любая ошибка RPC пробрасывается как ExternalReadFailure: пустой список
    вместо ошибки выглядел бы как кошелёк без позиций.
    """

    def __init__(self, w3: Web3, position_manager_address: str):
        self.w3 = w3
        self.position_manager_address = Web3.to_checksum_address(position_manager_address)
        self.contract: Contract = w3.eth.contract(
            address=self.position_manager_address,
            abi=POSITION_MANAGER_ABI
        )

    def _failure(self, method: str, e: Exception, identifier=None) -> ExternalReadFailure:
        return ExternalReadFailure(
            source="position_manager",
            identifier=identifier or self.position_manager_address,
            method=method,
            reason=str(e)
        )

    def get_positions_count(self, address: str) -> int:
        """
        Получение количества позиций у адреса.

        Args:
            address: Адрес кошелька

        Returns:
            Количество NFT позиций (balanceOf)
        """
        try:
            return self.contract.functions.balanceOf(
                Web3.to_checksum_address(address)
            ).call()
        except Exception as e:
            raise self._failure("balanceOf", e) from e

    def get_token_id_at(self, address: str, index: int) -> int:
        """token_id позиции по индексу (tokenOfOwnerByIndex)."""
        try:
            return self.contract.functions.tokenOfOwnerByIndex(
                Web3.to_checksum_address(address), index
            ).call()
        except Exception as e:
            raise self._failure("tokenOfOwnerByIndex", e) from e

    def get_position_token_ids(self, address: str) -> List[int]:
        """
        Получение списка всех token_id позиций для адреса.

        Порядок - порядок перечисления ERC721Enumerable. Между balanceOf и
        tokenOfOwnerByIndex состояние может измениться (mint/transfer),
        атомарного снимка контракт не даёт.

        Args:
            address: Адрес кошелька

        Returns:
            Список token_id
        """
        address_checksum = Web3.to_checksum_address(address)

        balance = self.get_positions_count(address_checksum)
        logger.info(f"[V3] Wallet {address_checksum[:8]}... has {balance} NFTs")

        token_ids = [self.get_token_id_at(address_checksum, i) for i in range(balance)]
        logger.debug(f"[V3] Token IDs: {token_ids}")
        return token_ids

    def get_position(self, token_id: int) -> dict:
        """Получение информации о позиции."""
        try:
            result = self.contract.functions.positions(token_id).call()
        except Exception as e:
            raise self._failure(
                "positions", e, identifier=f"{self.position_manager_address}#{token_id}"
            ) from e

        return position_from_tuple(result)

"""
V3 Position Lens

Сводка по всем V3 позициям кошелька: поля позиции из NonfungiblePositionManager,
текущие sqrtPriceX96/tick пула и метаданные обоих токенов.

Только чтение. Результат - не атомарный снимок: между balanceOf и последующими
чтениями позиции и цены могут измениться (блокировок у контрактов нет).
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, List, Union
from web3 import Web3

from .contracts.pool_factory import (
    PoolFactory,
    PoolState,
    sort_tokens,
    UNISWAP_V3_POOL_INIT_CODE_HASH,
)
from .contracts.position_manager import PositionManagerReader
from .contracts.token import TokenMetadata, TokenMetadataResolver
from .multicall.batcher import ReadBatcher, MULTICALL3_ADDRESS, DEFAULT_BATCH_SIZE
from .exceptions import ExternalReadFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionRecord:
    """Позиция вместе с состоянием пула и метаданными токенов."""
    token_id: int
    token0: TokenMetadata          # Меньший адрес пары
    token1: TokenMetadata
    fee: int
    pool_address: str              # Вычислен через CREATE2, не сверяется с factory
    tick_lower: int
    tick_upper: int
    liquidity: int
    fee_growth_inside0_last_x128: int
    fee_growth_inside1_last_x128: int
    tokens_owed0: int
    tokens_owed1: int
    sqrt_price_x96: int            # slot0 пула на момент чтения
    tick: int

    def to_dict(self) -> dict:
        """Словарь для JSON (большие uint как строки)."""
        data = asdict(self)
        for key in ('liquidity', 'fee_growth_inside0_last_x128', 'fee_growth_inside1_last_x128',
                    'tokens_owed0', 'tokens_owed1', 'sqrt_price_x96'):
            data[key] = str(data[key])
        return data


class PositionLens:
    """
    Агрегатор V3 позиций.

    Пример использования:
    ```python
    lens = PositionLens(
        w3,
        position_manager_address="0x46A15B0b27311cedF172AB29E4f4766fbE7F4364",
        pool_deployer_address="0x41ff9AA7e16B8B1a8a8dc4f0eFacd93D02d071c9",
        init_code_hash=PANCAKESWAP_V3_POOL_INIT_CODE_HASH,
    )
    for record in lens.list_positions("0x..."):
        print(record.token_id, record.token0.symbol, record.token1.symbol, record.tick)
    ```

    Ошибка любого чтения прерывает весь вызов (ExternalReadFailure),
    уже собранные записи не возвращаются.
    """

    def __init__(
        self,
        w3: Web3,
        position_manager_address: str,
        pool_deployer_address: str,
        init_code_hash: Union[str, bytes] = UNISWAP_V3_POOL_INIT_CODE_HASH,
        multicall_address: str = MULTICALL3_ADDRESS
    ):
        self.w3 = w3
        self.position_manager = PositionManagerReader(w3, position_manager_address)
        self.pool_factory = PoolFactory(w3, pool_deployer_address, init_code_hash)
        self.token_resolver = TokenMetadataResolver(w3)
        self.multicall_address = multicall_address

    @classmethod
    def from_dex_config(cls, w3: Web3, dex, multicall_address: str = MULTICALL3_ADDRESS) -> 'PositionLens':
        """
        Создание из V3DexConfig (config.py).

        Для PancakeSwap V3 пулы деплоит PoolDeployer, для Uniswap V3 - сама factory.
        """
        return cls(
            w3,
            position_manager_address=dex.position_manager,
            pool_deployer_address=dex.pool_deployer or dex.pool_factory,
            init_code_hash=dex.init_code_hash,
            multicall_address=multicall_address
        )

    @property
    def position_manager_address(self) -> str:
        return self.position_manager.position_manager_address

    def _build_record(
        self,
        token_id: int,
        position: dict,
        pool_address: str,
        state: PoolState,
        token0: TokenMetadata,
        token1: TokenMetadata
    ) -> PositionRecord:
        return PositionRecord(
            token_id=token_id,
            token0=token0,
            token1=token1,
            fee=position['fee'],
            pool_address=pool_address,
            tick_lower=position['tick_lower'],
            tick_upper=position['tick_upper'],
            liquidity=position['liquidity'],
            fee_growth_inside0_last_x128=position['fee_growth_inside0_last_x128'],
            fee_growth_inside1_last_x128=position['fee_growth_inside1_last_x128'],
            tokens_owed0=position['tokens_owed0'],
            tokens_owed1=position['tokens_owed1'],
            sqrt_price_x96=state.sqrt_price_x96,
            tick=state.tick
        )

    def list_positions(self, owner: str) -> List[PositionRecord]:
        """
        Все позиции владельца, по одному RPC вызову на каждое чтение.

        На позицию: tokenOfOwnerByIndex, positions, slot0 и по три вызова
        метаданных на каждый токен.

        Args:
            owner: Адрес кошелька

        Returns:
            Записи в порядке перечисления ERC721Enumerable

        Raises:
            ExternalReadFailure: первое неуспешное чтение
        """
        owner = Web3.to_checksum_address(owner)

        try:
            token_ids = self.position_manager.get_position_token_ids(owner)

            records = []
            for token_id in token_ids:
                position = self.position_manager.get_position(token_id)
                token0, token1 = sort_tokens(position['token0'], position['token1'])

                pool_address = self.pool_factory.get_pool_address(token0, token1, position['fee'])
                state = self.pool_factory.get_pool_state(pool_address)

                records.append(self._build_record(
                    token_id,
                    position,
                    pool_address,
                    state,
                    self.token_resolver.resolve(token0),
                    self.token_resolver.resolve(token1)
                ))
        except ExternalReadFailure as e:
            logger.error(f"[V3] Position scan for {owner} aborted: {e}")
            raise

        logger.info(f"[V3] Loaded {len(records)} positions for {owner[:8]}...")
        return records

    def list_positions_batched(
        self,
        owner: str,
        batch_size: int = DEFAULT_BATCH_SIZE
    ) -> List[PositionRecord]:
        """
        То же, что list_positions, но через Multicall3.

        Три раунда aggregate3: token_id по индексам, затем positions(),
        затем slot0 всех пулов + метаданные уникальных токенов. Метаданные
        читаются один раз на токен за вызов, поэтому чтений меньше, чем
        2 x 3 на позицию в list_positions.

        Args:
            owner: Адрес кошелька
            batch_size: Вызовов в одном aggregate3

        Returns:
            Записи в порядке перечисления ERC721Enumerable

        Raises:
            ExternalReadFailure: неуспешный вызов в батче или сбой aggregate3
        """
        owner = Web3.to_checksum_address(owner)
        pm_address = self.position_manager_address

        try:
            count = self.position_manager.get_positions_count(owner)
            logger.info(f"[V3] Wallet {owner[:8]}... has {count} NFTs")
            if count == 0:
                return []

            # Round 1: token ids
            batcher = ReadBatcher(self.w3, self.multicall_address, batch_size)
            for i in range(count):
                batcher.add_token_of_owner_by_index(pm_address, owner, i)
            token_ids = batcher.execute()

            # Round 2: positions
            batcher.clear()
            for token_id in token_ids:
                batcher.add_v3_position(pm_address, token_id)
            positions = batcher.execute()

            # Round 3: pool state + token metadata
            pairs = []
            tokens: Dict[str, None] = {}
            for position in positions:
                token0, token1 = sort_tokens(position['token0'], position['token1'])
                pool_address = self.pool_factory.get_pool_address(token0, token1, position['fee'])
                pairs.append((token0, token1, pool_address))
                tokens.setdefault(token0)
                tokens.setdefault(token1)

            batcher.clear()
            for _, _, pool_address in pairs:
                batcher.add_pool_slot0(pool_address)
            for token in tokens:
                batcher.add_erc20_name(token)
                batcher.add_erc20_symbol(token)
                batcher.add_erc20_decimals(token)
            results = batcher.execute()
        except ExternalReadFailure as e:
            logger.error(f"[V3] Batched position scan for {owner} aborted: {e}")
            raise

        states = results[:len(pairs)]
        metadata_values = results[len(pairs):]
        metadata = {}
        for i, token in enumerate(tokens):
            name, symbol, decimals = metadata_values[i * 3:i * 3 + 3]
            metadata[token] = TokenMetadata(address=token, name=name, symbol=symbol, decimals=decimals)

        records = [
            self._build_record(token_id, position, pool_address, state, metadata[token0], metadata[token1])
            for token_id, position, (token0, token1, pool_address), state
            in zip(token_ids, positions, pairs, states)
        ]

        logger.info(f"[V3] Loaded {len(records)} positions for {owner[:8]}... via multicall")
        return records

"""
Multicall3 Read Batcher

Батчинг view-вызовов через Multicall3.aggregate3 (eth_call, без транзакций).
Позволяет прочитать позиции, slot0 пулов и метаданные токенов
за несколько RPC запросов вместо ~8 на каждую позицию.

Адрес Multicall3 (одинаковый на всех EVM сетях):
0xcA11bde05977b3631167028862bE2a173976CA11
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional
from web3 import Web3
from eth_abi import encode, decode

from ..contracts.abis import (
    MULTICALL3_ABI,
    POSITION_OUTPUT_TYPES,
    SELECTOR_TOKEN_OF_OWNER_BY_INDEX,
    SELECTOR_POSITIONS,
    SELECTOR_SLOT0,
    SELECTOR_NAME,
    SELECTOR_SYMBOL,
    SELECTOR_DECIMALS,
)
from ..contracts.pool_factory import decode_slot0
from ..contracts.position_manager import position_from_tuple
from ..exceptions import ExternalReadFailure, TokenMetadataError

logger = logging.getLogger(__name__)


# Multicall3 deployed at same address on all chains
MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"

# Вызовов в одном aggregate3 (ограничение gas у eth_call на публичных RPC)
DEFAULT_BATCH_SIZE = 200


@dataclass
class BatchCall:
    """Один view-вызов в батче."""
    target: str                       # Адрес контракта
    call_data: bytes                  # Закодированные данные вызова
    decoder: Optional[Callable[[bytes], Any]] = None
    source: str = "contract"          # Для сообщения об ошибке
    method: str = ""
    identifier: Any = None            # По умолчанию = target

    def to_tuple(self) -> tuple:
        # allowFailure=True: иначе aggregate3 ревертит целиком и не видно, какой вызов упал
        return (Web3.to_checksum_address(self.target), True, self.call_data)


def _decode_uint(data: bytes) -> int:
    return decode(['uint256'], bytes(data))[0]


def _decode_uint8(data: bytes) -> int:
    return decode(['uint8'], bytes(data))[0]


def _decode_string(data: bytes) -> str:
    return decode(['string'], bytes(data))[0]


def _decode_position(data: bytes) -> dict:
    position = position_from_tuple(decode(POSITION_OUTPUT_TYPES, bytes(data)))
    for key in ('operator', 'token0', 'token1'):
        position[key] = Web3.to_checksum_address(position[key])
    return position


class ReadBatcher:
    """
    Батчер view-вызовов.

    Использование:
    ```python
    batcher = ReadBatcher(w3)
    batcher.add_v3_position(position_manager_address, 12345)
    batcher.add_pool_slot0(pool_address)
    position, slot0 = batcher.execute()
    ```

    Любой неуспешный или недекодируемый ответ - ExternalReadFailure,
    частичных результатов нет. Упавший aggregate3 не повторяется: отдельные
    eth_call используются только если по адресу Multicall3 нет контракта.
    """

    def __init__(
        self,
        w3: Web3,
        multicall_address: str = MULTICALL3_ADDRESS,
        batch_size: int = DEFAULT_BATCH_SIZE
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")

        self.w3 = w3
        self.multicall_address = Web3.to_checksum_address(multicall_address)
        self.multicall = w3.eth.contract(
            address=self.multicall_address,
            abi=MULTICALL3_ABI
        )
        self.batch_size = batch_size
        self.calls: List[BatchCall] = []
        self._deployed: Optional[bool] = None

    def clear(self):
        """Очистка списка вызовов."""
        self.calls = []

    def add_call(self, call: BatchCall):
        """Добавление вызова в батч."""
        self.calls.append(call)

    def add_raw_call(
        self,
        target: str,
        call_data: bytes,
        decoder: Callable[[bytes], Any] = None,
        source: str = "contract",
        method: str = "",
        identifier: Any = None
    ):
        """Добавление сырого вызова."""
        self.add_call(BatchCall(
            target=Web3.to_checksum_address(target),
            call_data=call_data,
            decoder=decoder,
            source=source,
            method=method,
            identifier=identifier
        ))

    # ── Position manager ─────────────────────────────────────────────

    def add_token_of_owner_by_index(self, position_manager: str, owner: str, index: int):
        """tokenOfOwnerByIndex(owner, index) -> token_id."""
        call_data = SELECTOR_TOKEN_OF_OWNER_BY_INDEX + encode(
            ['address', 'uint256'], [Web3.to_checksum_address(owner), index]
        )
        self.add_raw_call(
            position_manager, call_data, _decode_uint,
            source="position_manager", method="tokenOfOwnerByIndex"
        )

    def add_v3_position(self, position_manager: str, token_id: int):
        """positions(token_id) -> dict с 12 полями позиции."""
        call_data = SELECTOR_POSITIONS + encode(['uint256'], [token_id])
        self.add_raw_call(
            position_manager, call_data, _decode_position,
            source="position_manager", method="positions",
            identifier=f"{Web3.to_checksum_address(position_manager)}#{token_id}"
        )

    # ── Pools ────────────────────────────────────────────────────────

    def add_pool_slot0(self, pool_address: str):
        """slot0() -> PoolState (сырой селектор, совместим с PancakeSwap V3)."""
        self.add_raw_call(
            pool_address, SELECTOR_SLOT0, decode_slot0,
            source="pool", method="slot0"
        )

    # ── ERC20 metadata ───────────────────────────────────────────────

    def add_erc20_name(self, token_address: str):
        self.add_raw_call(token_address, SELECTOR_NAME, _decode_string, source="token", method="name")

    def add_erc20_symbol(self, token_address: str):
        self.add_raw_call(token_address, SELECTOR_SYMBOL, _decode_string, source="token", method="symbol")

    def add_erc20_decimals(self, token_address: str):
        self.add_raw_call(token_address, SELECTOR_DECIMALS, _decode_uint8, source="token", method="decimals")

    # ── Execution ────────────────────────────────────────────────────

    def _failure(self, call: BatchCall, reason: str) -> ExternalReadFailure:
        identifier = call.identifier if call.identifier is not None else call.target
        error_cls = TokenMetadataError if call.source == "token" else ExternalReadFailure
        return error_cls(
            source=call.source,
            identifier=identifier,
            method=call.method,
            reason=reason
        )

    def _decode(self, call: BatchCall, return_data: bytes) -> Any:
        if call.decoder is None:
            return return_data
        try:
            return call.decoder(return_data)
        except Exception as e:
            raise self._failure(call, f"malformed response: {e}") from e

    def _multicall_deployed(self) -> bool:
        """Есть ли код по адресу Multicall3 (проверяется один раз)."""
        if self._deployed is None:
            try:
                code = self.w3.eth.get_code(self.multicall_address)
            except Exception as e:
                raise ExternalReadFailure(
                    source="multicall",
                    identifier=self.multicall_address,
                    method="getCode",
                    reason=str(e)
                ) from e
            self._deployed = len(code) > 0
            if not self._deployed:
                logger.warning(f"No Multicall3 at {self.multicall_address}, using individual eth_call")
        return self._deployed

    def _execute_chunk(self, chunk: List[BatchCall]) -> List[Any]:
        if not self._multicall_deployed():
            return self._fallback_execute(chunk)

        try:
            raw_results = self.multicall.functions.aggregate3(
                [call.to_tuple() for call in chunk]
            ).call()
        except Exception as e:
            logger.error(f"Multicall failed: {e}")
            raise ExternalReadFailure(
                source="multicall",
                identifier=self.multicall_address,
                method="aggregate3",
                reason=str(e)
            ) from e

        if len(raw_results) != len(chunk):
            raise ExternalReadFailure(
                source="multicall",
                identifier=self.multicall_address,
                method="aggregate3",
                reason=f"expected {len(chunk)} results, got {len(raw_results)}"
            )

        results = []
        for call, (success, return_data) in zip(chunk, raw_results):
            if not success:
                raise self._failure(call, "call reverted")
            results.append(self._decode(call, return_data))
        return results

    def _fallback_execute(self, chunk: List[BatchCall]) -> List[Any]:
        """Fallback для сетей без Multicall3: по одному eth_call на вызов."""
        results = []
        for call in chunk:
            try:
                return_data = self.w3.eth.call({
                    'to': Web3.to_checksum_address(call.target),
                    'data': call.call_data
                })
            except Exception as e:
                raise self._failure(call, str(e)) from e
            results.append(self._decode(call, return_data))
        return results

    def execute(self) -> List[Any]:
        """
        Выполнение всех вызовов (по batch_size на один aggregate3).

        Returns:
            Декодированные результаты в порядке добавления

        Raises:
            ExternalReadFailure: первый неуспешный вызов
        """
        if not self.calls:
            return []

        results = []
        for start in range(0, len(self.calls), self.batch_size):
            chunk = self.calls[start:start + self.batch_size]
            logger.debug(f"aggregate3: calls {start}..{start + len(chunk) - 1} of {len(self.calls)}")
            results.extend(self._execute_chunk(chunk))
        return results

    def __len__(self) -> int:
        return len(self.calls)

    def __repr__(self) -> str:
        return f"ReadBatcher(calls={len(self.calls)}, batch_size={self.batch_size})"

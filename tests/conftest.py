"""
Shared fixtures for all tests.

FakeChain - in-memory нода: NonfungiblePositionManager, пулы, ERC20 и Multicall3.
Отвечает и на contract.functions.X().call(), и на сырой eth_call / aggregate3,
поэтому тесты работают без подключения к блокчейну.
"""

import pytest
from unittest.mock import Mock
from web3 import Web3
from eth_abi import encode, decode

from src.contracts.abis import POSITION_OUTPUT_TYPES
from src.contracts.pool_factory import UNISWAP_V3_POOL_INIT_CODE_HASH
from src.lens import PositionLens
from src.multicall.batcher import MULTICALL3_ADDRESS


# Тестовые адреса
TOKEN_A = "0x1111111111111111111111111111111111111111"
TOKEN_B = "0x9999999999999999999999999999999999999999"
TOKEN_C = "0x5555555555555555555555555555555555555555"
OWNER = "0x1234567890123456789012345678901234567890"
OTHER_OWNER = "0x2222222222222222222222222222222222222222"
OPERATOR_ZERO = "0x0000000000000000000000000000000000000000"

# Uniswap V3 на Ethereum
PM_ADDRESS = "0xC36442b4a4522E871399CD717aBDD847Ab11FE88"
FACTORY_ADDRESS = "0x1F98431c8aD98523631AE4a59f267346ea31F984"

# Реальные токены/пулы Ethereum
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC_WETH_500 = "0x88e6A0c2dDD26FEEb64F039a2c41296FcB3f5640"
USDC_WETH_3000 = "0x8ad599c3A0ff1De082011EFDDc58f1908eb6e6D8"

SQRT_PRICE_X96_ONE = 2 ** 96


def _selector(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature))[:4]


# selector -> (method, input types, output types)
_SELECTORS = {
    _selector("balanceOf(address)"): ("balanceOf", ['address'], ['uint256']),
    _selector("tokenOfOwnerByIndex(address,uint256)"): (
        "tokenOfOwnerByIndex", ['address', 'uint256'], ['uint256']
    ),
    _selector("positions(uint256)"): ("positions", ['uint256'], POSITION_OUTPUT_TYPES),
    _selector("slot0()"): (
        "slot0", [], ['uint160', 'int24', 'uint16', 'uint16', 'uint16', 'uint8', 'bool']
    ),
    _selector("name()"): ("name", [], ['string']),
    _selector("symbol()"): ("symbol", [], ['string']),
    _selector("decimals()"): ("decimals", [], ['uint8']),
}


class _FakeFunctions:
    """contract.functions.<method>(*args).call() -> FakeChain.dispatch."""

    def __init__(self, chain: 'FakeChain', address: str):
        self._chain = chain
        self._address = address

    def __getattr__(self, method):
        if method.startswith('_'):
            raise AttributeError(method)
        chain, address = self._chain, self._address

        def bind(*args):
            fn = Mock()
            fn.call = Mock(side_effect=lambda *a, **kw: chain.dispatch(address, method, args))
            return fn

        return bind


class _FakeContract:
    def __init__(self, chain: 'FakeChain', address: str):
        self.address = address
        self.functions = _FakeFunctions(chain, address)


class FakeChain:
    """In-memory состояние контрактов и журнал всех чтений."""

    def __init__(self, position_manager: str = PM_ADDRESS):
        self.position_manager = Web3.to_checksum_address(position_manager)
        self.multicall = Web3.to_checksum_address(MULTICALL3_ADDRESS)
        self.owned = {}       # owner -> [token_id, ...]
        self.positions = {}   # token_id -> 12-tuple positions()
        self.pools = {}       # pool -> (sqrt_price_x96, tick)
        self.tokens = {}      # token -> (name, symbol, decimals)
        self.failing = set()  # (address, method)
        self.reads = []       # (address, method, args)
        self.aggregate_calls = 0
        self.multicall_broken = False   # aggregate3 падает (RPC ошибка)
        self.multicall_deployed = True

        self.w3 = Mock()
        self.w3.eth.contract = Mock(
            side_effect=lambda address, abi: _FakeContract(self, Web3.to_checksum_address(address))
        )
        self.w3.eth.call = Mock(side_effect=self._eth_call)
        self.w3.eth.get_code = Mock(side_effect=self._get_code)

    # ── State setup ──────────────────────────────────────────────────

    def add_token(self, address: str, name: str, symbol: str, decimals: int = 18):
        self.tokens[Web3.to_checksum_address(address)] = (name, symbol, decimals)

    def add_pool(self, address: str, sqrt_price_x96: int, tick: int):
        self.pools[Web3.to_checksum_address(address)] = (sqrt_price_x96, tick)

    def add_position(
        self,
        owner: str,
        token_id: int,
        token0: str,
        token1: str,
        fee: int = 3000,
        tick_lower: int = -100,
        tick_upper: int = 100,
        liquidity: int = 500,
        fee_growth_inside0: int = 0,
        fee_growth_inside1: int = 0,
        tokens_owed0: int = 0,
        tokens_owed1: int = 0
    ):
        self.owned.setdefault(Web3.to_checksum_address(owner), []).append(token_id)
        self.positions[token_id] = (
            0, OPERATOR_ZERO,
            Web3.to_checksum_address(token0), Web3.to_checksum_address(token1),
            fee, tick_lower, tick_upper, liquidity,
            fee_growth_inside0, fee_growth_inside1, tokens_owed0, tokens_owed1
        )

    def fail(self, address: str, method: str):
        self.failing.add((Web3.to_checksum_address(address), method))

    def reads_of(self, method: str) -> list:
        return [r for r in self.reads if r[1] == method]

    # ── Dispatch ─────────────────────────────────────────────────────

    def dispatch(self, address: str, method: str, args: tuple):
        if address == self.multicall and method == 'aggregate3':
            return self._aggregate3(args[0])
        return self.read(address, method, args)

    def read(self, address: str, method: str, args: tuple):
        address = Web3.to_checksum_address(address)
        self.reads.append((address, method, tuple(args)))

        if (address, method) in self.failing:
            raise Exception(f"execution reverted: {method}")

        if address == self.position_manager:
            if method == 'balanceOf':
                return len(self.owned.get(Web3.to_checksum_address(args[0]), []))
            if method == 'tokenOfOwnerByIndex':
                ids = self.owned.get(Web3.to_checksum_address(args[0]), [])
                if args[1] >= len(ids):
                    raise Exception("ERC721Enumerable: owner index out of bounds")
                return ids[args[1]]
            if method == 'positions':
                if args[0] not in self.positions:
                    raise Exception("Invalid token ID")
                return self.positions[args[0]]

        if address in self.pools and method == 'slot0':
            sqrt_price_x96, tick = self.pools[address]
            return (sqrt_price_x96, tick, 0, 1, 1, 0, True)

        if address in self.tokens and method in ('name', 'symbol', 'decimals'):
            name, symbol, decimals = self.tokens[address]
            return {'name': name, 'symbol': symbol, 'decimals': decimals}[method]

        raise Exception(f"Could not transact with/call contract function {method} at {address}")

    def _raw(self, target: str, data: bytes) -> bytes:
        data = bytes(data)
        method, input_types, output_types = _SELECTORS[data[:4]]
        args = decode(input_types, data[4:]) if input_types else ()
        result = self.read(target, method, args)
        values = list(result) if isinstance(result, tuple) else [result]
        return encode(output_types, values)

    def _eth_call(self, tx: dict) -> bytes:
        target = Web3.to_checksum_address(tx['to'])
        if target not in self.pools and target not in self.tokens and target != self.position_manager:
            # Нет кода по адресу: нода возвращает пустой ответ
            self.reads.append((target, 'eth_call', ()))
            return b''
        return self._raw(target, tx['data'])

    def _get_code(self, address: str) -> bytes:
        address = Web3.to_checksum_address(address)
        if address == self.multicall:
            return b'\x60\x80' if self.multicall_deployed else b''
        known = address in self.pools or address in self.tokens or address == self.position_manager
        return b'\x60\x80' if known else b''

    def _aggregate3(self, calls: list) -> list:
        self.aggregate_calls += 1
        if self.multicall_broken:
            raise Exception("503 Service Unavailable")

        results = []
        for target, allow_failure, call_data in calls:
            try:
                results.append((True, self._raw(target, call_data)))
            except Exception:
                if not allow_failure:
                    raise
                results.append((False, b''))
        return results


@pytest.fixture
def chain():
    """Пустая FakeChain с Uniswap V3 position manager."""
    return FakeChain(PM_ADDRESS)


@pytest.fixture
def lens(chain):
    """PositionLens поверх FakeChain."""
    return PositionLens(
        chain.w3,
        position_manager_address=PM_ADDRESS,
        pool_deployer_address=FACTORY_ADDRESS,
        init_code_hash=UNISWAP_V3_POOL_INIT_CODE_HASH,
    )

"""
Contract ABIs

Только view-функции: агрегатор ничего не пишет в сеть.
"""

# NonfungiblePositionManager: ERC721Enumerable + positions()
POSITION_MANAGER_ABI = [
    {
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "index", "type": "uint256"}
        ],
        "name": "tokenOfOwnerByIndex",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "name": "positions",
        "outputs": [
            {"name": "nonce", "type": "uint96"},
            {"name": "operator", "type": "address"},
            {"name": "token0", "type": "address"},
            {"name": "token1", "type": "address"},
            {"name": "fee", "type": "uint24"},
            {"name": "tickLower", "type": "int24"},
            {"name": "tickUpper", "type": "int24"},
            {"name": "liquidity", "type": "uint128"},
            {"name": "feeGrowthInside0LastX128", "type": "uint256"},
            {"name": "feeGrowthInside1LastX128", "type": "uint256"},
            {"name": "tokensOwed0", "type": "uint128"},
            {"name": "tokensOwed1", "type": "uint128"}
        ],
        "stateMutability": "view",
        "type": "function"
    }
]

# Типы полей positions() в порядке ABI (для eth_abi.decode)
POSITION_OUTPUT_TYPES = [
    'uint96', 'address', 'address', 'address', 'uint24', 'int24', 'int24',
    'uint128', 'uint256', 'uint256', 'uint128', 'uint128'
]

# ERC20 metadata
ERC20_METADATA_ABI = [
    {
        "inputs": [],
        "name": "name",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function"
    }
]

# Multicall3 ABI (только aggregate3)
MULTICALL3_ABI = [
    {
        "inputs": [
            {
                "components": [
                    {"name": "target", "type": "address"},
                    {"name": "allowFailure", "type": "bool"},
                    {"name": "callData", "type": "bytes"}
                ],
                "name": "calls",
                "type": "tuple[]"
            }
        ],
        "name": "aggregate3",
        "outputs": [
            {
                "components": [
                    {"name": "success", "type": "bool"},
                    {"name": "returnData", "type": "bytes"}
                ],
                "name": "returnData",
                "type": "tuple[]"
            }
        ],
        "stateMutability": "payable",
        "type": "function"
    }
]

# Function selectors for raw calls
SELECTOR_BALANCE_OF = bytes.fromhex('70a08231')               # balanceOf(address)
SELECTOR_TOKEN_OF_OWNER_BY_INDEX = bytes.fromhex('2f745c59')  # tokenOfOwnerByIndex(address,uint256)
SELECTOR_POSITIONS = bytes.fromhex('99fbab88')                # positions(uint256)
SELECTOR_SLOT0 = bytes.fromhex('3850c7bd')                    # slot0()
SELECTOR_NAME = bytes.fromhex('06fdde03')                     # name()
SELECTOR_SYMBOL = bytes.fromhex('95d89b41')                   # symbol()
SELECTOR_DECIMALS = bytes.fromhex('313ce567')                 # decimals()

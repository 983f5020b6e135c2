"""
V3 Contracts Module

Read-only обёртки: NonfungiblePositionManager, пулы, ERC20.
"""

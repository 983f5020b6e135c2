"""Батчинг view-вызовов через Multicall3."""

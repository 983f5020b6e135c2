"""
Lens Exceptions

Ошибки чтения внешних контрактов (position manager, пулы, токены).
"""

from dataclasses import dataclass
from typing import Any


class LensError(Exception):
    """Базовое исключение для ошибок агрегатора позиций."""
    pass


@dataclass(eq=False)
class ExternalReadFailure(LensError):
    """
    Провал чтения внешнего контракта.

    Attributes:
        source: Кто не ответил: position_manager, pool, token, multicall
        identifier: Адрес контракта или token_id позиции
        method: Вызванная функция (balanceOf, slot0, decimals, ...)
        reason: Текст исходной ошибки
    """
    source: str
    identifier: Any
    method: str
    reason: str = ""

    def __post_init__(self):
        super().__init__(str(self))

    def __str__(self):
        msg = f"{self.source} read failed: {self.method}() on {self.identifier}"
        if self.reason:
            msg += f": {self.reason}"
        return msg

    def __reduce__(self):
        # Exception.__reduce__ передал бы только args (текст сообщения)
        return (self.__class__, (self.source, self.identifier, self.method, self.reason))


@dataclass(eq=False)
class TokenMetadataError(ExternalReadFailure):
    """Не удалось прочитать name/symbol/decimals токена."""
    source: str = "token"
    identifier: Any = None
    method: str = ""
    reason: str = ""

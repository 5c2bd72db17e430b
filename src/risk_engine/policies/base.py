"""
Policy base: результат проверки политики Risk Engine.

Политика не бросает исключения для бизнес-отказов: она возвращает
PolicyResult с block_reason. Market превращает отказ в ProtocolError через
raise_if_blocked().
"""

from dataclasses import dataclass
from typing import Optional

from src.core.errors import ErrorCode, ProtocolError


@dataclass(frozen=True)
class PolicyResult:
    """Результат политики (hook)."""

    allowed: bool
    block_reason: Optional[ErrorCode]
    details: str = ""

    def __post_init__(self) -> None:
        if self.allowed and self.block_reason is not None:
            raise ValueError("allowed result cannot carry a block_reason")
        if not self.allowed and self.block_reason is None:
            raise ValueError("blocked result requires a block_reason")

    @classmethod
    def allow(cls, details: str = "") -> "PolicyResult":
        return cls(allowed=True, block_reason=None, details=details)

    @classmethod
    def block(cls, reason: ErrorCode, details: str = "") -> "PolicyResult":
        return cls(allowed=False, block_reason=reason, details=details)

    def raise_if_blocked(self) -> "PolicyResult":
        if not self.allowed:
            raise ProtocolError(self.block_reason, self.details)
        return self

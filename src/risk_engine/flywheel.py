"""
Reward Flywheel: начисление наград поставщикам и заёмщикам

Для каждого рынка две независимые стороны (SUPPLY / BORROW), у каждой
кумулятивный индекс (Double, 1e36) и checkpoint-блок.

Обновление стороны:
    Δblocks > 0 и speed > 0:
        index += fraction(Δblocks × speed, weight)
        (weight: total_shares для supply, total_borrows / borrow_index для borrow)
    checkpoint = текущий блок (всегда при Δblocks > 0)

Распределение аккаунту:
    last_seen == 0 (sentinel) → last_seen = initial_index
    delta = account_weight × (index − last_seen) / 1e36
    accrued[account] += delta; last_seen = index

Модуль хранит только данные; эмиссия audit-записей и чтение рынков
остаются на стороне RiskEngine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, NamedTuple

from src.core.errors import InvariantViolation
from src.core.math.fixed_point import fraction, mul_double_scalar


class RewardSide(str, Enum):
    SUPPLY = "supply"
    BORROW = "borrow"


@dataclass
class RewardMarketState:
    """Индекс стороны рынка и блок последнего обновления."""

    index: int
    block: int


class Distribution(NamedTuple):
    """Результат распределения одному аккаунту."""

    delta: int
    index: int


class RewardFlywheel:
    """Состояние flywheel: индексы рынков, индексы аккаунтов, accrued."""

    def __init__(self, initial_index: int) -> None:
        self.initial_index = initial_index
        self.states: Dict[RewardSide, Dict[str, RewardMarketState]] = {
            RewardSide.SUPPLY: {},
            RewardSide.BORROW: {},
        }
        self.speeds: Dict[RewardSide, Dict[str, int]] = {
            RewardSide.SUPPLY: {},
            RewardSide.BORROW: {},
        }
        self.account_index: Dict[RewardSide, Dict[str, Dict[str, int]]] = {
            RewardSide.SUPPLY: {},
            RewardSide.BORROW: {},
        }
        self.reward_accrued: Dict[str, int] = {}
        self.contributor_speeds: Dict[str, int] = {}
        self.last_contributor_block: Dict[str, int] = {}

    # ==================== Market state ====================

    def initialize_market(self, market: str, height: int) -> None:
        """Инициализация обеих сторон при листинге (index = initial)."""
        for side in RewardSide:
            state = self.states[side].get(market)
            if state is None:
                self.states[side][market] = RewardMarketState(self.initial_index, height)
            else:
                if state.index == 0:
                    state.index = self.initial_index
                state.block = height

    def state(self, side: RewardSide, market: str) -> RewardMarketState:
        try:
            return self.states[side][market]
        except KeyError:
            raise InvariantViolation(f"flywheel state missing for {market} ({side.value})") from None

    def speed(self, side: RewardSide, market: str) -> int:
        return self.speeds[side].get(market, 0)

    def set_speed(self, side: RewardSide, market: str, speed: int) -> None:
        self.speeds[side][market] = speed

    def update_index(self, side: RewardSide, market: str, weight: int, height: int) -> int:
        """
        Обновление индекса стороны.

        Args:
            weight: Текущий суммарный вес стороны

        Returns:
            Новый индекс
        """
        state = self.state(side, market)
        delta_blocks = height - state.block
        if delta_blocks < 0:
            raise InvariantViolation(f"flywheel checkpoint {state.block} ahead of height {height}")
        if delta_blocks == 0:
            return state.index

        speed = self.speed(side, market)
        if speed > 0:
            accrued = delta_blocks * speed
            ratio = fraction(accrued, weight) if weight > 0 else 0
            state.index += ratio
        state.block = height
        return state.index

    # ==================== Accounts ====================

    def distribute(
        self, side: RewardSide, market: str, account: str, account_weight: int
    ) -> Distribution:
        """Начисление награды аккаунту по текущему индексу стороны."""
        market_index = self.state(side, market).index
        indices = self.account_index[side].setdefault(market, {})
        last_seen = indices.get(account, 0)
        indices[account] = market_index

        if last_seen == 0 and market_index >= self.initial_index:
            last_seen = self.initial_index

        delta_index = market_index - last_seen
        if delta_index < 0:
            raise InvariantViolation(
                f"account index {last_seen} ahead of market index {market_index}"
            )
        delta = mul_double_scalar(delta_index, account_weight)
        self.reward_accrued[account] = self.reward_accrued.get(account, 0) + delta
        return Distribution(delta=delta, index=market_index)

    def last_seen_index(self, side: RewardSide, market: str, account: str) -> int:
        return self.account_index[side].get(market, {}).get(account, 0)

    def accrued(self, account: str) -> int:
        return self.reward_accrued.get(account, 0)

    def set_accrued(self, account: str, amount: int) -> None:
        self.reward_accrued[account] = amount

    # ==================== Contributors ====================

    def update_contributor(self, contributor: str, height: int) -> int:
        """Начисление contributor-у speed × Δblocks. Возвращает начисленное."""
        speed = self.contributor_speeds.get(contributor, 0)
        delta_blocks = height - self.last_contributor_block.get(contributor, 0)
        if delta_blocks > 0 and speed > 0:
            accrued = speed * delta_blocks
            self.reward_accrued[contributor] = self.accrued(contributor) + accrued
            self.last_contributor_block[contributor] = height
            return accrued
        return 0

    def set_contributor_speed(self, contributor: str, speed: int, height: int) -> None:
        self.update_contributor(contributor, height)
        if speed == 0:
            self.last_contributor_block.pop(contributor, None)
            self.contributor_speeds.pop(contributor, None)
            return
        self.last_contributor_block[contributor] = height
        self.contributor_speeds[contributor] = speed

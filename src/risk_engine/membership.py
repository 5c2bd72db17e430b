"""
Membership: членство аккаунтов в рынках

Избыточный индекс: флаг (set) для O(1) проверки + упорядоченный список для
перечисления при расчёте ликвидности. Инвариант: рынок есть в списке
аккаунта ⇔ флаг установлен. Удаление - find-and-swap-remove.

Рассинхронизация флага и списка - InvariantViolation.
"""

from typing import Dict, List, Set, Tuple

from src.core.errors import InvariantViolation


class MembershipIndex:
    """Членство: account → рынки (адреса)."""

    def __init__(self) -> None:
        self._flags: Dict[str, Set[str]] = {}
        self._assets: Dict[str, List[str]] = {}

    def is_member(self, account: str, market: str) -> bool:
        return market in self._flags.get(account, ())

    def assets_in(self, account: str) -> Tuple[str, ...]:
        return tuple(self._assets.get(account, ()))

    def add(self, account: str, market: str) -> bool:
        """
        Добавить членство. Возвращает False, если аккаунт уже участник.
        """
        if self.is_member(account, market):
            return False
        assets = self._assets.setdefault(account, [])
        if market in assets:
            raise InvariantViolation(f"{market} listed for {account} without membership flag")
        self._flags.setdefault(account, set()).add(market)
        assets.append(market)
        return True

    def remove(self, account: str, market: str) -> bool:
        """
        Удалить членство (swap-remove). Возвращает False, если аккаунт не участник.
        """
        if not self.is_member(account, market):
            return False

        assets = self._assets.get(account, [])
        try:
            position = assets.index(market)
        except ValueError:
            raise InvariantViolation(
                f"membership flag set for {account} in {market} but market not in asset list"
            ) from None

        last = len(assets) - 1
        assets[position] = assets[last]
        assets.pop()

        self._flags[account].discard(market)
        if not assets:
            del self._assets[account]
            del self._flags[account]
        return True

"""
ERC-20 токены на ledger

- Erc20Token: underlying-активы рынков (balances, allowances, Transfer/Approval)
- RewardToken: токен наград flywheel с однократным initial_mint

Все state-changing методы принимают явный sender (msg.sender) и атомарны.
Опциональная комиссия за перевод (transfer_fee_bps) моделирует
fee-on-transfer токены: получатель получает меньше отправленного, рынок
обязан измерять фактическое поступление по дельте баланса.
"""

from __future__ import annotations

import logging
from typing import Dict, Final

from src.core.errors import ErrorCode, ProtocolError
from src.core.math.fixed_point import validate_uint
from src.ledger.host import Ledger, LedgerParticipant, atomic

logger = logging.getLogger(__name__)

BPS_DENOMINATOR: Final[int] = 10_000


class Erc20Token(LedgerParticipant):
    """
    ERC-20 токен.

    Args:
        ledger: Хост
        address: Адрес токена
        name, symbol, decimals: Метаданные
        owner: Единственный аккаунт, которому разрешён mint
        transfer_fee_bps: Комиссия (сжигается) с каждого перевода, в bps
    """

    _STATE_FIELDS = ("total_supply", "_balances", "_allowances")

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        owner: str = "",
        transfer_fee_bps: int = 0,
    ) -> None:
        if not 0 <= transfer_fee_bps < BPS_DENOMINATOR:
            raise ValueError(f"transfer_fee_bps must be in [0, {BPS_DENOMINATOR}), got {transfer_fee_bps}")
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.owner = owner
        self.transfer_fee_bps = transfer_fee_bps
        self.total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[str, Dict[str, int]] = {}
        super().__init__(ledger, address)

    # ==================== Views ====================

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get(owner, {}).get(spender, 0)

    # ==================== State-changing ====================

    @atomic
    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        self._transfer(sender, recipient, amount)
        return True

    @atomic
    def approve(self, sender: str, spender: str, amount: int) -> bool:
        if not spender:
            raise ProtocolError(ErrorCode.ZERO_ADDRESS, "spender")
        validate_uint(amount, "amount")
        self._allowances.setdefault(sender, {})[spender] = amount
        self.emit("Approval", owner=sender, spender=spender, amount=amount)
        return True

    @atomic
    def transfer_from(self, sender: str, src: str, dst: str, amount: int) -> bool:
        current = self.allowance(src, sender)
        if current < amount:
            raise ProtocolError(
                ErrorCode.INSUFFICIENT_ALLOWANCE,
                f"{sender} allowance {current} < {amount} for {src}",
            )
        self._allowances.setdefault(src, {})[sender] = current - amount
        self._transfer(src, dst, amount)
        return True

    @atomic
    def mint(self, sender: str, to: str, amount: int) -> None:
        """Выпуск токенов (только owner)."""
        self._require_owner(sender)
        self._mint(to, amount)

    @atomic
    def burn(self, sender: str, amount: int) -> None:
        self._burn(sender, amount)

    # ==================== Internal ====================

    def _require_owner(self, sender: str) -> None:
        if sender != self.owner:
            raise ProtocolError(ErrorCode.OWNABLE_UNAUTHORIZED_ACCOUNT, sender)

    def _transfer(self, src: str, dst: str, amount: int) -> None:
        if not dst:
            raise ProtocolError(ErrorCode.ZERO_ADDRESS, "recipient")
        validate_uint(amount, "amount")
        balance = self.balance_of(src)
        if balance < amount:
            raise ProtocolError(
                ErrorCode.INSUFFICIENT_BALANCE, f"{src} balance {balance} < {amount}"
            )

        fee = amount * self.transfer_fee_bps // BPS_DENOMINATOR
        received = amount - fee

        self._balances[src] = balance - amount
        self._balances[dst] = self.balance_of(dst) + received
        self.total_supply -= fee
        self.emit("Transfer", src=src, dst=dst, amount=received)
        if fee:
            self.emit("Transfer", src=src, dst="", amount=fee)

    def _mint(self, to: str, amount: int) -> None:
        if not to:
            raise ProtocolError(ErrorCode.ZERO_ADDRESS, "recipient")
        validate_uint(amount, "amount")
        self._balances[to] = self.balance_of(to) + amount
        self.total_supply += amount
        self.emit("Transfer", src="", dst=to, amount=amount)

    def _burn(self, account: str, amount: int) -> None:
        validate_uint(amount, "amount")
        balance = self.balance_of(account)
        if balance < amount:
            raise ProtocolError(
                ErrorCode.INSUFFICIENT_BALANCE, f"{account} balance {balance} < {amount}"
            )
        self._balances[account] = balance - amount
        self.total_supply -= amount
        self.emit("Transfer", src=account, dst="", amount=amount)


class RewardToken(Erc20Token):
    """
    Токен наград.

    Owner выполняет initial_mint ровно один раз. Дальнейший выпуск доступен
    только назначенному minter (например, мосту между сетями).
    """

    _STATE_FIELDS = Erc20Token._STATE_FIELDS + ("initial_minted", "minter")

    def __init__(
        self,
        ledger: Ledger,
        address: str,
        name: str = "Reward Token",
        symbol: str = "RWD",
        decimals: int = 18,
        owner: str = "",
    ) -> None:
        self.initial_minted = False
        self.minter = ""
        super().__init__(ledger, address, name, symbol, decimals, owner)

    @atomic
    def initial_mint(self, sender: str, to: str, amount: int) -> None:
        self._require_owner(sender)
        if self.initial_minted:
            raise ProtocolError(ErrorCode.ALREADY_INITIAL_MINTED, self.address)
        self.initial_minted = True
        self._mint(to, amount)
        logger.info(f"Reward token {self.symbol}: initial mint of {amount} to {to}")

    @atomic
    def set_minter(self, sender: str, minter: str) -> None:
        self._require_owner(sender)
        old_minter = self.minter
        self.minter = minter
        self.emit("NewMinter", old_minter=old_minter, new_minter=minter)

    @atomic
    def mint(self, sender: str, to: str, amount: int) -> None:
        if not self.minter or sender != self.minter:
            raise ProtocolError(ErrorCode.ONLY_MINTER, sender)
        self._mint(to, amount)
        self.emit("Minted", minter=sender, to=to, amount=amount)

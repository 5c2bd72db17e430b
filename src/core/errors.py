"""
Errors: Таксономия ошибок протокола

Все отказы делятся на две группы:
- ProtocolError: ошибка вызывающей стороны (caller error). Прерывает всю
  текущую операцию атомарно, состояние ledger откатывается целиком.
- InvariantViolation: внутреннее противоречие реализации (defensive/fatal).
  Не обрабатывается и не подавляется, операция прерывается.

Каждый ErrorCode принадлежит ровно одной ErrorCategory.
"""

from enum import Enum


# =============================================================================
# КАТЕГОРИИ
# =============================================================================


class ErrorCategory(str, Enum):
    """Категория ошибки."""

    AUTHORIZATION = "AUTHORIZATION"  # caller не admin/guardian/trusted
    LISTING = "LISTING"  # market not listed / already listed
    FRESHNESS = "FRESHNESS"  # interest не начислен в текущем блоке
    BOUNDS = "BOUNDS"  # параметр вне допустимого диапазона
    LIQUIDITY = "LIQUIDITY"  # недостаточная ликвидность / shortfall
    RESOURCE = "RESOURCE"  # недостаточно cash / reserves / баланса
    CONSISTENCY = "CONSISTENCY"  # рассогласование между markets
    PAUSE = "PAUSE"  # действие приостановлено guardian-ом
    ORACLE = "ORACLE"  # цена недоступна
    INPUT = "INPUT"  # вырожденные входные данные


# =============================================================================
# КОДЫ ОШИБОК
# =============================================================================


class ErrorCode(str, Enum):
    """Код ошибки (значение совпадает с именем в audit log)."""

    # Authorization
    NOT_ADMIN = "NotAdmin"
    NOT_PENDING_ADMIN = "NotPendingAdmin"
    NOT_ADMIN_OR_PAUSE_GUARDIAN = "NotAdminOrPauseGuardian"
    NOT_ADMIN_OR_BORROW_CAP_GUARDIAN = "NotAdminOrBorrowCapGuardian"
    OWNABLE_UNAUTHORIZED_ACCOUNT = "OwnableUnauthorizedAccount"
    SENDER_MUST_BE_TRUSTED_CALLER = "SenderMustBeTrustedCaller"
    SENDER_MUST_BE_MARKET = "SenderMustBeMarket"
    SEIZE_OUTSIDE_LIQUIDATION = "SeizeOutsideLiquidation"
    REDUCE_RESERVES_ADMIN_CHECK = "ReduceReservesAdminCheck"
    ONLY_MINTER = "OnlyMinter"

    # Listing
    MARKET_NOT_LISTED = "MarketNotListed"
    ALREADY_LISTED = "AlreadyListed"

    # Freshness
    MINT_FRESHNESS_CHECK = "MintFreshnessCheck"
    REDEEM_FRESHNESS_CHECK = "RedeemFreshnessCheck"
    BORROW_FRESHNESS_CHECK = "BorrowFreshnessCheck"
    REPAY_BORROW_FRESHNESS_CHECK = "RepayBorrowFreshnessCheck"
    LIQUIDATE_FRESHNESS_CHECK = "LiquidateFreshnessCheck"
    LIQUIDATE_COLLATERAL_FRESHNESS_CHECK = "LiquidateCollateralFreshnessCheck"
    SET_RESERVE_FACTOR_FRESH_CHECK = "SetReserveFactorFreshCheck"
    SET_INTEREST_RATE_MODEL_FRESH_CHECK = "SetInterestRateModelFreshCheck"
    SET_COMPTROLLER_FRESH_CHECK = "SetComptrollerFreshCheck"
    ADD_RESERVES_FRESH_CHECK = "AddReservesFactorFreshCheck"
    REDUCE_RESERVES_FRESH_CHECK = "ReduceReservesFreshCheck"

    # Bounds
    RATE_TOO_HIGH = "RateTooHigh"
    SET_RESERVE_FACTOR_BOUNDS_CHECK = "SetReserveFactorBoundsCheck"
    INVALID_CLOSE_FACTOR = "InvalidCloseFactor"
    INVALID_COLLATERAL_FACTOR = "InvalidCollateralFactor"

    # Liquidity
    INSUFFICIENT_LIQUIDITY = "InsufficientLiquidity"
    INSUFFICIENT_SHORTFALL = "InsufficientShortfall"
    TOO_MUCH_REPAY = "TooMuchRepay"
    NONZERO_BORROW_BALANCE = "NonzeroBorrowBalance"
    BORROW_CAP_REACHED = "BorrowCapReached"
    LIQUIDATE_SEIZE_TOO_MUCH = "LiquidateSeizeTooMuch"

    # Resource
    REDEEM_TRANSFER_OUT_NOT_POSSIBLE = "RedeemTransferOutNotPossible"
    REDEEM_TOO_MUCH = "RedeemTooMuch"
    BORROW_CASH_NOT_AVAILABLE = "BorrowCashNotAvailable"
    REDUCE_RESERVES_CASH_NOT_AVAILABLE = "ReduceReservesCashNotAvailable"
    REDUCE_RESERVES_CASH_VALIDATION = "ReduceReservesCashValidation"
    INSUFFICIENT_REWARD_FOR_GRANT = "InsufficientRewardForGrant"
    TRANSFER_NOT_ENOUGH = "TransferNotEnough"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INSUFFICIENT_ALLOWANCE = "InsufficientAllowance"

    # Consistency
    COMPTROLLER_MISMATCH = "ComptrollerMismatch"
    REENTERED = "Reentered"

    # Pause
    MINT_PAUSED = "MintPaused"
    BORROW_PAUSED = "BorrowPaused"
    TRANSFER_PAUSED = "TransferPaused"
    SEIZE_PAUSED = "SeizePaused"

    # Oracle
    PRICE_ERROR = "PriceError"
    ZERO_PRICE = "ZeroPrice"
    NO_PRICE_FOR_COLLATERAL = "NoPriceForCollateral"
    LIQUIDATE_CALCULATE_AMOUNT_SEIZE_FAILED = "LiquidateCalculateAmountSeizeFailed"

    # Input
    ZERO_ADDRESS = "ZeroAddress"
    ZERO_REDEEM_SHARES = "ZeroRedeemShares"
    INVALID_INPUT = "InvalidInput"
    INVALID_AMOUNT = "InvalidAmount"
    TRANSFER_NOT_ALLOWED = "TransferNotAllowed"
    LIQUIDATE_LIQUIDATOR_IS_BORROWER = "LiquidateLiquidatorIsBorrower"
    LIQUIDATE_CLOSE_AMOUNT_IS_ZERO = "LiquidateCloseAmountIsZero"
    LIQUIDATE_CLOSE_AMOUNT_IS_UINT_MAX = "LiquidateCloseAmountIsUintMax"
    LIQUIDATE_SEIZE_LIQUIDATOR_IS_BORROWER = "LiquidateSeizeLiquidatorIsBorrower"
    CAN_NOT_SWEEP_UNDERLYING_TOKEN = "CanNotSweepUnderlyingToken"
    ALREADY_INITIAL_MINTED = "AlreadyInitialMinted"
    INVALID_PRICE_ORACLE = "InvalidPriceOracle"
    INVALID_RISK_ENGINE = "InvalidRiskEngine"
    INVALID_RATE_MODEL = "InvalidRateModel"

    @property
    def category(self) -> ErrorCategory:
        """Категория, к которой относится код."""
        return _CATEGORY_BY_CODE[self]


_CATEGORY_BY_CODE: dict[ErrorCode, ErrorCategory] = {
    ErrorCode.NOT_ADMIN: ErrorCategory.AUTHORIZATION,
    ErrorCode.NOT_PENDING_ADMIN: ErrorCategory.AUTHORIZATION,
    ErrorCode.NOT_ADMIN_OR_PAUSE_GUARDIAN: ErrorCategory.AUTHORIZATION,
    ErrorCode.NOT_ADMIN_OR_BORROW_CAP_GUARDIAN: ErrorCategory.AUTHORIZATION,
    ErrorCode.OWNABLE_UNAUTHORIZED_ACCOUNT: ErrorCategory.AUTHORIZATION,
    ErrorCode.SENDER_MUST_BE_TRUSTED_CALLER: ErrorCategory.AUTHORIZATION,
    ErrorCode.SENDER_MUST_BE_MARKET: ErrorCategory.AUTHORIZATION,
    ErrorCode.SEIZE_OUTSIDE_LIQUIDATION: ErrorCategory.AUTHORIZATION,
    ErrorCode.REDUCE_RESERVES_ADMIN_CHECK: ErrorCategory.AUTHORIZATION,
    ErrorCode.ONLY_MINTER: ErrorCategory.AUTHORIZATION,
    ErrorCode.MARKET_NOT_LISTED: ErrorCategory.LISTING,
    ErrorCode.ALREADY_LISTED: ErrorCategory.LISTING,
    ErrorCode.MINT_FRESHNESS_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.REDEEM_FRESHNESS_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.BORROW_FRESHNESS_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.REPAY_BORROW_FRESHNESS_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.LIQUIDATE_FRESHNESS_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.LIQUIDATE_COLLATERAL_FRESHNESS_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.SET_RESERVE_FACTOR_FRESH_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.SET_INTEREST_RATE_MODEL_FRESH_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.SET_COMPTROLLER_FRESH_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.ADD_RESERVES_FRESH_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.REDUCE_RESERVES_FRESH_CHECK: ErrorCategory.FRESHNESS,
    ErrorCode.RATE_TOO_HIGH: ErrorCategory.BOUNDS,
    ErrorCode.SET_RESERVE_FACTOR_BOUNDS_CHECK: ErrorCategory.BOUNDS,
    ErrorCode.INVALID_CLOSE_FACTOR: ErrorCategory.BOUNDS,
    ErrorCode.INVALID_COLLATERAL_FACTOR: ErrorCategory.BOUNDS,
    ErrorCode.INSUFFICIENT_LIQUIDITY: ErrorCategory.LIQUIDITY,
    ErrorCode.INSUFFICIENT_SHORTFALL: ErrorCategory.LIQUIDITY,
    ErrorCode.TOO_MUCH_REPAY: ErrorCategory.LIQUIDITY,
    ErrorCode.NONZERO_BORROW_BALANCE: ErrorCategory.LIQUIDITY,
    ErrorCode.BORROW_CAP_REACHED: ErrorCategory.LIQUIDITY,
    ErrorCode.LIQUIDATE_SEIZE_TOO_MUCH: ErrorCategory.LIQUIDITY,
    ErrorCode.REDEEM_TRANSFER_OUT_NOT_POSSIBLE: ErrorCategory.RESOURCE,
    ErrorCode.REDEEM_TOO_MUCH: ErrorCategory.RESOURCE,
    ErrorCode.BORROW_CASH_NOT_AVAILABLE: ErrorCategory.RESOURCE,
    ErrorCode.REDUCE_RESERVES_CASH_NOT_AVAILABLE: ErrorCategory.RESOURCE,
    ErrorCode.REDUCE_RESERVES_CASH_VALIDATION: ErrorCategory.RESOURCE,
    ErrorCode.INSUFFICIENT_REWARD_FOR_GRANT: ErrorCategory.RESOURCE,
    ErrorCode.TRANSFER_NOT_ENOUGH: ErrorCategory.RESOURCE,
    ErrorCode.INSUFFICIENT_BALANCE: ErrorCategory.RESOURCE,
    ErrorCode.INSUFFICIENT_ALLOWANCE: ErrorCategory.RESOURCE,
    ErrorCode.COMPTROLLER_MISMATCH: ErrorCategory.CONSISTENCY,
    ErrorCode.REENTERED: ErrorCategory.CONSISTENCY,
    ErrorCode.MINT_PAUSED: ErrorCategory.PAUSE,
    ErrorCode.BORROW_PAUSED: ErrorCategory.PAUSE,
    ErrorCode.TRANSFER_PAUSED: ErrorCategory.PAUSE,
    ErrorCode.SEIZE_PAUSED: ErrorCategory.PAUSE,
    ErrorCode.PRICE_ERROR: ErrorCategory.ORACLE,
    ErrorCode.ZERO_PRICE: ErrorCategory.ORACLE,
    ErrorCode.NO_PRICE_FOR_COLLATERAL: ErrorCategory.ORACLE,
    ErrorCode.LIQUIDATE_CALCULATE_AMOUNT_SEIZE_FAILED: ErrorCategory.ORACLE,
    ErrorCode.ZERO_ADDRESS: ErrorCategory.INPUT,
    ErrorCode.ZERO_REDEEM_SHARES: ErrorCategory.INPUT,
    ErrorCode.INVALID_INPUT: ErrorCategory.INPUT,
    ErrorCode.INVALID_AMOUNT: ErrorCategory.INPUT,
    ErrorCode.TRANSFER_NOT_ALLOWED: ErrorCategory.INPUT,
    ErrorCode.LIQUIDATE_LIQUIDATOR_IS_BORROWER: ErrorCategory.INPUT,
    ErrorCode.LIQUIDATE_CLOSE_AMOUNT_IS_ZERO: ErrorCategory.INPUT,
    ErrorCode.LIQUIDATE_CLOSE_AMOUNT_IS_UINT_MAX: ErrorCategory.INPUT,
    ErrorCode.LIQUIDATE_SEIZE_LIQUIDATOR_IS_BORROWER: ErrorCategory.INPUT,
    ErrorCode.CAN_NOT_SWEEP_UNDERLYING_TOKEN: ErrorCategory.INPUT,
    ErrorCode.ALREADY_INITIAL_MINTED: ErrorCategory.INPUT,
    ErrorCode.INVALID_PRICE_ORACLE: ErrorCategory.INPUT,
    ErrorCode.INVALID_RISK_ENGINE: ErrorCategory.INPUT,
    ErrorCode.INVALID_RATE_MODEL: ErrorCategory.INPUT,
}


# =============================================================================
# EXCEPTIONS
# =============================================================================


class ProtocolError(Exception):
    """
    Ошибка вызывающей стороны.

    Операция прерывается целиком, частичных эффектов нет. Вызывающий
    анализирует code и решает, повторять ли с другими параметрами.
    """

    def __init__(self, code: ErrorCode, details: str = "") -> None:
        self.code = code
        self.details = details
        message = code.value if not details else f"{code.value}: {details}"
        super().__init__(message)

    @property
    def category(self) -> ErrorCategory:
        return self.code.category


class InvariantViolation(Exception):
    """
    Критическое нарушение внутреннего инварианта (unreachable state).

    Означает, что реализация сама себе противоречит: рассинхронизация
    membership flag/list, отрицательные totals и т.п. Никогда не
    обрабатывается молча.
    """

"""Общие fixtures: ledger с двумя рынками, оракулом, моделью ставки и Risk Engine."""

from dataclasses import dataclass

import pytest

from src.core.math.fixed_point import EXP_SCALE, to_mantissa
from src.ledger import Erc20Token, Ledger, RewardToken
from src.market import Market, MarketConfig
from src.oracle import DirectPriceOracle
from src.rate_model import JumpRateModel
from src.risk_engine import RiskEngine

ADMIN = "admin"
ALICE = "alice"
BOB = "bob"
CAROL = "carol"
LEVERAGE = "leverage"

START_HEIGHT = 100
INITIAL_BALANCE = 1_000_000


@dataclass
class Deployment:
    """Развёрнутый протокол для тестов."""

    ledger: Ledger
    token_a: Erc20Token
    token_b: Erc20Token
    oracle: DirectPriceOracle
    rate_model: JumpRateModel
    engine: RiskEngine
    market_a: Market
    market_b: Market

    def fund(self, account: str, market: Market, amount: int = INITIAL_BALANCE) -> None:
        """Выдать underlying рынка аккаунту и разрешить рынку списание."""
        market.underlying.mint(ADMIN, account, amount)
        market.underlying.approve(account, market.address, 10**30)

    def set_price(self, market: Market, price_mantissa: int) -> None:
        self.oracle.set_direct_price(ADMIN, market.underlying.address, price_mantissa)

    def supply_collateral(
        self, account: str, market: Market, amount: int, collateral_factor: str = "0.8"
    ) -> None:
        """mint + collateral factor + вход в рынок."""
        self.fund(account, market, amount)
        market.mint(account, amount)
        self.engine.set_collateral_factor(ADMIN, market, to_mantissa(collateral_factor))
        self.engine.enter_markets(account, [market])


def deploy(height: int = START_HEIGHT) -> Deployment:
    ledger = Ledger(height=height)
    token_a = Erc20Token(ledger, "token:A", "Token A", "TKA", owner=ADMIN)
    token_b = Erc20Token(ledger, "token:B", "Token B", "TKB", owner=ADMIN)
    oracle = DirectPriceOracle(ledger, "oracle", owner=ADMIN)
    rate_model = JumpRateModel(ledger, "rate-model", owner=ADMIN)
    engine = RiskEngine(ledger, "risk-engine", admin=ADMIN)
    engine.set_price_oracle(ADMIN, oracle)

    market_a = Market(
        ledger, "market:A", token_a, engine, rate_model, ADMIN, MarketConfig(symbol="mTKA")
    )
    market_b = Market(
        ledger, "market:B", token_b, engine, rate_model, ADMIN, MarketConfig(symbol="mTKB")
    )
    engine.support_market(ADMIN, market_a)
    engine.support_market(ADMIN, market_b)

    oracle.set_direct_price(ADMIN, token_a.address, EXP_SCALE)
    oracle.set_direct_price(ADMIN, token_b.address, EXP_SCALE)

    return Deployment(
        ledger=ledger,
        token_a=token_a,
        token_b=token_b,
        oracle=oracle,
        rate_model=rate_model,
        engine=engine,
        market_a=market_a,
        market_b=market_b,
    )


@pytest.fixture
def deployment() -> Deployment:
    return deploy()


@pytest.fixture
def reward_token(deployment) -> RewardToken:
    """Reward token, подключённый к engine; engine держит запас наград."""
    token = RewardToken(deployment.ledger, "token:RWD", owner=ADMIN)
    token.initial_mint(ADMIN, deployment.engine.address, 10**24)
    deployment.engine.set_reward_token(ADMIN, token)
    return token


@pytest.fixture
def borrowed_position(deployment) -> Deployment:
    """
    ALICE: 100 TKA в market A (cf 0.8), долг 80 TKB в market B.
    BOB: 1000 TKB ликвидности в market B.
    """
    d = deployment
    d.supply_collateral(ALICE, d.market_a, 100)
    d.fund(BOB, d.market_b, 1000)
    d.market_b.mint(BOB, 1000)
    d.market_b.borrow(ALICE, 80)
    return d

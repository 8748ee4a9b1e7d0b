import os
import tempfile
from decimal import Decimal
from unittest.mock import MagicMock

# logs de los tests fuera del árbol del proyecto
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="trader-logs-"))

import pytest

from models.market_snapshot import MarketSnapshot
from models.trade_config import TradeConfig
from models.trade_session import TradingSession
from models.trade_state import TradeState
from repositories.state_repository import StateRepository
from services.exchange_service import ExchangeService
from services.telegram_service import TelegramService


@pytest.fixture
def config():
    return TradeConfig(
        base="USDT",
        quote="UAH",
        tick_interval=0.01,
        order_notional=Decimal("20"),
        clearance_sell=Decimal("0.1"),
        clearance_buy=Decimal("0.25"),
        max_held_volume=Decimal("500"),
    )


@pytest.fixture
def open_state():
    return TradeState(average_price=Decimal("100"), amount=Decimal("50"), fee=Decimal("0.02"), sell_count=3)


@pytest.fixture
def snapshot_factory():
    def make(price="100", balance="1000", asks=None):
        return MarketSnapshot(
            price=Decimal(price) if price is not None else None,
            base_balance=Decimal(balance) if balance is not None else None,
            asks=asks,
        )
    return make


@pytest.fixture
def state_repo(tmp_path):
    return StateRepository(tmp_path / "state" / "trade_state.json")


@pytest.fixture
def exchange():
    ex = MagicMock(spec=ExchangeService)
    ex.get_balance.return_value = Decimal("1000")
    ex.get_last_price.return_value = Decimal("100")
    ex.get_order_book_asks.return_value = []
    return ex


@pytest.fixture
def notifier():
    return MagicMock(spec=TelegramService)


@pytest.fixture
def session(config):
    return TradingSession(config=config)

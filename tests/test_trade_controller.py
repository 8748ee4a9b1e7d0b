from decimal import Decimal

import ccxt
import pytest

from controllers.trade_controller import TradeController
from models.decision import Decision

D = Decimal


@pytest.fixture
def controller(exchange, state_repo, notifier):
    return TradeController(exchange, state_repo, notifier)


def test_closed_sell_persists_and_notifies(controller, exchange, state_repo, notifier, config):
    exchange.place_market_sell.return_value = {
        "status": "closed", "price": 41.37, "average": None, "filled": 20.0, "fee": {"cost": 0.02, "currency": "UAH"},
    }
    result = controller.execute(Decision.sell(D("20")), config)

    exchange.place_market_sell.assert_called_once_with("USDT/UAH", D("20"))
    assert result["ok"] is True
    state = state_repo.read()
    assert state.average_price == D("41.37")
    assert state.amount == D("20")
    assert state.fee == D("0.02")
    notifier.send.assert_called_once_with("🔴 SELL completed at price: 41.37 (fee: 0.02)")


def test_sell_records_filled_quantity(controller, exchange, state_repo, config):
    exchange.place_market_sell.return_value = {"status": "closed", "average": 41.4, "filled": 12.5, "fee": None}
    controller.execute(Decision.sell(D("20")), config)
    state = state_repo.read()
    assert state.amount == D("12.5")
    assert state.fee == 0


def test_open_sell_writes_nothing(controller, exchange, state_repo, notifier, config):
    exchange.place_market_sell.return_value = {"status": "open", "price": 41.37}
    result = controller.execute(Decision.sell(D("20")), config)
    assert result["ok"] is False
    assert not state_repo.path.exists()
    notifier.send.assert_not_called()


def test_sell_exchange_error_is_reported_and_state_untouched(controller, exchange, state_repo, notifier, config):
    state_repo.write_new(D("20"), D("41"))
    before = state_repo.read()
    exchange.place_market_sell.side_effect = ccxt.InsufficientFunds("binance Account has insufficient balance")

    result = controller.execute(Decision.sell(D("20")), config)

    assert result["ok"] is False
    assert state_repo.read() == before
    message = notifier.send.call_args.args[0]
    assert message.startswith("❌ SELL ERROR:")
    assert "insufficient balance" in message


def test_closed_buy_closes_position(controller, exchange, state_repo, notifier, config):
    state_repo.write_new(D("50"), D("100"))
    exchange.place_market_buy.return_value = {"status": "closed", "price": 99.7, "filled": 50.0}

    result = controller.execute(Decision.buy(D("50")), config)

    exchange.place_market_buy.assert_called_once_with("USDT/UAH", D("50"))
    assert result["ok"] is True
    state = state_repo.read()
    assert state.average_price == 0
    assert state.amount == 0
    assert state.last_buy_price == D("99.7")
    notifier.send.assert_called_once_with("🟢 BUY completed at price: 99.7, amount: 50.0")


def test_buy_without_price_writes_nothing(controller, exchange, state_repo, config):
    state_repo.write_new(D("50"), D("100"))
    exchange.place_market_buy.return_value = {"status": "closed", "price": None, "average": None}
    assert controller.execute(Decision.buy(D("50")), config)["ok"] is False
    assert state_repo.read().amount == D("50")


def test_buy_exchange_error_is_reported(controller, exchange, state_repo, notifier, config):
    state_repo.write_new(D("50"), D("100"))
    exchange.place_market_buy.side_effect = ccxt.NetworkError("timeout")
    assert controller.execute(Decision.buy(D("50")), config)["ok"] is False
    assert state_repo.read().amount == D("50")
    notifier.send.assert_called_once_with("❌ BUY ERROR: timeout")


def test_no_action_touches_nothing(controller, exchange, notifier, config):
    result = controller.execute(Decision.none("nada"), config)
    assert result == {"ok": False, "reason": "nada"}
    exchange.place_market_sell.assert_not_called()
    exchange.place_market_buy.assert_not_called()
    notifier.send.assert_not_called()


def test_sell_at_zero_price_writes_nothing(controller, exchange, state_repo, notifier, config):
    exchange.place_market_sell.return_value = {"status": "closed", "price": 0, "average": None, "filled": 20.0}
    result = controller.execute(Decision.sell(D("20")), config)
    assert result["ok"] is False
    assert not state_repo.path.exists()
    notifier.send.assert_not_called()

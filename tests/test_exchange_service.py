from decimal import Decimal
from unittest.mock import MagicMock

import ccxt
import pytest

from services.exchange_service import ExchangeService, to_decimal

D = Decimal


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def live(client):
    return ExchangeService(client=client, dry_run=False)


def test_to_decimal():
    assert to_decimal(0.1) == D("0.1")
    assert to_decimal("41.37") == D("41.37")
    assert to_decimal(None) is None
    assert to_decimal("") is None
    assert to_decimal("n/a") is None


def test_get_balance_reads_free_amount(live, client):
    client.fetch_balance.return_value = {"USDT": {"free": 123.45, "used": 0.0, "total": 123.45}}
    assert live.get_balance("USDT") == D("123.45")
    assert live.get_balance("BTC") is None


def test_get_balance_failure_returns_none(live, client):
    client.fetch_balance.side_effect = ccxt.NetworkError("down")
    assert live.get_balance("USDT") is None


def test_get_last_price_falls_back_to_info(live, client):
    client.fetch_ticker.return_value = {"last": None, "info": {"lastPrice": "41.52"}}
    assert live.get_last_price("USDT/UAH") == D("41.52")
    client.fetch_ticker.return_value = {"last": 41.6, "info": {}}
    assert live.get_last_price("USDT/UAH") == D("41.6")


def test_get_last_price_failure_returns_none(live, client):
    client.fetch_ticker.side_effect = ccxt.ExchangeError("bad symbol")
    assert live.get_last_price("USDT/UAH") is None


def test_order_book_asks_are_decimal_pairs(live, client):
    client.fetch_order_book.return_value = {"asks": [[41.5, 10.0], [41.6, 2.5], [41.7, 1.0]], "bids": []}
    asks = live.get_order_book_asks("USDT/UAH", 2)
    client.fetch_order_book.assert_called_once_with("USDT/UAH", limit=2)
    assert asks == [(D("41.5"), D("10.0")), (D("41.6"), D("2.5"))]


def test_order_book_failure_returns_none(live, client):
    client.fetch_order_book.side_effect = ccxt.RequestTimeout("slow")
    assert live.get_order_book_asks("USDT/UAH", 5) is None


def test_live_orders_go_to_client_and_errors_propagate(live, client):
    client.create_market_sell_order.return_value = {"status": "closed"}
    assert live.place_market_sell("USDT/UAH", D("20")) == {"status": "closed"}
    client.create_market_sell_order.assert_called_once_with("USDT/UAH", 20.0)

    client.create_market_buy_order.side_effect = ccxt.InsufficientFunds("no funds")
    with pytest.raises(ccxt.InsufficientFunds):
        live.place_market_buy("USDT/UAH", D("20"))


def test_dry_run_simulates_closed_fill(client):
    client.fetch_ticker.return_value = {"last": 41.5}
    dry = ExchangeService(client=client, dry_run=True)
    order = dry.place_market_buy("USDT/UAH", D("20"))
    client.create_market_buy_order.assert_not_called()
    assert order["status"] == "closed"
    assert order["price"] == 41.5
    assert order["filled"] == 20.0
    assert order["fee"]["cost"] == 0.0


def test_dry_run_without_price_raises(client):
    client.fetch_ticker.side_effect = ccxt.NetworkError("down")
    dry = ExchangeService(client=client, dry_run=True)
    with pytest.raises(ccxt.NetworkError):
        dry.place_market_sell("USDT/UAH", D("20"))

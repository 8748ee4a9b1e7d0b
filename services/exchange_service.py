from __future__ import annotations
import os
import time
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple

import ccxt

from utils.logger import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

# ---------- ENV ----------
EXCHANGE_ID = os.getenv("EXCHANGE_ID", "binance")
API_KEY = os.getenv("API_KEY") or ""
API_SECRET = os.getenv("API_SECRET") or ""
DRY_RUN = os.getenv("DRY_RUN", "true").lower() == "true"


def to_decimal(value: Any) -> Optional[Decimal]:
    """ccxt devuelve floats o strings; None/vacío/no numérico -> None."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class ExchangeService:
    """
    Envoltorio mínimo sobre un exchange ccxt (spot):
      - lecturas (saldo, último precio, asks) -> None si fallan, sin reintentos
      - órdenes de mercado -> propagan la excepción al controlador
      - DRY_RUN simula órdenes cerradas al último precio, sin fee
    """

    def __init__(self, client: Any | None = None, dry_run: bool | None = None) -> None:
        self.dry_run = DRY_RUN if dry_run is None else dry_run
        self.client = client or self._build_client()
        if self.dry_run:
            logger.warning("DRY_RUN activo: las órdenes se simulan, no se envían al exchange.")

    def _build_client(self):
        klass = getattr(ccxt, EXCHANGE_ID, None)
        if klass is None:
            raise ValueError(f"Exchange ccxt desconocido: {EXCHANGE_ID}")
        return klass({
            "apiKey": API_KEY,
            "secret": API_SECRET,
            "enableRateLimit": True,
            "options": {"defaultType": "spot", "adjustForTimeDifference": True},
        })

    # ---------- lecturas ----------
    def get_balance(self, asset: str) -> Optional[Decimal]:
        try:
            balance = self.client.fetch_balance()
        except Exception as e:
            logger.warning(f"[balance:{asset}] fallo: {e}")
            return None
        entry = balance.get(asset) or {}
        return to_decimal(entry.get("free"))

    def get_last_price(self, pair: str) -> Optional[Decimal]:
        try:
            ticker = self.client.fetch_ticker(pair)
        except Exception as e:
            logger.warning(f"[ticker:{pair}] fallo: {e}")
            return None
        price = to_decimal(ticker.get("last"))
        if price is None:
            # algunos exchanges sólo rellenan info.lastPrice
            price = to_decimal((ticker.get("info") or {}).get("lastPrice"))
        return price

    def get_order_book_asks(self, pair: str, depth: int) -> Optional[List[Tuple[Decimal, Decimal]]]:
        try:
            book = self.client.fetch_order_book(pair, limit=depth)
        except Exception as e:
            logger.warning(f"[orderbook:{pair}] fallo: {e}")
            return None
        asks: List[Tuple[Decimal, Decimal]] = []
        for level in (book.get("asks") or [])[:depth]:
            price, volume = to_decimal(level[0]), to_decimal(level[1])
            if price is None or volume is None:
                continue
            asks.append((price, volume))
        return asks

    # ---------- órdenes ----------
    @log_function
    def place_market_sell(self, pair: str, amount: Decimal) -> dict:
        if self.dry_run:
            return self._simulate("sell", pair, amount)
        return self.client.create_market_sell_order(pair, float(amount))

    @log_function
    def place_market_buy(self, pair: str, amount: Decimal) -> dict:
        if self.dry_run:
            return self._simulate("buy", pair, amount)
        return self.client.create_market_buy_order(pair, float(amount))

    def _simulate(self, side: str, pair: str, amount: Decimal) -> dict:
        price = self.get_last_price(pair)
        if price is None:
            raise ccxt.NetworkError(f"[DRY-RUN] sin precio para simular {side} en {pair}")
        logger.info(f"[DRY-RUN] {side.upper()} {amount} {pair} @ {price}")
        return {
            "id": f"dry_{side}_{int(time.time() * 1000)}",
            "status": "closed",
            "side": side,
            "amount": float(amount),
            "filled": float(amount),
            "price": float(price),
            "average": float(price),
            "fee": {"cost": 0.0, "currency": pair.split("/")[1]},
        }

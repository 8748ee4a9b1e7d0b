# controllers/trade_controller.py
from __future__ import annotations
from decimal import Decimal
from typing import Optional

from enums.trade_action import TradeAction
from models.decision import Decision
from models.trade_config import TradeConfig
from repositories.state_repository import StateRepository
from services.exchange_service import ExchangeService, to_decimal
from services.telegram_service import TelegramService
from utils.logger import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)


def _fee_cost(order: dict) -> Decimal:
    fee = order.get("fee") or {}
    cost = to_decimal(fee.get("cost"))
    if cost is None:
        # algunos exchanges sólo rellenan la lista "fees"
        cost = sum((to_decimal(f.get("cost")) or Decimal("0") for f in order.get("fees") or []), Decimal("0"))
    return cost


def _fill_price(order: dict) -> Optional[Decimal]:
    return to_decimal(order.get("average")) or to_decimal(order.get("price"))


class TradeController:
    """
    Ejecuta la decisión del tick:
      - coloca la orden de mercado
      - sólo con status 'closed' persiste el estado
      - errores del exchange -> log + Telegram, estado intacto
      - errores de persistencia -> se propagan (el tick se abandona)
    """
    def __init__(self, exchange: ExchangeService, state_repo: StateRepository,
                 notifier: TelegramService) -> None:
        self.exchange = exchange
        self.state_repo = state_repo
        self.notifier = notifier

    @log_function
    def execute(self, decision: Decision, config: TradeConfig) -> dict:
        if decision.action == TradeAction.SELL:
            return self.sell(config.pair, decision.amount)
        if decision.action == TradeAction.BUY:
            return self.buy(config.pair, decision.amount)
        return {"ok": False, "reason": decision.reason or "sin acción"}

    def sell(self, pair: str, amount: Decimal) -> dict:
        try:
            order = self.exchange.place_market_sell(pair, amount)
        except Exception as e:
            logger.error(f"Venta fallida en {pair}: {e}")
            self.notifier.send(f"❌ SELL ERROR: {e}")
            return {"ok": False, "reason": str(e)}

        status = order.get("status")
        price = _fill_price(order)
        if status != "closed" or not price:
            logger.warning(f"Venta no cerrada (status={status}, price={price}); estado sin cambios.")
            return {"ok": False, "reason": f"status={status}"}

        filled = to_decimal(order.get("filled")) or amount
        fee = _fee_cost(order)
        self.state_repo.write_new(filled, price, fee)
        self.notifier.send(f"🔴 SELL completed at price: {price} (fee: {fee})")
        return {"ok": True, "price": price, "amount": filled, "fee": fee}

    def buy(self, pair: str, amount: Decimal) -> dict:
        try:
            order = self.exchange.place_market_buy(pair, amount)
        except Exception as e:
            logger.error(f"Compra fallida en {pair}: {e}")
            self.notifier.send(f"❌ BUY ERROR: {e}")
            return {"ok": False, "reason": str(e)}

        status = order.get("status")
        price = _fill_price(order)
        if status != "closed" or not price:
            logger.warning(f"Compra no cerrada (status={status}, price={price}); estado sin cambios.")
            return {"ok": False, "reason": f"status={status}"}

        filled = to_decimal(order.get("filled")) or amount
        self.state_repo.write_update(price, filled)
        self.notifier.send(f"🟢 BUY completed at price: {price}, amount: {filled}")
        return {"ok": True, "price": price, "amount": filled}

# orchestrators/trading_orchestrator.py
from __future__ import annotations
import os, threading
from typing import Optional

from controllers.trade_controller import TradeController
from enums.trade_action import TradeAction
from models.decision import Decision
from models.market_snapshot import MarketSnapshot
from models.trade_session import TradingSession
from repositories.state_repository import StateRepository, StateRepositoryError
from services import clearance_strategy
from services.exchange_service import ExchangeService
from services.telegram_service import TelegramService
from utils.logger import logger_manager

logger = logger_manager.setup_logger(__name__)

# cada cuánto revisa el worker si le han pedido apagar mientras está parado
IDLE_POLL_SEC = float(os.getenv("IDLE_POLL_SEC", "0.5"))


class TradingOrchestrator:
    """
    Bucle de trading (un único hilo worker):
      - parado mientras session.trading no esté activo
      - por tick: espera tick_interval, lee saldo/precio/libro, lee estado,
        decide y ejecuta; nunca hay dos ticks en vuelo
      - un fallo en un tick se registra y el bucle sigue en el siguiente
    """
    def __init__(self, session: TradingSession, exchange: ExchangeService,
                 state_repo: StateRepository, trade_controller: TradeController,
                 notifier: TelegramService) -> None:
        self.session = session
        self.exchange = exchange
        self.state_repo = state_repo
        self.trader = trade_controller
        self.notifier = notifier

        self._shutdown_evt = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # --------- ciclo de vida ----------
    def start(self) -> None:
        """Arranca el worker (no activa el trading; eso lo hace /start o AUTO_START)."""
        if self._thread and self._thread.is_alive():
            return
        self._shutdown_evt.clear()
        self._thread = threading.Thread(target=self._run_loop, name="Trading", daemon=True)
        self._thread.start()
        logger.info(f"TradingOrchestrator iniciado para {self.session.config.pair}.")

    def shutdown(self, timeout: float | None = None) -> None:
        self._shutdown_evt.set()
        self.session.disable_trading()
        if self._thread:
            self._thread.join(timeout)
        logger.info("TradingOrchestrator detenido.")

    @property
    def is_alive(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _run_loop(self) -> None:
        session = self.session
        while not self._shutdown_evt.is_set():
            if not session.trading.wait(IDLE_POLL_SEC):
                continue

            session.wake.wait(session.config.tick_interval)
            if self._shutdown_evt.is_set() or not session.is_trading:
                continue

            try:
                self.run_tick()
            except StateRepositoryError as e:
                logger.exception(f"Tick abandonado por fallo de persistencia: {e}")
                self.notifier.notify_error(f"estado no persistido: {e}")
            except Exception as e:
                logger.exception(f"Error en tick {session.tick_count}: {e}")
            finally:
                session.tick_count += 1

    # --------- core ----------
    def snapshot(self) -> MarketSnapshot:
        config = self.session.config
        base_balance = self.exchange.get_balance(config.base)
        price = self.exchange.get_last_price(config.pair)
        asks = None
        if price is not None and config.liquidity_buffer is not None:
            asks = self.exchange.get_order_book_asks(config.pair, config.order_book_depth)
        return MarketSnapshot(price=price, base_balance=base_balance, asks=asks)

    def run_tick(self) -> Decision:
        """Una iteración completa sin espera: datos -> decisión -> acción."""
        session = self.session
        config = session.config

        snap = self.snapshot()
        state = self.state_repo.read()
        if snap.price is not None:
            session.last_price = snap.price

        decision = clearance_strategy.decide(config, state, snap)
        logger.debug(f"[tick {session.tick_count}] precio={snap.price} media={state.average_price} "
                     f"cantidad={state.amount} -> {decision.action.value} ({decision.reason})")

        if decision.action == TradeAction.NONE:
            return decision

        # re-check: un /stop recibido durante la lectura cancela la acción
        if not session.is_trading:
            logger.info(f"Trading detenido; se descarta {decision.action.value}.")
            return Decision.none("trading detenido antes de ejecutar")

        verb = "selling" if decision.action == TradeAction.SELL else "buying"
        self.notifier.send(f"Start {verb} at price: {snap.price}")
        result = self.trader.execute(decision, config)
        if result.get("ok") and result.get("price") is not None:
            session.last_price = result["price"]
        return decision

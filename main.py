# main.py
from __future__ import annotations
import os
import signal
import sys
import threading

# ---- carga .env antes de importar módulos que leen el entorno ----
from dotenv import load_dotenv
load_dotenv()

# ---- imports del proyecto ----
from controllers.command_controller import CommandController
from controllers.trade_controller import TradeController
from models.trade_session import TradingSession
from orchestrators.trading_orchestrator import TradingOrchestrator
from repositories.state_repository import StateRepository
from services.exchange_service import ExchangeService
from services.telegram_service import TelegramService
from utils.config import env_flag, load_trade_config
from utils.logger import logger_manager

logger = logger_manager.setup_logger(__name__)

AUTO_START = env_flag("AUTO_START", False)


def build_app(config_path: str | None = None) -> dict:
    """Construye todas las piezas conectadas entre sí (sin arrancar nada)."""
    config = load_trade_config(config_path)
    session = TradingSession(config=config)
    state_repo = StateRepository()
    exchange = ExchangeService()
    notifier = TelegramService()
    trader = TradeController(exchange, state_repo, notifier)
    orchestrator = TradingOrchestrator(session, exchange, state_repo, trader, notifier)
    commands = CommandController(state_repo)
    return {
        "config": config,
        "session": session,
        "state_repo": state_repo,
        "notifier": notifier,
        "orchestrator": orchestrator,
        "commands": commands,
    }


def run_headless(app: dict) -> None:
    """Sin bot de Telegram: espera a SIGINT/SIGTERM."""
    stop_evt = threading.Event()

    def shutdown(*_):
        logger.info("🛑 Señal de apagado recibida, deteniendo servicios...")
        stop_evt.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)
    if not app["session"].is_trading:
        logger.warning("Sin TELEGRAM_TOKEN ni AUTO_START: el trading no se activará nunca.")
    while not stop_evt.is_set():
        stop_evt.wait(0.5)


def main() -> int:
    try:
        app = build_app()
    except Exception as e:
        logger.error(f"Configuración inválida: {e}")
        return 1

    session: TradingSession = app["session"]
    orchestrator: TradingOrchestrator = app["orchestrator"]
    logger_manager.set_context(session.config.pair)
    logger.info(f"🚀 Iniciando trader {session.config.pair} "
                f"(tick={session.config.tick_interval}s, notional={session.config.order_notional})")

    orchestrator.start()
    if AUTO_START:
        app["commands"].dispatch("start", session)

    try:
        if os.getenv("TELEGRAM_TOKEN"):
            from services.telegram_bot import TelegramBot
            bot = TelegramBot(session, app["commands"])
            # run_polling instala sus propios manejadores de SIGINT/SIGTERM
            bot.run()
        else:
            logger.warning("TELEGRAM_TOKEN no definido; se ejecuta sin bot de control.")
            run_headless(app)
    finally:
        orchestrator.shutdown(timeout=5)
        logger.info("✅ Apagado completado.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

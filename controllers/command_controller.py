"""
Operator commands as a dispatch table.

Each handler receives the current ``TradingSession`` and the command
arguments and returns a ``CommandResult``: the text to reply plus the
session changes to apply (trading on/off, new config). ``dispatch`` applies
them, so the handlers themselves never touch the session.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError

from models.trade_config import TradeConfig
from models.trade_session import TradingSession
from repositories.state_repository import StateRepository, StateRepositoryError
from utils.logger import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

# clave del comando set -> campo de TradeConfig
SETTABLE_KEYS: Dict[str, str] = {
    "sell-clearance": "clearance_sell",
    "buy-clearance": "clearance_buy",
    "max-held-volume": "max_held_volume",
    "order-notional": "order_notional",
    "liquidity-buffer": "liquidity_buffer",
    "tick-interval": "tick_interval",
}
_OPTIONAL_FIELDS = {"max_held_volume", "liquidity_buffer"}
_NULL_VALUES = {"none", "off", "null", "-"}


class CommandError(ValueError):
    """Argumentos de comando inválidos."""


@dataclass
class CommandResult:
    reply: str
    trading: Optional[bool] = None
    config: Optional[TradeConfig] = None


Handler = Callable[[TradingSession, Sequence[str]], CommandResult]


def parse_set_args(args: Sequence[str]) -> Dict[str, object]:
    """``["sell-clearance=0.2", "liquidity-buffer=off"]`` -> campos de TradeConfig."""
    if not args:
        raise CommandError("Uso: set <clave>=<valor> ... (" + ", ".join(SETTABLE_KEYS) + ")")
    updates: Dict[str, object] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        key, value = key.strip().lower(), value.strip()
        if not sep or not value:
            raise CommandError(f"Formato inválido: {arg!r} (se espera clave=valor)")
        field = SETTABLE_KEYS.get(key)
        if field is None:
            raise CommandError(f"Clave desconocida: {key!r}")
        if value.lower() in _NULL_VALUES:
            if field not in _OPTIONAL_FIELDS:
                raise CommandError(f"{key} no admite {value!r}")
            updates[field] = None
            continue
        try:
            number = Decimal(value)
            if not number.is_finite():
                raise InvalidOperation
            updates[field] = float(number) if field == "tick_interval" else number
        except InvalidOperation:
            raise CommandError(f"Valor no numérico para {key}: {value!r}") from None
    return updates


def format_status(session: TradingSession, state) -> str:
    cfg = session.config
    price = session.last_price if session.last_price is not None else 0
    return (
        f"Status: {'✅ Running' if session.is_trading else '🛑 Stopped'}\n"
        f"Pair: {cfg.pair}\n"
        f"Current Market Price: {price}\n"
        f"Average Sell Price: {state.average_price}\n"
        f"Sell Count: {state.sell_count}\n"
        f"Buy Count: {state.buy_count}\n"
        f"Amount Sold: {state.amount}\n"
        f"Fee: {state.fee}\n"
        f"Ticks: {session.tick_count}\n"
        f"Clearance sell/buy: {cfg.clearance_sell} / {cfg.clearance_buy}\n"
        f"Order notional: {cfg.order_notional} {cfg.base}\n"
        f"Max held volume: {cfg.max_held_volume if cfg.max_held_volume is not None else 'off'}\n"
        f"Liquidity buffer: {cfg.liquidity_buffer if cfg.liquidity_buffer is not None else 'off'}"
    )


class CommandController:
    def __init__(self, state_repo: StateRepository) -> None:
        self.state_repo = state_repo
        self.commands: Dict[str, Handler] = {
            "start": self.cmd_start,
            "stop": self.cmd_stop,
            "status": self.cmd_status,
            "reset-state": self.cmd_reset_state,
            "set": self.cmd_set,
        }

    @log_function
    def dispatch(self, name: str, session: TradingSession, args: Sequence[str] = ()) -> CommandResult:
        handler = self.commands.get(name)
        if handler is None:
            return CommandResult(f"❓ Comando desconocido: {name}")
        try:
            result = handler(session, list(args))
        except CommandError as e:
            return CommandResult(f"❗ {e}")
        except StateRepositoryError as e:
            logger.error(f"Comando {name} sin acceso al estado: {e}")
            return CommandResult(f"❗ {e}")

        if result.config is not None:
            session.replace_config(result.config)
            logger.info(f"Configuración actualizada: {result.config.model_dump(mode='json')}")
        if result.trading is True:
            session.enable_trading()
            logger.info("Trading activado por comando.")
        elif result.trading is False:
            session.disable_trading()
            logger.info("Trading desactivado por comando.")
        return result

    # --------- handlers ----------
    def cmd_start(self, session: TradingSession, args: List[str]) -> CommandResult:
        if session.is_trading:
            return CommandResult("❗ Trading is already running.")
        return CommandResult("✅ Trading has started!", trading=True)

    def cmd_stop(self, session: TradingSession, args: List[str]) -> CommandResult:
        if not session.is_trading:
            return CommandResult("❗ Trading is already stopped.")
        return CommandResult("🛑 Trading has stopped!", trading=False)

    def cmd_status(self, session: TradingSession, args: List[str]) -> CommandResult:
        return CommandResult(format_status(session, self.state_repo.read()))

    def cmd_reset_state(self, session: TradingSession, args: List[str]) -> CommandResult:
        self.state_repo.clear()
        return CommandResult("✅ Database cleaned successfully.")

    def cmd_set(self, session: TradingSession, args: List[str]) -> CommandResult:
        updates = parse_set_args(args)
        try:
            config = TradeConfig.model_validate({**session.config.model_dump(), **updates})
        except ValidationError as e:
            errors = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
            raise CommandError(f"Configuración inválida: {errors}") from None
        changed = ", ".join(f"{k}={v if v is not None else 'off'}" for k, v in updates.items())
        note = " Trading stopped, use Start Trading to resume." if session.is_trading else " Use Start Trading to resume."
        return CommandResult(f"⚙️ Updated: {changed}.{note}", trading=False, config=config)

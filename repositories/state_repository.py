"""
State repository for the open position.

The whole ``TradeState`` is kept as a single JSON document that is read and
rewritten wholesale. Writes go to a temporary file first and are moved into
place with ``os.replace`` so a crash never leaves a half-written record.
"""

from __future__ import annotations

import os
import threading
import time
from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from models.trade_state import TradeState
from utils.logger import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

STATE_PATH = os.getenv("STATE_PATH", "./data/trade_state.json")


class StateRepositoryError(Exception):
    """El fichero de estado no se pudo leer o escribir."""


class StateRepository:
    """Repository for the persisted trade state."""

    def __init__(self, path: str | os.PathLike | None = None) -> None:
        self.path = Path(path or STATE_PATH)
        self._lock = threading.Lock()

    # ---------- acceso a fichero ----------
    def _load(self) -> TradeState:
        if not self.path.exists():
            return TradeState()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StateRepositoryError(f"No se pudo leer {self.path}: {e}") from e
        if not raw.strip():
            return TradeState()
        try:
            return TradeState.model_validate_json(raw)
        except ValidationError as e:
            raise StateRepositoryError(f"Estado corrupto en {self.path}: {e}") from e

    def _save(self, state: TradeState) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(state.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StateRepositoryError(f"No se pudo escribir {self.path}: {e}") from e

    # ---------- API ----------
    def read(self) -> TradeState:
        """Return the stored state, or an empty one if nothing is stored yet."""
        with self._lock:
            return self._load()

    @log_function
    def write_new(self, amount: Decimal, price: Decimal, fee: Decimal = Decimal("0")) -> TradeState:
        """
        Registra una venta. Sin posición abierta fija la media al precio de la
        venta; con posición abierta la amplía con media ponderada por cantidad.
        """
        with self._lock:
            state = self._load()
            if state.has_position and state.amount > 0:
                total = state.amount + amount
                average = (state.average_price * state.amount + price * amount) / total
            else:
                total = amount
                average = price
            new_state = state.model_copy(update={
                "average_price": average,
                "amount": total,
                "fee": state.fee + fee,
                "sell_count": state.sell_count + 1,
                "updated_at": int(time.time()),
            })
            self._save(new_state)
            logger.info(f"Estado actualizado tras venta: media={average} cantidad={total}")
            return new_state

    @log_function
    def write_update(self, price: Decimal, amount: Optional[Decimal] = None) -> TradeState:
        """
        Registra una recompra a ``price``. Si ``amount`` es None o cubre la
        cantidad vendida la posición se cierra; si es parcial se descuenta.
        """
        with self._lock:
            state = self._load()
            update = {
                "buy_count": state.buy_count + 1,
                "last_buy_price": price,
                "updated_at": int(time.time()),
            }
            if amount is None or amount >= state.amount:
                update.update(average_price=Decimal("0"), amount=Decimal("0"), fee=Decimal("0"))
            else:
                update["amount"] = state.amount - amount
            new_state = state.model_copy(update=update)
            self._save(new_state)
            logger.info(f"Estado actualizado tras compra a {price}: cantidad pendiente={new_state.amount}")
            return new_state

    @log_function
    def clear(self) -> TradeState:
        with self._lock:
            state = TradeState(updated_at=int(time.time()))
            self._save(state)
            logger.info("Estado de trading limpiado.")
            return state

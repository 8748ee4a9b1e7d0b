"""
Runtime context of a trading instance.

Holds what the loop and the Telegram commands share in memory: the current
configuration, the "trading enabled" flag, the last observed price and the
tick counter. It is passed explicitly to each loop iteration and to each
command handler.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from models.trade_config import TradeConfig


@dataclass
class TradingSession:
    config: TradeConfig
    trading: threading.Event = field(default_factory=threading.Event)
    # despierta al worker durante el sleep entre ticks
    wake: threading.Event = field(default_factory=threading.Event)
    last_price: Optional[Decimal] = None
    tick_count: int = 0

    @property
    def is_trading(self) -> bool:
        return self.trading.is_set()

    def enable_trading(self) -> None:
        self.wake.clear()
        self.trading.set()

    def disable_trading(self) -> None:
        self.trading.clear()
        self.wake.set()

    def replace_config(self, config: TradeConfig) -> None:
        self.config = config

"""
Persisted state of the open position.

``average_price`` is the weighted average price of the sells that built the
position (0 means there is no open position) and ``amount`` the quantity of
base asset sold so far and not yet bought back.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class TradeState(BaseModel):
    average_price: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    fee: Decimal = Decimal("0")
    sell_count: int = 0
    buy_count: int = 0
    last_buy_price: Optional[Decimal] = None
    updated_at: int = 0

    @property
    def has_position(self) -> bool:
        return self.average_price > 0

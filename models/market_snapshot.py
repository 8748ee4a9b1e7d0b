"""
Market data gathered at the start of each tick. Never persisted.

Any field may be ``None`` when the corresponding fetch failed; the decision
procedure treats that as "no data this tick".
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel


class MarketSnapshot(BaseModel):
    price: Optional[Decimal] = None
    base_balance: Optional[Decimal] = None
    asks: Optional[List[Tuple[Decimal, Decimal]]] = None  # (precio, volumen)

"""
Enumeration of the outcomes of the clearance decision.

Each tick produces exactly one of them: sell a fixed notional of the base
asset, buy back the held amount, or do nothing.
"""

from __future__ import annotations

from enum import Enum


class TradeAction(str, Enum):
    """Possible actions for a single tick."""

    SELL = "sell"
    BUY = "buy"
    NONE = "none"

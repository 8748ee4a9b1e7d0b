from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel

from enums.trade_action import TradeAction


class Decision(BaseModel):
    """Resultado de una evaluación: qué hacer y con qué cantidad de base."""

    action: TradeAction
    amount: Decimal = Decimal("0")
    reason: str = ""

    @classmethod
    def sell(cls, amount: Decimal, reason: str = "") -> "Decision":
        return cls(action=TradeAction.SELL, amount=amount, reason=reason)

    @classmethod
    def buy(cls, amount: Decimal, reason: str = "") -> "Decision":
        return cls(action=TradeAction.BUY, amount=amount, reason=reason)

    @classmethod
    def none(cls, reason: str = "") -> "Decision":
        return cls(action=TradeAction.NONE, reason=reason)

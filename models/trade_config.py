"""
Static trading parameters for one trading pair.

Loaded once at start-up from ``config.yaml`` (section ``trade``). The model is
frozen: an operator ``set`` command produces a new instance instead of
mutating the running one.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class TradeConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    base: str = "USDT"          # activo que se vende y se recompra
    quote: str = "UAH"          # moneda de precio
    tick_interval: float = Field(default=10.0, gt=0)   # segundos
    order_notional: Decimal = Field(default=Decimal("20"), gt=0)
    clearance_sell: Decimal = Field(default=Decimal("0.1"), ge=0)
    clearance_buy: Decimal = Field(default=Decimal("0.25"), ge=0)
    max_held_volume: Optional[Decimal] = Field(default=Decimal("500"), gt=0)
    liquidity_buffer: Optional[Decimal] = Field(default=None, ge=0)
    adaptive_clearance: bool = True
    order_book_depth: int = Field(default=10, ge=1, le=5000)

    @field_validator(
        "order_notional", "clearance_sell", "clearance_buy",
        "max_held_volume", "liquidity_buffer",
        mode="before",
    )
    @classmethod
    def _float_to_decimal(cls, v):
        # YAML entrega floats: 0.1 -> Decimal("0.1"), no 0.1000000000000000055...
        if isinstance(v, float):
            return Decimal(str(v))
        return v

    @field_validator("base", "quote")
    @classmethod
    def _upper_symbol(cls, v: str) -> str:
        v = (v or "").strip().upper()
        if not v:
            raise ValueError("símbolo vacío")
        return v

    @model_validator(mode="after")
    def _distinct_assets(self) -> "TradeConfig":
        if self.base == self.quote:
            raise ValueError(f"base y quote no pueden coincidir ({self.base})")
        return self

    @property
    def pair(self) -> str:
        """Símbolo unificado de ccxt, p.ej. ``USDT/UAH``."""
        return f"{self.base}/{self.quote}"

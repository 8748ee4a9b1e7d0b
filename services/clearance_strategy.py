"""
Clearance decision procedure.

Given the market snapshot of a tick, the persisted position and the trading
parameters, decide whether to sell a fixed notional of the base asset, buy the
held amount back, or wait. The module performs no I/O: the orchestrator
fetches the data and the trade controller executes the result.

Rules, first match wins:

1. no price this tick                      -> none
2. no open position (average price == 0)   -> sell(order_notional)
3. price above average:
   sell(order_notional) when the held amount is below ``max_held_volume``,
   the free base balance covers the order and the price clears
   ``average + effective_sell_clearance``
4. price below average:
   buy(amount) when the price is at or below ``average - clearance_buy`` and
   the order book holds enough volume near the price
5. otherwise                                -> none
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Tuple

from models.decision import Decision
from models.market_snapshot import MarketSnapshot
from models.trade_config import TradeConfig
from models.trade_state import TradeState

# La clearance de venta crece 0.1 por cada 100 unidades acumuladas
ADAPTIVE_STEP_AMOUNT = Decimal("100")
ADAPTIVE_STEP = Decimal("0.1")


def effective_sell_clearance(config: TradeConfig, amount: Decimal) -> Decimal:
    """Clearance de venta aplicable con ``amount`` unidades ya vendidas."""
    if not config.adaptive_clearance:
        return config.clearance_sell
    steps = max(Decimal("0"), amount) // ADAPTIVE_STEP_AMOUNT
    return config.clearance_sell + steps * ADAPTIVE_STEP


def has_liquidity(
    asks: Optional[Iterable[Tuple[Decimal, Decimal]]],
    price: Decimal,
    buffer: Decimal,
    amount: Decimal,
) -> bool:
    """
    True si el volumen en asks con precio <= price + buffer cubre ``amount``.
    Sin libro (fallo de fetch) devuelve False.
    """
    if asks is None:
        return False
    limit = price + buffer
    volume = Decimal("0")
    for level_price, level_volume in asks:
        # los asks vienen ordenados de menor a mayor precio
        if level_price > limit:
            break
        volume += level_volume
        if volume >= amount:
            return True
    return volume >= amount


def decide(config: TradeConfig, state: TradeState, snapshot: MarketSnapshot) -> Decision:
    price = snapshot.price
    if price is None or price <= 0:
        return Decision.none("sin precio")

    average = state.average_price
    if average == 0:
        return Decision.sell(config.order_notional, "apertura de posición")

    diff = price - average

    if diff > 0:
        if config.max_held_volume is not None and state.amount >= config.max_held_volume:
            return Decision.none(f"volumen máximo alcanzado ({state.amount} >= {config.max_held_volume})")
        if snapshot.base_balance is None or snapshot.base_balance <= config.order_notional:
            return Decision.none(f"saldo {config.base} insuficiente ({snapshot.base_balance})")
        threshold = average + effective_sell_clearance(config, state.amount)
        if price > threshold:
            return Decision.sell(config.order_notional, f"precio {price} > umbral {threshold}")
        return Decision.none(f"precio {price} <= umbral de venta {threshold}")

    if diff < 0:
        threshold = average - config.clearance_buy
        if price > threshold:
            return Decision.none(f"precio {price} > umbral de compra {threshold}")
        if config.liquidity_buffer is not None and not has_liquidity(
            snapshot.asks, price, config.liquidity_buffer, state.amount
        ):
            return Decision.none("liquidez insuficiente en el libro")
        return Decision.buy(state.amount, f"precio {price} <= umbral {threshold}")

    return Decision.none("precio igual a la media")

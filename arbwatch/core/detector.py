"""Arbitrage opportunity detection for triangular and cross-exchange spreads."""

from typing import Dict, Optional
from loguru import logger

from .symbols import SymbolMapper
from .triangle import Triangle, evaluate_triangle
from .types import (
    ArbitrageDirection,
    FeeModel,
    OpportunityKind,
    OpportunityResult,
    Quote,
    ensure_valid_price,
)


def calculate_inter_exchange_spread(buy_ask: float, sell_bid: float, fee_model: FeeModel,
                                    investment_usd: float, min_profit_pct: float,
                                    symbol: str = "",
                                    buy_exchange: Optional[str] = None,
                                    sell_exchange: Optional[str] = None,
                                    direction: Optional[ArbitrageDirection] = None) -> OpportunityResult:
    """Net spread of buying at buy_ask on one venue and selling at sell_bid on another.

    The flat transfer fee is spread over the units the investment buys, so a
    small investment pays a large per-unit transfer cost.
    """
    buy_ask = ensure_valid_price(buy_ask, "buy ask")
    sell_bid = ensure_valid_price(sell_bid, "sell bid")
    if not investment_usd > 0:
        raise ValueError(f"investment_usd must be positive, got {investment_usd}")

    fee_rate = fee_model.per_trade_fee_rate
    units = investment_usd / buy_ask

    gross_profit_per_unit = sell_bid - buy_ask
    fee_buy = buy_ask * fee_rate
    fee_sell = sell_bid * fee_rate
    transfer_fee_per_unit = fee_model.flat_transfer_fee_usd / units
    net_profit_per_unit = gross_profit_per_unit - fee_buy - fee_sell - transfer_fee_per_unit

    details = {
        'gross_profit_per_unit': gross_profit_per_unit,
        'fee_buy': fee_buy,
        'fee_sell': fee_sell,
        'transfer_fee_per_unit': transfer_fee_per_unit,
        'net_profit_per_unit': net_profit_per_unit,
        'units': units,
        'investment_usd': investment_usd,
        'expected_profit_usd': net_profit_per_unit * units,
    }

    # sell_bid <= buy_ask: nothing to capture, reported as a plain negative
    no_spread = sell_bid <= buy_ask
    if no_spread:
        details['reason'] = 'no_spread'

    return OpportunityResult(
        kind=OpportunityKind.INTER_EXCHANGE,
        gross_spread_pct=gross_profit_per_unit / buy_ask * 100,
        net_spread_pct=net_profit_per_unit / buy_ask * 100,
        threshold_pct=min_profit_pct,
        symbol=symbol,
        direction=direction,
        buy_exchange=buy_exchange,
        sell_exchange=sell_exchange,
        buy_price=buy_ask,
        sell_price=sell_bid,
        details=details,
        profitable=False if no_spread else None,
    )


class ArbitrageDetector:
    """Evaluates opportunities with thresholds and fees from configuration."""

    def __init__(self, config, symbols: Optional[SymbolMapper] = None):
        self.config = config
        self.symbols = symbols or config.get_symbol_mapper()
        self.min_triangular_profit_pct = config.detector.min_triangular_profit_pct
        self.min_inter_exchange_profit_pct = config.detector.min_inter_exchange_profit_pct
        self.investment_usd = config.inter_exchange.investment_usd
        pairs = [self.symbols.to_unified(pair) for pair in config.triangle.pairs]
        self.triangle = Triangle.from_pairs(pairs, config.triangle.start_asset)

    def evaluate_triangular(self, quotes: Dict[str, Quote]) -> OpportunityResult:
        """Evaluate the configured triangle on one exchange."""
        fee_model = self.config.get_fee_model(self.config.triangle.exchange)
        result = evaluate_triangle(
            self.triangle, quotes, fee_model,
            self.min_triangular_profit_pct,
            both_directions=self.config.triangle.both_directions,
        )

        for leg in result.details['legs']:
            logger.info(f"  {leg['pair']} {leg['side']} @ {leg['price']}")
        self._log_result(result)
        return result

    def evaluate_inter_exchange(self, left_quote: Quote, right_quote: Quote) -> OpportunityResult:
        """Evaluate both directions between two venues and keep the better one."""
        left_fee = self.config.get_fee_model(left_quote.exchange)
        right_fee = self.config.get_fee_model(right_quote.exchange)
        # Both legs pay the dearer taker fee; the transfer cost is shared
        fee_model = FeeModel(
            per_trade_fee_rate=max(left_fee.per_trade_fee_rate, right_fee.per_trade_fee_rate),
            flat_transfer_fee_usd=self.config.fees.flat_transfer_fee_usd,
        )

        logger.info(f"  {left_quote.exchange}: bid={left_quote.bid} ask={left_quote.ask}")
        logger.info(f"  {right_quote.exchange}: bid={right_quote.bid} ask={right_quote.ask}")

        left_to_right = calculate_inter_exchange_spread(
            left_quote.ask, right_quote.bid, fee_model, self.investment_usd,
            self.min_inter_exchange_profit_pct,
            symbol=left_quote.symbol,
            buy_exchange=left_quote.exchange,
            sell_exchange=right_quote.exchange,
            direction=ArbitrageDirection.LEFT_TO_RIGHT,
        )
        right_to_left = calculate_inter_exchange_spread(
            right_quote.ask, left_quote.bid, fee_model, self.investment_usd,
            self.min_inter_exchange_profit_pct,
            symbol=right_quote.symbol,
            buy_exchange=right_quote.exchange,
            sell_exchange=left_quote.exchange,
            direction=ArbitrageDirection.RIGHT_TO_LEFT,
        )

        logger.debug(f"  Left->Right net: {left_to_right.net_spread_pct:.4f}%")
        logger.debug(f"  Right->Left net: {right_to_left.net_spread_pct:.4f}%")

        if left_to_right.net_spread_pct >= right_to_left.net_spread_pct:
            result = left_to_right
        else:
            result = right_to_left

        self._log_result(result)
        return result

    def _log_result(self, result: OpportunityResult) -> None:
        if result.profitable:
            logger.success(f"✅ {result.describe()}")
        else:
            logger.info(f"❌ {result.describe()}")

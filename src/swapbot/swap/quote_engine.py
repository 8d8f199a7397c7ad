"""Swap quoting and minimum-output calculation.

Real-time quotes convert the input through the PriceMonitor's current SUI/USD
price and take the protocol fee from the output. When no monitor or price is
available, or real-time quoting fails, a fallback quote is computed from a
static historical rate with its own fee rate. The two fee models differ on
purpose and are both configurable.

Quotes are computed fresh on every call and never cached.
"""

from decimal import Decimal

from swapbot.chain.types import floor_units
from swapbot.config import ProtocolSettings, QuoteSettings, SlippageSettings
from swapbot.logging import get_logger
from swapbot.market_data.price_monitor import PriceMonitor
from swapbot.models import Quote, SwapDirection
from swapbot.swap.pair import resolve_direction

logger = get_logger(__name__)


class QuoteEngine:
    """Stateless quote calculator for the SUI/USDC pair.

    Args:
        settings: Fee rates, fallback rates and quote labels.
        protocol: Coin types and decimals.
        slippage: Default slippage when no price monitor is wired.
        price_monitor: Optional source of the current price and dynamic slippage.
    """

    def __init__(
        self,
        settings: QuoteSettings,
        protocol: ProtocolSettings,
        slippage: SlippageSettings,
        price_monitor: PriceMonitor | None = None,
    ) -> None:
        self._settings = settings
        self._protocol = protocol
        self._slippage = slippage
        self._price_monitor = price_monitor

    def get_quote(self, from_type: str, to_type: str, amount_in: int) -> Quote | None:
        """Quote amount_in of from_type into to_type.

        Returns None for any pair other than SUI->USDC or USDC->SUI; callers
        treat that as "quote unavailable" and abort the leg.
        """
        direction = resolve_direction(self._protocol, from_type, to_type)
        if direction is None:
            logger.warning("quote_unsupported_pair", from_type=from_type, to_type=to_type)
            return None

        if self._price_monitor is not None:
            try:
                price = self._price_monitor.current_price
                if price > 0:
                    return self._realtime_quote(direction, amount_in, price)
            except Exception:
                logger.warning("realtime_quote_failed", exc_info=True)

        return self._fallback_quote(direction, amount_in)

    def _realtime_quote(
        self, direction: SwapDirection, amount_in: int, price: Decimal
    ) -> Quote:
        fee_rate = self._settings.realtime_fee_rate
        if direction is SwapDirection.SUI_TO_USDC:
            sui_amount = Decimal(amount_in).scaleb(-self._protocol.sui_decimals)
            gross = floor_units((sui_amount * price).scaleb(self._protocol.usdc_decimals))
        else:
            usdc_amount = Decimal(amount_in).scaleb(-self._protocol.usdc_decimals)
            gross = floor_units((usdc_amount / price).scaleb(self._protocol.sui_decimals))

        fee = floor_units(Decimal(gross) * fee_rate)
        return Quote(
            amount_out=gross - fee,
            fee=fee,
            price_impact=self._settings.price_impact,
            route=self._settings.route,
            fee_rate=fee_rate,
            current_price=price,
        )

    def _fallback_quote(self, direction: SwapDirection, amount_in: int) -> Quote:
        # Fallback fee is charged on input units
        if direction is SwapDirection.SUI_TO_USDC:
            rate = self._settings.fallback_sui_to_usdc_rate
        else:
            rate = self._settings.fallback_usdc_to_sui_rate
        fee_rate = self._settings.fallback_fee_rate

        gross = floor_units(Decimal(amount_in) * rate)
        fee = floor_units(Decimal(amount_in) * fee_rate)
        logger.debug("fallback_quote_used", direction=direction.value, rate=str(rate))
        return Quote(
            amount_out=gross - fee,
            fee=fee,
            price_impact=self._settings.price_impact,
            route=self._settings.route,
            fee_rate=fee_rate,
        )

    def calculate_min_amount_out(
        self, amount_out: int, custom_slippage: Decimal | float | None = None
    ) -> int:
        """Lowest acceptable output: floor(amount_out * (1 - slippage)).

        Slippage is custom_slippage when given, else the monitor's dynamic
        slippage, else the configured default.
        """
        if custom_slippage is not None:
            slippage = Decimal(str(custom_slippage))
        elif self._price_monitor is not None:
            slippage = self._price_monitor.get_dynamic_slippage()
        else:
            slippage = self._slippage.default

        valid_amount = max(int(amount_out), 0)
        min_amount_out = floor_units(Decimal(valid_amount) * (Decimal(1) - slippage))
        logger.info(
            "min_amount_out_calculated",
            slippage_pct=f"{slippage * 100:.3f}",
            min_amount_out=min_amount_out,
        )
        return min_amount_out
